"""
RecipeScan - OCR aggregation.

The OCR engine is an external capability. One scan initializes it once,
recognizes every image in order, and always releases it afterward:

    capability = TesseractCapability()
    text = await extract_text(images, capability)

Recognized texts are joined with a blank line between images.
"""

import asyncio
import io
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Protocol

from recipescan.config import settings
from recipescan.errors import OCRError
from recipescan.images import PendingImage

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


class OCREngine(Protocol):
    """An initialized OCR engine, valid until released."""

    async def recognize(self, image: PendingImage) -> str: ...

    async def release(self) -> None: ...


class OCRCapability(Protocol):
    """Something that can start an OCR engine."""

    async def initialize(self) -> OCREngine: ...


# =============================================================================
# Tesseract
# =============================================================================


class TesseractEngine:
    """Tesseract via pytesseract. Recognition runs in a worker thread."""

    def __init__(self, lang: str, config: str):
        self.lang = lang
        self.config = config

    async def recognize(self, image: PendingImage) -> str:
        return await asyncio.to_thread(self._recognize_sync, image.data)

    def _recognize_sync(self, data: bytes) -> str:
        import pytesseract
        from PIL import Image

        with Image.open(io.BytesIO(data)) as img:
            text = pytesseract.image_to_string(img, lang=self.lang, config=self.config)
        return text.strip()

    async def release(self) -> None:
        # pytesseract spawns one process per call; nothing to tear down
        return None


class TesseractCapability:
    """Starts TesseractEngine after checking the tesseract binary is present."""

    def __init__(self, lang: str | None = None, config: str = "--oem 3 --psm 6"):
        self.lang = lang or settings.ocr_lang
        self.config = config

    async def initialize(self) -> TesseractEngine:
        import pytesseract

        try:
            version = await asyncio.to_thread(pytesseract.get_tesseract_version)
        except pytesseract.TesseractNotFoundError as e:
            raise OCRError("Tesseract OCR is not installed or not on PATH") from e

        logger.debug(f"Tesseract {version} ready (lang={self.lang})")
        return TesseractEngine(self.lang, self.config)


# =============================================================================
# Aggregation
# =============================================================================


@asynccontextmanager
async def ocr_session(capability: OCRCapability) -> AsyncIterator[OCREngine]:
    """Initialize an engine for one scan and release it no matter what."""
    try:
        engine = await capability.initialize()
    except OCRError:
        raise
    except Exception as e:
        raise OCRError(f"OCR engine failed to initialize: {e}") from e

    try:
        yield engine
    finally:
        await engine.release()


async def extract_text(images: Sequence[PendingImage], capability: OCRCapability) -> str:
    """
    Recognize images in order and join their text.

    Args:
        images: Normalized images in capture/display order
        capability: OCR capability used to start the engine

    Returns:
        All recognized text, one block per image, separated by a blank line

    Raises:
        OCRError: If there are no images or any image fails; no partial
            text is returned
    """
    if not images:
        raise OCRError("No images to scan")

    texts: list[str] = []
    async with ocr_session(capability) as engine:
        for position, image in enumerate(images):
            logger.info(f"Recognizing image {position + 1}/{len(images)} ({image.name})")
            try:
                texts.append(await engine.recognize(image))
            except Exception as e:
                raise OCRError(
                    f"OCR failed on image {position + 1} ({image.name}): {e}",
                    index=image.index,
                ) from e

    return PAGE_SEPARATOR.join(texts)
