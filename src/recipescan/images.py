"""
RecipeScan - Image normalization.

Captured photos are normalized before OCR:
- EXIF orientation is baked into the pixels
- The longest side is capped (never upscaled)
- The encoded payload is squeezed under a byte budget

Rotation is a separate, user-driven step for photos the camera got wrong.
"""

import io
import logging
import mimetypes
from dataclasses import dataclass, field, replace
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from recipescan.config import settings
from recipescan.errors import ImageBatchError, ImageProcessingError

logger = logging.getLogger(__name__)

FORMAT_BY_MEDIA_TYPE = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
    "image/bmp": "BMP",
    "image/tiff": "TIFF",
}

LOSSY_FORMATS = {"JPEG", "WEBP"}

# Encoder quality ladder tried before shrinking pixels
QUALITY_STEPS = (90, 80, 70, 60, 50)

# Each shrink pass keeps this fraction of width and height
SCALE_STEP = 0.85

MIN_DIMENSION = 64


@dataclass
class PendingImage:
    """A captured image waiting to be scanned."""

    data: bytes
    index: int
    name: str = "image"
    media_type: str | None = None

    def __post_init__(self):
        if self.media_type is None:
            self.media_type = mimetypes.guess_type(self.name)[0]

    @classmethod
    def from_path(cls, path: str | Path, index: int) -> "PendingImage":
        path = Path(path)
        return cls(data=path.read_bytes(), index=index, name=path.name)

    def with_data(self, data: bytes) -> "PendingImage":
        """Copy with a new payload; index, name and media type are kept."""
        return replace(self, data=data)


@dataclass
class ImageFailure:
    index: int
    name: str
    reason: str


@dataclass
class ImageBatchResult:
    """Outcome of normalizing a batch; partial success is allowed."""

    processed: list[PendingImage] = field(default_factory=list)
    failures: list[ImageFailure] = field(default_factory=list)

    @property
    def processed_count(self) -> int:
        return len(self.processed)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        if self.failures:
            raise ImageBatchError(self)


# =============================================================================
# Encoding helpers
# =============================================================================


def _open(image: PendingImage) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(image.data))
        img.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ImageProcessingError(
            f"Could not decode image {image.name}: {e}",
            name=image.name,
            index=image.index,
        ) from e
    return img


def _target_format(image: PendingImage, img: Image.Image) -> str:
    fmt = FORMAT_BY_MEDIA_TYPE.get(image.media_type or "")
    return fmt or img.format or "PNG"


def _encode(img: Image.Image, fmt: str, quality: int | None = None) -> bytes:
    if fmt == "JPEG" and img.mode not in ("RGB", "L"):
        img = img.convert("RGB")

    kwargs = {}
    if fmt in LOSSY_FORMATS and quality is not None:
        kwargs["quality"] = quality
    elif fmt == "PNG":
        kwargs["optimize"] = True

    buffer = io.BytesIO()
    img.save(buffer, format=fmt, **kwargs)
    return buffer.getvalue()


def _compress(img: Image.Image, fmt: str, max_bytes: int) -> bytes:
    lossy = fmt in LOSSY_FORMATS
    data = _encode(img, fmt, quality=QUALITY_STEPS[0] if lossy else None)
    if len(data) <= max_bytes:
        return data

    if lossy:
        for quality in QUALITY_STEPS[1:]:
            data = _encode(img, fmt, quality=quality)
            if len(data) <= max_bytes:
                return data

    current = img
    while len(data) > max_bytes:
        width, height = current.size
        if max(width, height) <= MIN_DIMENSION:
            raise ImageProcessingError(
                f"Could not compress image below {max_bytes} bytes"
            )
        current = img.resize(
            (max(1, int(width * SCALE_STEP)), max(1, int(height * SCALE_STEP))),
            Image.Resampling.LANCZOS,
        )
        data = _encode(current, fmt, quality=QUALITY_STEPS[-1] if lossy else None)

    logger.debug(f"Shrunk image to {current.size} to fit {max_bytes} bytes")
    return data


# =============================================================================
# Public API
# =============================================================================


def image_size(image: PendingImage) -> tuple[int, int]:
    """Return (width, height) of the encoded image."""
    return _open(image).size


def normalize_image(
    image: PendingImage,
    *,
    max_bytes: int | None = None,
    max_dimension: int | None = None,
) -> PendingImage:
    """
    Normalize one image for OCR.

    Args:
        image: The captured image
        max_bytes: Byte budget for the encoded result (default from settings)
        max_dimension: Cap for the longest side in pixels (default from settings)

    Returns:
        A new PendingImage with the same index, name and media type

    Raises:
        ImageProcessingError: If the image cannot be decoded or compressed
    """
    max_bytes = max_bytes or settings.image_max_bytes
    max_dimension = max_dimension or settings.image_max_dimension

    img = _open(image)
    fmt = _target_format(image, img)

    try:
        img = ImageOps.exif_transpose(img)
        if max(img.size) > max_dimension:
            img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
        data = _compress(img, fmt, max_bytes)
    except ImageProcessingError as e:
        e.name, e.index = image.name, image.index
        raise
    except (OSError, ValueError) as e:
        raise ImageProcessingError(
            f"Failed to normalize image {image.name}: {e}",
            name=image.name,
            index=image.index,
        ) from e

    logger.debug(f"Normalized {image.name}: {len(image.data)} -> {len(data)} bytes")
    return image.with_data(data)


def normalize_batch(
    images: list[PendingImage],
    *,
    max_bytes: int | None = None,
    max_dimension: int | None = None,
) -> ImageBatchResult:
    """
    Normalize images in input order, collecting failures instead of stopping.

    Images that fail are reported in ImageBatchResult.failures; the rest are
    returned in order in ImageBatchResult.processed.
    """
    result = ImageBatchResult()

    for image in images:
        try:
            result.processed.append(
                normalize_image(image, max_bytes=max_bytes, max_dimension=max_dimension)
            )
        except ImageProcessingError as e:
            logger.warning(f"Image {image.index} ({image.name}) failed: {e}")
            result.failures.append(ImageFailure(index=image.index, name=image.name, reason=str(e)))

    logger.info(
        f"Normalized {result.processed_count} image(s), {result.failed_count} failed"
    )
    return result


def rotate90(image: PendingImage) -> PendingImage:
    """
    Rotate an image 90 degrees clockwise.

    Width and height are swapped; index, name and media type are preserved.
    """
    img = _open(image)
    fmt = _target_format(image, img)

    try:
        # Re-encoding drops EXIF, so bake the orientation in first
        rotated = ImageOps.exif_transpose(img).transpose(Image.Transpose.ROTATE_270)
        data = _encode(rotated, fmt, quality=QUALITY_STEPS[0])
    except (OSError, ValueError) as e:
        raise ImageProcessingError(
            f"Failed to rotate image {image.name}: {e}",
            name=image.name,
            index=image.index,
        ) from e

    return image.with_data(data)
