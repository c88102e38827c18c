"""
RecipeScan - Ingestion pipeline.

Wires the stages together:

    images -> normalize -> OCR -> provider -> normalize reply -> draft -> store

Each stage can also be used on its own; the editor collaborator typically
calls scan_recipe(), lets the user fix the draft, then calls save_recipe().
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import httpx

from recipescan.db import RecipeStore
from recipescan.images import ImageFailure, PendingImage, normalize_batch
from recipescan.models import Recipe, RecipeDraft
from recipescan.ocr import OCRCapability, extract_text
from recipescan.parsing import to_draft
from recipescan.providers import ProviderConfig, structure_recipe

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Everything a scan produced, ready for review."""

    raw_text: str
    draft: RecipeDraft
    failed_images: list[ImageFailure] = field(default_factory=list)


async def scan_images(
    images: Sequence[PendingImage],
    capability: OCRCapability,
    *,
    allow_partial: bool = False,
) -> tuple[str, list[ImageFailure]]:
    """
    Normalize images and run OCR over them in order.

    Args:
        images: Captured images in display order
        capability: OCR capability
        allow_partial: Scan the images that normalized fine even if some failed

    Raises:
        ImageBatchError: If any image failed and allow_partial is False,
            or if every image failed
        OCRError: If recognition fails
    """
    batch = normalize_batch(list(images))
    if not allow_partial or not batch.processed:
        batch.raise_for_failures()

    text = await extract_text(batch.processed, capability)
    return text, batch.failures


async def parse_recipe_text(
    raw_text: str,
    config: ProviderConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> RecipeDraft:
    """Structure OCR text with the configured provider and default missing fields."""
    record = await structure_recipe(raw_text, config, http_client=http_client)
    draft = to_draft(record)
    logger.info(f"Parsed recipe {draft.title!r} with {len(draft.ingredients)} ingredient(s)")
    return draft


async def scan_recipe(
    images: Sequence[PendingImage],
    config: ProviderConfig,
    capability: OCRCapability,
    *,
    allow_partial: bool = False,
    http_client: httpx.AsyncClient | None = None,
) -> ScanResult:
    """Full scan: images in, editable draft out."""
    # Check the key before spending time on OCR
    config.require_api_key()

    raw_text, failures = await scan_images(images, capability, allow_partial=allow_partial)
    draft = await parse_recipe_text(raw_text, config, http_client=http_client)
    return ScanResult(raw_text=raw_text, draft=draft, failed_images=failures)


async def save_recipe(
    store: RecipeStore,
    draft: RecipeDraft,
    recipe_id: int | None = None,
) -> int:
    """
    Persist a reviewed draft.

    Creates a new recipe, or replaces recipe_id when editing an existing one.
    Returns the recipe id.
    """
    if recipe_id is None:
        return await store.add(draft)

    await store.update(Recipe(id=recipe_id, **draft.model_dump(exclude={"id"})))
    return recipe_id
