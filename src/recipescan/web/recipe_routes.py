"""
Recipe API routes.

CRUD, search, shopping list, import/export, and the scan/parse entry
points. Errors surface as RecipeScan exceptions and are mapped to HTTP
status codes by the handlers registered in app.py.
"""

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Body, Depends, File, Query, Response, UploadFile
from pydantic import BaseModel, Field

from recipescan.db import RecipeStore
from recipescan.errors import RecipeNotFoundError
from recipescan.images import PendingImage
from recipescan.models import ImportMode, Recipe, RecipeDraft
from recipescan.ocr import OCRCapability
from recipescan.pipeline import parse_recipe_text, save_recipe, scan_recipe
from recipescan.providers import ProviderConfig
from recipescan.shopping import shopping_list_for
from recipescan.transfer import build_export, parse_import_document
from recipescan.web.deps import (
    get_http_client,
    get_ocr_capability,
    get_provider_config,
    get_recipe_store,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recipes"])


# =============================================================================
# Request/Response Models
# =============================================================================


class ShoppingListRequest(BaseModel):
    recipe_ids: list[int] = Field(default_factory=list)


class ShoppingListResponse(BaseModel):
    items: list[str]


class ImportResponse(BaseModel):
    added_count: int
    skipped_count: int


class ParseRequest(BaseModel):
    text: str


class FailedImage(BaseModel):
    index: int
    name: str
    reason: str


class ScanResponse(BaseModel):
    raw_text: str
    draft: RecipeDraft
    failed_images: list[FailedImage] = Field(default_factory=list)


# =============================================================================
# Recipes
# =============================================================================


@router.get("/recipes", response_model=list[Recipe])
async def list_recipes(store: RecipeStore = Depends(get_recipe_store)):
    return await store.get_all()


@router.post("/recipes", response_model=Recipe, status_code=201)
async def create_recipe(draft: RecipeDraft, store: RecipeStore = Depends(get_recipe_store)):
    recipe_id = await save_recipe(store, draft)
    return await store.get_by_id(recipe_id)


# Declared before /recipes/{recipe_id} so "search" is not read as an id
@router.get("/recipes/search", response_model=list[Recipe])
async def search_recipes(
    q: str = Query("", description="Text to find in titles or ingredients"),
    store: RecipeStore = Depends(get_recipe_store),
):
    return await store.search(q)


@router.get("/recipes/{recipe_id}", response_model=Recipe)
async def get_recipe(recipe_id: int, store: RecipeStore = Depends(get_recipe_store)):
    recipe = await store.get_by_id(recipe_id)
    if recipe is None:
        raise RecipeNotFoundError(recipe_id)
    return recipe


@router.put("/recipes/{recipe_id}", response_model=Recipe)
async def update_recipe(
    recipe_id: int,
    draft: RecipeDraft,
    store: RecipeStore = Depends(get_recipe_store),
):
    await save_recipe(store, draft, recipe_id=recipe_id)
    return await store.get_by_id(recipe_id)


@router.delete("/recipes/{recipe_id}", status_code=204)
async def delete_recipe(recipe_id: int, store: RecipeStore = Depends(get_recipe_store)):
    await store.delete(recipe_id)
    return Response(status_code=204)


@router.post("/shopping-list", response_model=ShoppingListResponse)
async def shopping_list(
    request: ShoppingListRequest,
    store: RecipeStore = Depends(get_recipe_store),
):
    items = await shopping_list_for(store, request.recipe_ids)
    return ShoppingListResponse(items=items)


# =============================================================================
# Import / Export
# =============================================================================


@router.get("/export")
async def export_recipes(store: RecipeStore = Depends(get_recipe_store)):
    return build_export(await store.get_all())


@router.post("/import", response_model=ImportResponse)
async def import_recipes(
    payload: Any = Body(...),
    mode: ImportMode = Query(ImportMode.ADD),
    store: RecipeStore = Depends(get_recipe_store),
):
    """
    Import an export document or a bare array of recipes.

    mode=overwrite deletes every stored recipe first; the client is
    expected to have confirmed this with the user.
    """
    records = parse_import_document(payload)
    result = await store.bulk_import(records, mode)
    logger.info(f"Import ({mode.value}): added {result.added_count}, skipped {result.skipped_count}")
    return ImportResponse(added_count=result.added_count, skipped_count=result.skipped_count)


# =============================================================================
# Scan / Parse
# =============================================================================


@router.post("/parse", response_model=RecipeDraft)
async def parse_text(
    request: ParseRequest,
    config: ProviderConfig = Depends(get_provider_config),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """Structure already-extracted text into a draft (not saved)."""
    return await parse_recipe_text(request.text, config, http_client=http_client)


@router.post("/scan", response_model=ScanResponse)
async def scan_images(
    files: list[UploadFile] = File(..., description="Card photos in reading order"),
    allow_partial: bool = Query(False),
    config: ProviderConfig = Depends(get_provider_config),
    capability: OCRCapability = Depends(get_ocr_capability),
    http_client: httpx.AsyncClient = Depends(get_http_client),
):
    """Scan uploaded card photos into a draft (not saved)."""
    images = []
    for index, upload in enumerate(files):
        images.append(
            PendingImage(
                data=await upload.read(),
                index=index,
                name=upload.filename or f"image-{index + 1}",
            )
        )

    result = await scan_recipe(
        images,
        config,
        capability,
        allow_partial=allow_partial,
        http_client=http_client,
    )
    return ScanResponse(
        raw_text=result.raw_text,
        draft=result.draft,
        failed_images=[
            FailedImage(index=f.index, name=f.name, reason=f.reason)
            for f in result.failed_images
        ],
    )
