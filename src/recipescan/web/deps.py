"""
Shared FastAPI dependencies.

Tests replace these through app.dependency_overrides.
"""

from collections.abc import AsyncIterator

import httpx

from recipescan.config import settings
from recipescan.db import RecipeStore, get_store
from recipescan.ocr import OCRCapability, TesseractCapability
from recipescan.providers import ProviderConfig
from recipescan.settings_store import load_provider_config


def get_recipe_store() -> RecipeStore:
    return get_store()


def get_provider_config() -> ProviderConfig:
    return load_provider_config()


def get_ocr_capability() -> OCRCapability:
    return TesseractCapability()


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
        yield client
