"""
RecipeScan - Export and import files.

Export document (version 1):
    {"version": 1, "exportedAt": "2026-01-01T17:30:00+00:00", "recipes": [...]}

Import accepts that document or, for files written by older versions,
a bare top-level array of recipes.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from recipescan.db import RecipeStore
from recipescan.errors import ImportFormatError
from recipescan.models import ImportMode, ImportResult, Recipe

logger = logging.getLogger(__name__)

EXPORT_VERSION = 1
DEFAULT_EXPORT_FILENAME = "recipes-export.json"


def build_export(recipes: list[Recipe], exported_at: datetime | None = None) -> dict[str, Any]:
    """Build the versioned export document."""
    exported_at = exported_at or datetime.now(timezone.utc)
    return {
        "version": EXPORT_VERSION,
        "exportedAt": exported_at.isoformat(),
        "recipes": [recipe.model_dump() for recipe in recipes],
    }


def dumps_export(recipes: list[Recipe], exported_at: datetime | None = None) -> str:
    return json.dumps(build_export(recipes, exported_at), indent=2, ensure_ascii=False)


async def export_recipes(store: RecipeStore, path: str | Path) -> int:
    """Write every stored recipe to an export file. Returns the recipe count."""
    recipes = await store.get_all()
    path = Path(path)
    path.write_text(dumps_export(recipes), encoding="utf-8")
    logger.info(f"Exported {len(recipes)} recipe(s) to {path}")
    return len(recipes)


def parse_import_document(data: Any) -> list[Any]:
    """
    Pull the recipe list out of a decoded import file.

    Raises:
        ImportFormatError: If data is neither an export document nor an array
    """
    if isinstance(data, dict) and isinstance(data.get("recipes"), list):
        return data["recipes"]
    if isinstance(data, list):
        return data
    raise ImportFormatError("Invalid JSON format. Expected an array of recipes.")


def loads_import(text: str) -> list[Any]:
    """Decode import file contents and return its recipe list."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Import file is not valid JSON: {e}") from e
    return parse_import_document(data)


async def import_recipes(
    store: RecipeStore,
    path: str | Path,
    mode: ImportMode | str = ImportMode.ADD,
) -> ImportResult:
    """
    Import recipes from a file.

    OVERWRITE mode replaces every stored recipe; confirm with the user first.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ImportFormatError(f"Import file is not UTF-8 text: {e}") from e

    records = loads_import(text)
    logger.info(f"Importing {len(records)} record(s) from {path}")
    return await store.bulk_import(records, mode)
