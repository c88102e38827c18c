"""Shopping list aggregation across selected recipes."""

import logging
from collections.abc import Iterable

from recipescan.db import RecipeStore
from recipescan.models import Recipe

logger = logging.getLogger(__name__)


def build_shopping_list(recipes: Iterable[Recipe]) -> list[str]:
    """
    Merge ingredient lines from several recipes.

    Lines are trimmed, blanks dropped, exact duplicates collapsed, and the
    result sorted alphabetically.
    """
    items: set[str] = set()
    for recipe in recipes:
        for ingredient in recipe.ingredients:
            line = ingredient.strip()
            if line:
                items.add(line)
    return sorted(items)


async def shopping_list_for(store: RecipeStore, recipe_ids: Iterable[int]) -> list[str]:
    """Build a shopping list for recipe ids; unknown ids are skipped."""
    recipes = []
    for recipe_id in recipe_ids:
        recipe = await store.get_by_id(recipe_id)
        if recipe is None:
            logger.debug(f"Shopping list: recipe {recipe_id} not found, skipping")
            continue
        recipes.append(recipe)
    return build_shopping_list(recipes)
