"""
Tests for shopping list aggregation.
"""

import asyncio

from recipescan.models import Recipe, RecipeDraft
from recipescan.shopping import build_shopping_list, shopping_list_for


class TestBuildShoppingList:
    """Test merging ingredient lines."""

    def test_merges_sorts_and_dedupes(self):
        recipes = [
            Recipe(id=1, title="Cake", ingredients=["sugar", "flour", "2 eggs"]),
            Recipe(id=2, title="Bread", ingredients=["flour", "  yeast  ", ""]),
        ]
        assert build_shopping_list(recipes) == ["2 eggs", "flour", "sugar", "yeast"]

    def test_exact_duplicates_only(self):
        recipes = [Recipe(id=1, title="A", ingredients=["Flour", "flour"])]
        assert build_shopping_list(recipes) == ["Flour", "flour"]

    def test_no_recipes(self):
        assert build_shopping_list([]) == []


class TestShoppingListFor:
    """Test building from stored recipes."""

    def test_unknown_ids_are_skipped(self, store):
        cake = asyncio.run(store.add(RecipeDraft(title="Cake", ingredients=["sugar", "flour"])))
        bread = asyncio.run(store.add(RecipeDraft(title="Bread", ingredients=["flour", "yeast"])))

        items = asyncio.run(shopping_list_for(store, [cake, 999, bread]))

        assert items == ["flour", "sugar", "yeast"]
