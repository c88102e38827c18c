"""Local recipe storage."""

from .store import RecipeStore, get_store

__all__ = ["RecipeStore", "get_store"]
