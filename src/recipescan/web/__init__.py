"""RecipeScan JSON API."""
