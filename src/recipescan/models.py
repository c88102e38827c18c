"""Data models for recipes and imports."""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def split_lines(text: str) -> list[str]:
    """Split text on line breaks, keeping non-empty trimmed lines in order."""
    return [line.strip() for line in text.splitlines() if line.strip()]


class RecipeDraft(BaseModel):
    """A recipe that has not been stored yet (no id)."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    ingredients: list[str] = Field(default_factory=list)
    instructions: str = ""

    @field_validator("title", "instructions", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @field_validator("ingredients", mode="before")
    @classmethod
    def _coerce_ingredients(cls, value):
        # Providers and hand-edited files sometimes send one newline-delimited string
        if value is None:
            return []
        if isinstance(value, str):
            return split_lines(value)
        return value

    @property
    def has_title(self) -> bool:
        return bool(self.title.strip())


class Recipe(RecipeDraft):
    """A stored recipe."""

    id: int

    def to_draft(self) -> RecipeDraft:
        return RecipeDraft(
            title=self.title,
            ingredients=list(self.ingredients),
            instructions=self.instructions,
        )


class ImportMode(str, Enum):
    """How bulk import treats existing recipes."""

    ADD = "add"
    OVERWRITE = "overwrite"


@dataclass
class ImportResult:
    """Outcome of a bulk import."""

    added_count: int = 0
    skipped_count: int = 0

    @property
    def total(self) -> int:
        return self.added_count + self.skipped_count
