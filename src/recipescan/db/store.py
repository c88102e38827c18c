"""
RecipeScan - Recipe Store.

Durable local storage for recipes (SQLite via SQLAlchemy by default).
Titles are unique; the database enforces it, so add() and update() fail
on collisions instead of pre-checking. The import path looks titles up
explicitly so duplicates are skipped rather than failing the batch.
"""

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError
from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from recipescan.config import settings
from recipescan.errors import (
    DuplicateTitleError,
    ImportFormatError,
    RecipeNotFoundError,
    RecipeValidationError,
    StorageError,
)
from recipescan.models import ImportMode, ImportResult, Recipe, RecipeDraft

from .schema import Base, RecipeRow

logger = logging.getLogger(__name__)


def _to_recipe(row: RecipeRow) -> Recipe:
    return Recipe(
        id=row.id,
        title=row.title,
        ingredients=list(row.ingredients or []),
        instructions=row.instructions or "",
    )


def _as_draft(recipe: RecipeDraft | Mapping[str, Any]) -> RecipeDraft:
    if isinstance(recipe, RecipeDraft):
        return recipe
    try:
        return RecipeDraft.model_validate(dict(recipe))
    except ValidationError as e:
        raise RecipeValidationError(f"Invalid recipe: {e}") from e


def _require_title(title: str) -> None:
    if not title or not title.strip():
        raise RecipeValidationError("Recipe title is required")


class RecipeStore:
    """
    Recipe storage service.

    open() is idempotent and every operation opens the store on first use,
    so callers only need close() when they want to release the connection.
    """

    def __init__(self, database_url: str | None = None):
        self.database_url = database_url or settings.resolved_database_url
        self._engine: Engine | None = None
        self._sessionmaker: sessionmaker | None = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> "RecipeStore":
        if self._engine is not None:
            return self

        url = make_url(self.database_url)
        engine_kwargs: dict[str, Any] = {}
        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise every session sees an empty DB
                engine_kwargs["poolclass"] = StaticPool
            else:
                Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

        try:
            engine = create_engine(self.database_url, **engine_kwargs)
            Base.metadata.create_all(engine)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not open recipe store at {self.database_url}: {e}") from e

        self._engine = engine
        self._sessionmaker = sessionmaker(bind=engine, expire_on_commit=False)
        logger.debug(f"Opened recipe store at {url.render_as_string(hide_password=True)}")
        return self

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._sessionmaker = None

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        """One unit of work: committed on success, rolled back on any error."""
        self.open()
        try:
            with self._sessionmaker.begin() as session:
                yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            raise StorageError(f"Recipe store operation failed: {e}") from e

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_all(self) -> list[Recipe]:
        """All recipes in insertion order."""
        with self._transaction() as session:
            rows = session.scalars(select(RecipeRow).order_by(RecipeRow.id)).all()
            return [_to_recipe(row) for row in rows]

    async def get_by_id(self, recipe_id: int) -> Recipe | None:
        """A recipe by id, or None if there is none."""
        with self._transaction() as session:
            row = session.get(RecipeRow, recipe_id)
            return _to_recipe(row) if row else None

    async def get_by_title(self, title: str) -> Recipe | None:
        """A recipe by exact (case-sensitive) title, or None."""
        with self._transaction() as session:
            row = session.scalars(select(RecipeRow).where(RecipeRow.title == title)).first()
            return _to_recipe(row) if row else None

    async def count(self) -> int:
        with self._transaction() as session:
            return session.scalar(select(func.count()).select_from(RecipeRow)) or 0

    async def search(self, query: str) -> list[Recipe]:
        """
        Case-insensitive substring search over titles and ingredient lines.

        A blank query returns every recipe.
        """
        needle = (query or "").strip().lower()
        recipes = await self.get_all()
        if not needle:
            return recipes
        return [
            recipe
            for recipe in recipes
            if needle in recipe.title.lower()
            or any(needle in ingredient.lower() for ingredient in recipe.ingredients)
        ]

    # =========================================================================
    # Writes
    # =========================================================================

    async def add(self, recipe: RecipeDraft | Mapping[str, Any]) -> int:
        """
        Store a new recipe and return its id.

        Any id on the input is ignored; the store assigns one.

        Raises:
            RecipeValidationError: If the title is blank
            DuplicateTitleError: If another recipe already has this title
        """
        draft = _as_draft(recipe)
        _require_title(draft.title)

        try:
            with self._transaction() as session:
                row = RecipeRow(
                    title=draft.title,
                    ingredients=list(draft.ingredients),
                    instructions=draft.instructions,
                )
                session.add(row)
                session.flush()
                recipe_id = row.id
        except IntegrityError as e:
            raise DuplicateTitleError(draft.title) from e

        logger.info(f"Added recipe {recipe_id}: {draft.title}")
        return recipe_id

    async def update(self, recipe: Recipe) -> None:
        """
        Replace title, ingredients and instructions of an existing recipe.

        Raises:
            RecipeValidationError: If the title is blank
            RecipeNotFoundError: If no recipe has this id
            DuplicateTitleError: If the new title belongs to another recipe
        """
        _require_title(recipe.title)

        try:
            with self._transaction() as session:
                row = session.get(RecipeRow, recipe.id)
                if row is None:
                    raise RecipeNotFoundError(recipe.id)
                row.title = recipe.title
                row.ingredients = list(recipe.ingredients)
                row.instructions = recipe.instructions
        except IntegrityError as e:
            raise DuplicateTitleError(recipe.title) from e

        logger.info(f"Updated recipe {recipe.id}")

    async def delete(self, recipe_id: int) -> None:
        """Delete a recipe. Unknown ids are ignored."""
        with self._transaction() as session:
            row = session.get(RecipeRow, recipe_id)
            if row is None:
                logger.debug(f"Delete of unknown recipe {recipe_id} ignored")
                return
            session.delete(row)

        logger.info(f"Deleted recipe {recipe_id}")

    async def bulk_import(
        self,
        records: Iterable[RecipeDraft | Mapping[str, Any]],
        mode: ImportMode | str = ImportMode.ADD,
    ) -> ImportResult:
        """
        Import many recipes in one transaction.

        Records are processed in order:
        1. OVERWRITE mode clears the store first
        2. A record with a blank or missing title is skipped
        3. A record whose title is already stored (including earlier records
           of this same import) is skipped, so the first occurrence wins
        4. Anything else is inserted with a fresh id

        If anything fails outright the whole import is rolled back and the
        store is left exactly as it was.

        Raises:
            ImportFormatError: If a record is not an object or has bad field types
            StorageError: If the database rejects the import
        """
        mode = ImportMode(mode)
        result = ImportResult()

        try:
            with self._transaction() as session:
                if mode is ImportMode.OVERWRITE:
                    session.execute(delete(RecipeRow))
                    logger.info("Recipe store cleared for overwrite import")

                for position, record in enumerate(records):
                    data = _record_data(record, position)
                    title = data.get("title")

                    if not isinstance(title, str) or not title.strip():
                        result.skipped_count += 1
                        continue

                    exists = session.scalars(
                        select(RecipeRow.id).where(RecipeRow.title == title)
                    ).first()
                    if exists is not None:
                        result.skipped_count += 1
                        continue

                    data.pop("id", None)
                    draft = _validate_record(data, position)
                    session.add(
                        RecipeRow(
                            title=draft.title,
                            ingredients=list(draft.ingredients),
                            instructions=draft.instructions,
                        )
                    )
                    session.flush()
                    result.added_count += 1
        except IntegrityError as e:
            raise StorageError(f"Import aborted, no changes were made: {e}") from e

        logger.info(
            f"Imported recipes ({mode.value}): added {result.added_count}, "
            f"skipped {result.skipped_count}"
        )
        return result


def _record_data(record: Any, position: int) -> dict[str, Any]:
    if isinstance(record, BaseModel):
        return record.model_dump()
    if isinstance(record, Mapping):
        return dict(record)
    raise ImportFormatError(f"Recipe #{position + 1} is not an object")


def _validate_record(data: dict[str, Any], position: int) -> RecipeDraft:
    try:
        return RecipeDraft.model_validate(data)
    except ValidationError as e:
        raise ImportFormatError(f"Recipe #{position + 1} is malformed: {e}") from e


# Process-wide default store, opened lazily on first use
_store: RecipeStore | None = None


def get_store() -> RecipeStore:
    """Get the default RecipeStore (configured from settings)."""
    global _store

    if _store is None:
        _store = RecipeStore()

    return _store
