"""
RecipeScan - Error taxonomy.

Every failure raised by the pipeline or the store derives from RecipeScanError,
grouped by what the caller is expected to do about it:

- InputError: the user must correct the input (API key, provider, import file)
- ProviderError: the AI provider rejected or garbled the call
- UnparseableResponseError: the provider answered, but not with JSON
- StorageError: the store refused the write
- ImageProcessingError / OCRError: a capture step failed
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recipescan.images import ImageBatchResult


class RecipeScanError(Exception):
    """Base class for all RecipeScan errors."""


# =============================================================================
# Input / validation
# =============================================================================


class InputError(RecipeScanError):
    """Invalid user input. Reported immediately, never retried."""


class MissingApiKeyError(InputError):
    def __init__(self, message: str = "API key is required"):
        super().__init__(message)


class UnknownProviderError(InputError, ValueError):
    def __init__(self, provider: object):
        self.provider = provider
        super().__init__(f"Unknown AI provider: {provider}")


class ImportFormatError(InputError):
    """Import file is not an export document or a bare array of recipes."""


class RecipeValidationError(InputError):
    """A recipe violates the data model (e.g. blank title)."""


# =============================================================================
# Provider transport
# =============================================================================


class ProviderError(RecipeScanError):
    """An AI provider call failed."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message)


class ProviderHTTPError(ProviderError):
    """Provider answered with a non-success HTTP status."""

    def __init__(self, provider: str, status_code: int, provider_message: str | None = None):
        self.status_code = status_code
        self.provider_message = provider_message
        detail = provider_message or "Unknown error"
        super().__init__(
            provider,
            f"{provider} API request failed with status {status_code}: {detail}",
        )


class ProviderResponseError(ProviderError):
    """Provider answered 2xx but the payload was not where it should be."""


# =============================================================================
# Parsing
# =============================================================================


class UnparseableResponseError(RecipeScanError):
    """
    The AI response was not a JSON object, even after code-block extraction.

    Usually means the recipe card itself was unreadable.
    """

    def __init__(
        self,
        message: str = "AI returned a non-JSON response. The recipe card may be unclear.",
        raw_text: str | None = None,
    ):
        self.raw_text = raw_text
        super().__init__(message)


# =============================================================================
# Images / OCR
# =============================================================================


class ImageProcessingError(RecipeScanError):
    def __init__(self, message: str, *, name: str | None = None, index: int | None = None):
        self.name = name
        self.index = index
        super().__init__(message)


class ImageBatchError(RecipeScanError):
    """One or more images in a batch failed; carries the partial result."""

    def __init__(self, result: "ImageBatchResult"):
        self.result = result
        super().__init__(
            f"Failed to process {result.failed_count} of "
            f"{result.processed_count + result.failed_count} image(s)"
        )


class OCRError(RecipeScanError):
    def __init__(self, message: str, *, index: int | None = None):
        self.index = index
        super().__init__(message)


# =============================================================================
# Storage
# =============================================================================


class StorageError(RecipeScanError):
    """The recipe store failed or refused an operation."""


class DuplicateTitleError(StorageError):
    def __init__(self, title: str):
        self.title = title
        super().__init__(f"A recipe titled {title!r} already exists")


class RecipeNotFoundError(StorageError):
    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Recipe {recipe_id} not found")
