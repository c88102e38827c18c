"""AI providers that turn OCR text into structured recipes."""

from .base import Provider, ProviderClient, ProviderConfig
from .gateway import (
    DEFAULT_MODELS,
    PROVIDER_CLIENTS,
    get_provider_client,
    structure,
    structure_recipe,
)
from .prompt import build_prompt

__all__ = [
    "Provider",
    "ProviderClient",
    "ProviderConfig",
    "DEFAULT_MODELS",
    "PROVIDER_CLIENTS",
    "get_provider_client",
    "structure",
    "structure_recipe",
    "build_prompt",
]
