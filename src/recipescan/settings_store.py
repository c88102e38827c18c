"""
RecipeScan - Persisted provider configuration.

The user's provider, API key and model live in a small JSON file
(<data_dir>/settings.json) under stable keys:

    {"aiProvider": "openai", "apiKey": "...", "modelName": "gpt-4o"}

Files written before multi-provider support used geminiApiKey and
geminiModelName; those are still read (as Google settings) when the
stable keys are missing. Saving always writes the stable keys.

Load once at startup and pass the ProviderConfig down explicitly.
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from recipescan.config import Settings, get_settings
from recipescan.errors import InputError
from recipescan.providers import Provider, ProviderConfig

logger = logging.getLogger(__name__)

PROVIDER_KEY = "aiProvider"
API_KEY_KEY = "apiKey"
MODEL_KEY = "modelName"

LEGACY_API_KEY_KEY = "geminiApiKey"
LEGACY_MODEL_KEY = "geminiModelName"


class ProviderConfigFile:
    """Reads and writes ProviderConfig to the settings file."""

    def __init__(self, path: str | Path | None = None, fallback: Settings | None = None):
        self.fallback = fallback or get_settings()
        self.path = Path(path) if path else self.fallback.settings_file

    def read_raw(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InputError(f"Settings file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise InputError(f"Settings file {self.path} must contain a JSON object")
        return data

    def load(self) -> ProviderConfig:
        """
        Load the provider configuration.

        Precedence per field: stable key, legacy key, environment fallback.

        Raises:
            InputError: If a stored value is not a string
            UnknownProviderError: If the stored provider is not supported
        """
        raw = self.read_raw()
        for key in (PROVIDER_KEY, API_KEY_KEY, MODEL_KEY, LEGACY_API_KEY_KEY, LEGACY_MODEL_KEY):
            if raw.get(key) is not None and not isinstance(raw[key], str):
                raise InputError(f"Settings file {self.path}: {key} must be a string")

        legacy = raw.get(PROVIDER_KEY) is None and (
            LEGACY_API_KEY_KEY in raw or LEGACY_MODEL_KEY in raw
        )

        if raw.get(PROVIDER_KEY) is not None:
            provider = Provider.parse(raw[PROVIDER_KEY])
        elif legacy:
            provider = Provider.GOOGLE
        else:
            provider = Provider.parse(self.fallback.ai_provider)

        api_key = raw.get(API_KEY_KEY)
        if api_key is None:
            api_key = raw.get(LEGACY_API_KEY_KEY)
        if api_key is None:
            api_key = self.fallback.api_key or ""

        model_name = raw.get(MODEL_KEY)
        if model_name is None and provider is Provider.GOOGLE:
            model_name = raw.get(LEGACY_MODEL_KEY)
        if model_name is None:
            model_name = self.fallback.model_name

        if legacy:
            logger.info(f"Read legacy Gemini settings from {self.path}")

        return ProviderConfig(
            provider=provider,
            api_key=SecretStr(api_key),
            model_name=model_name or None,
        )

    def save(self, config: ProviderConfig) -> None:
        """Write the config under the stable keys, dropping legacy ones."""
        raw = self.read_raw()
        raw.pop(LEGACY_API_KEY_KEY, None)
        raw.pop(LEGACY_MODEL_KEY, None)
        raw[PROVIDER_KEY] = config.provider.value
        raw[API_KEY_KEY] = config.api_key.get_secret_value()
        raw[MODEL_KEY] = config.model_name or ""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(raw, indent=2), encoding="utf-8")
        logger.info(f"Saved {config.provider.value} settings to {self.path}")


def load_provider_config(path: str | Path | None = None) -> ProviderConfig:
    return ProviderConfigFile(path).load()


def save_provider_config(config: ProviderConfig, path: str | Path | None = None) -> None:
    ProviderConfigFile(path).save(config)
