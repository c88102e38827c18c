"""
RecipeScan - AI provider base types.

Each provider is one ProviderClient subclass that knows its endpoint,
how to authenticate, how to wrap the prompt, and where the assistant's
text sits in the response envelope. Everything else (the prompt, error
handling, the HTTP call itself) is shared here.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
from pydantic import BaseModel, SecretStr, field_validator

from recipescan.errors import (
    MissingApiKeyError,
    ProviderHTTPError,
    ProviderResponseError,
    UnknownProviderError,
)

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    """Supported AI text-completion providers."""

    GOOGLE = "google"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    XAI = "xai"

    @classmethod
    def parse(cls, value: "Provider | str") -> "Provider":
        """Resolve a provider identifier, accepting legacy names."""
        if isinstance(value, Provider):
            return value
        key = str(value).strip().lower()
        key = LEGACY_PROVIDER_NAMES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise UnknownProviderError(value) from None

    @property
    def display_name(self) -> str:
        return DISPLAY_NAMES[self]


LEGACY_PROVIDER_NAMES = {
    "gemini": "google",
    "claude": "anthropic",
    "grok": "xai",
}

DISPLAY_NAMES = {
    Provider.GOOGLE: "Google AI (Gemini)",
    Provider.OPENAI: "OpenAI",
    Provider.ANTHROPIC: "Anthropic (Claude)",
    Provider.XAI: "xAI (Grok)",
}


class ProviderConfig(BaseModel):
    """Which provider to call, with which key and model."""

    provider: Provider = Provider.GOOGLE
    api_key: SecretStr = SecretStr("")
    model_name: str | None = None

    @field_validator("provider", mode="before")
    @classmethod
    def _legacy_provider(cls, value):
        if isinstance(value, str):
            return LEGACY_PROVIDER_NAMES.get(value.strip().lower(), value)
        return value

    def require_api_key(self) -> str:
        key = self.api_key.get_secret_value().strip()
        if not key:
            raise MissingApiKeyError()
        return key


@dataclass
class ProviderRequest:
    """One POST to a provider."""

    url: str
    json: dict[str, Any]
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)


class ProviderClient(ABC):
    """One AI provider variant."""

    provider: Provider
    default_model: str

    def resolve_model(self, config: ProviderConfig) -> str:
        return (config.model_name or "").strip() or self.default_model

    @abstractmethod
    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        """Build endpoint, auth and envelope for a prompt."""

    @abstractmethod
    def extract_text(self, data: dict[str, Any]) -> str:
        """Pull the assistant's text out of a success response body."""

    def extract_error_message(self, data: Any) -> str | None:
        """Pull the provider's own error message out of an error body."""
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and isinstance(error.get("message"), str):
                return error["message"]
        return None

    async def send(self, prompt: str, config: ProviderConfig, http: httpx.AsyncClient) -> str:
        """
        Send a prompt and return the raw assistant text.

        Single attempt. Network errors from httpx propagate unchanged.

        Raises:
            MissingApiKeyError: If the config has no API key
            ProviderHTTPError: On a non-success HTTP status
            ProviderResponseError: If the body lacks the expected payload
        """
        api_key = config.require_api_key()
        model = self.resolve_model(config)
        request = self.build_request(prompt, api_key, model)

        logger.info(f"Calling {self.provider.value} model {model}")
        response = await http.post(
            request.url,
            json=request.json,
            headers={"Content-Type": "application/json", **request.headers},
            params=request.params or None,
        )

        if not response.is_success:
            try:
                message = self.extract_error_message(response.json())
            except ValueError:
                message = None
            raise ProviderHTTPError(self.provider.display_name, response.status_code, message)

        try:
            text = self.extract_text(response.json())
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderResponseError(
                self.provider.display_name,
                f"{self.provider.display_name} returned an unexpected response shape: {e}",
            ) from e

        if not isinstance(text, str):
            raise ProviderResponseError(
                self.provider.display_name,
                f"{self.provider.display_name} returned no text content",
            )
        return text
