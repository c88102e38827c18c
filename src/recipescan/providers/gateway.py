"""
RecipeScan - AI Structuring Gateway.

Turns raw OCR text into a recipe record via the configured provider.
All provider calls go through here for consistency and prompt logging.
"""

import logging

import httpx

from recipescan.config import settings
from recipescan.parsing import normalize_response

from .anthropic import AnthropicClient
from .base import Provider, ProviderClient, ProviderConfig
from .chat import OpenAIClient, XAIClient
from .google import GoogleAIClient
from .prompt import build_prompt
from .prompt_logger import log_prompt

logger = logging.getLogger(__name__)

PROVIDER_CLIENTS: dict[Provider, ProviderClient] = {
    Provider.GOOGLE: GoogleAIClient(),
    Provider.OPENAI: OpenAIClient(),
    Provider.ANTHROPIC: AnthropicClient(),
    Provider.XAI: XAIClient(),
}

_unregistered = set(Provider) - set(PROVIDER_CLIENTS)
if _unregistered:
    raise RuntimeError(f"No client registered for providers: {sorted(p.value for p in _unregistered)}")

DEFAULT_MODELS: dict[Provider, str] = {
    provider: client.default_model for provider, client in PROVIDER_CLIENTS.items()
}


def get_provider_client(provider: Provider | str) -> ProviderClient:
    """Look up the client for a provider. Unknown identifiers raise."""
    return PROVIDER_CLIENTS[Provider.parse(provider)]


async def structure(
    raw_text: str,
    config: ProviderConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> str:
    """
    Send OCR text to the configured provider and return its raw reply.

    Args:
        raw_text: Text extracted from the recipe card
        config: Provider, API key and optional model name
        http_client: Optional client to reuse (tests inject a mock transport)

    Returns:
        The assistant's text, unparsed

    Raises:
        MissingApiKeyError: If no API key is configured
        UnknownProviderError: If the provider is not supported
        ProviderHTTPError: On a non-success status
        ProviderResponseError: If the reply is missing its text payload
        httpx.HTTPError: On network failure
    """
    client = get_provider_client(config.provider)
    config.require_api_key()

    prompt = build_prompt(raw_text)
    model = client.resolve_model(config)

    try:
        if http_client is None:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as http:
                text = await client.send(prompt, config, http)
        else:
            text = await client.send(prompt, config, http_client)
    except Exception as e:
        logger.warning(f"{client.provider.value} call failed: {e}")
        log_prompt(provider=client.provider.value, model=model, prompt=prompt, error=str(e))
        raise

    log_prompt(provider=client.provider.value, model=model, prompt=prompt, response=text)
    return text


async def structure_recipe(
    raw_text: str,
    config: ProviderConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> dict:
    """Structure OCR text and normalize the reply into a recipe-shaped dict."""
    raw_response = await structure(raw_text, config, http_client=http_client)
    return normalize_response(raw_response)
