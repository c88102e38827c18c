"""Anthropic Messages API."""

from typing import Any

from .base import Provider, ProviderClient, ProviderRequest

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicClient(ProviderClient):
    """x-api-key header, text under content[0]."""

    provider = Provider.ANTHROPIC
    endpoint = "https://api.anthropic.com/v1/messages"
    default_model = "claude-3-5-sonnet-20241022"
    max_tokens = 2000
    temperature = 0.3

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        return ProviderRequest(
            url=self.endpoint,
            headers={
                "x-api-key": api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            json={
                "model": model,
                "max_tokens": self.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": self.temperature,
            },
        )

    def extract_text(self, data: dict[str, Any]) -> str:
        return data["content"][0]["text"]
