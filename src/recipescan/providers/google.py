"""Google AI (Gemini) generateContent API."""

from typing import Any

from .base import Provider, ProviderClient, ProviderRequest

GOOGLE_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


class GoogleAIClient(ProviderClient):
    """Gemini: API key as a query parameter, text under candidates[0]."""

    provider = Provider.GOOGLE
    default_model = "gemini-1.5-pro"

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        return ProviderRequest(
            url=f"{GOOGLE_API_BASE}/{model}:generateContent",
            params={"key": api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
        )

    def extract_text(self, data: dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]
