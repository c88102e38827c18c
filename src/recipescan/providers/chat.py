"""OpenAI-compatible chat completions APIs (OpenAI, xAI)."""

from typing import Any

from .base import Provider, ProviderClient, ProviderRequest
from .prompt import SYSTEM_PROMPT


class ChatCompletionsClient(ProviderClient):
    """Bearer auth, messages envelope, text under choices[0].message."""

    endpoint: str
    temperature = 0.3

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        return ProviderRequest(
            url=self.endpoint,
            headers={"Authorization": f"Bearer {api_key}"},
            json={
                "model": model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": self.temperature,
            },
        )

    def extract_text(self, data: dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]


class OpenAIClient(ChatCompletionsClient):
    provider = Provider.OPENAI
    endpoint = "https://api.openai.com/v1/chat/completions"
    default_model = "gpt-4o"


class XAIClient(ChatCompletionsClient):
    provider = Provider.XAI
    endpoint = "https://api.x.ai/v1/chat/completions"
    default_model = "grok-beta"
