"""Minimal OpenAI-compatible chat completions client (Groq by default)."""

import logging

import httpx

log = logging.getLogger(__name__)


class LLMError(Exception):
    """The completion call failed or returned nothing usable."""


class LLMClient:
    def __init__(self, http: httpx.AsyncClient, api_key: str, base_url: str, model: str):
        self.http = http
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model

    async def complete(self, system: str, user: str, max_tokens: int = 300,
                       temperature: float = 0.7, json_mode: bool = False) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self.http.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=30.0,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise LLMError(f"chat completion failed: {e}") from e
        except ValueError as e:
            raise LLMError("chat completion returned invalid JSON") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise LLMError("chat completion had no content") from e
        if not content:
            raise LLMError("chat completion was empty")
        return content
