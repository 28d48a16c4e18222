"""
Mock OpenAI-compatible chat completions endpoint.

Serves scripted completions through httpx.MockTransport, so LLMClient
runs its real request/response code against it.
"""

import json
from collections import deque
from typing import Any, Optional, Union

import httpx

from agentrelay.router.llm import LLMClient


class MockLLMServer:
    """
    Usage:
        llm = MockLLMServer()
        llm.queue_json({"needsAgent": False, "directResponse": "Hi!"})
        client = llm.client()
        text = await client.complete("system", "user")

    When the script runs out, every further call gets ``default``.
    """

    def __init__(self, default: Optional[str] = "OK"):
        self.default = default
        self.requests: list[dict] = []
        self._script: deque[Union[str, int]] = deque()

    def queue(self, content: str) -> None:
        self._script.append(content)

    def queue_json(self, data: Any) -> None:
        self._script.append(json.dumps(data))

    def queue_status(self, status_code: int) -> None:
        """Next call answers with an HTTP error status."""
        self._script.append(status_code)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append({
            "url": str(request.url),
            "headers": dict(request.headers),
            "body": json.loads(request.content),
        })
        item = self._script.popleft() if self._script else self.default
        if isinstance(item, int):
            return httpx.Response(item, json={"error": {"message": "mock failure"}})
        return httpx.Response(200, json={
            "choices": [{"message": {"role": "assistant", "content": item}}],
        })

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def client(self, api_key: str = "test-llm-key") -> LLMClient:
        http = httpx.AsyncClient(transport=self.transport())
        return LLMClient(http, api_key, "http://llm.test/v1", "test-model")

    @property
    def last_body(self) -> dict:
        return self.requests[-1]["body"]
