"""
Worker-side view of a relay server over HTTP.

The worker cannot be reached from the internet, so it polls the server:

    GET  /relay/pending            -> {"requests": [<WorkItem>, ...]}
    POST /relay/response           <- {"requestId", "value" | "errorMessage"}
    POST /relay/pending/remove     <- {"item": <WorkItem>}

Every request carries the shared secret in ``X-Agent-Secret``. Any network
error or non-2xx response becomes RelayTransportError.
"""

import json
from typing import Any

import httpx

from agentrelay.errors import RelayTransportError
from agentrelay.relay.models import Result, WorkItem, canonical_json
from agentrelay.relay.store import serialized

SECRET_HEADER = "X-Agent-Secret"


class RelayHttpClient:
    """Thin authenticated wrapper over httpx.AsyncClient."""

    def __init__(self, base_url: str, secret: str, timeout: float = 10.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={SECRET_HEADER: secret},
            timeout=timeout,
            transport=transport,
        )

    async def request(self, method: str, path: str, payload: Any = None) -> Any:
        try:
            response = await self._client.request(method, path, json=payload)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise RelayTransportError(
                f"{method} {path} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise RelayTransportError(f"{method} {path} failed: {e}") from e
        except json.JSONDecodeError as e:
            raise RelayTransportError(f"{method} {path} returned invalid JSON") from e

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RelayHttpClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()


class RemotePendingQueue:
    """WorkSource backed by the server's pending endpoints."""

    def __init__(self, http: RelayHttpClient):
        self._http = http

    async def list_all(self) -> list[str]:
        body = await self._http.request("GET", "/relay/pending")
        requests = body.get("requests") if isinstance(body, dict) else None
        if not isinstance(requests, list):
            raise RelayTransportError("GET /relay/pending returned no request list")
        # Re-serialize canonically so remove() matches what the server stores.
        return [canonical_json(item) for item in requests]

    async def remove(self, item: WorkItem | str) -> None:
        await self._http.request("POST", "/relay/pending/remove", {"item": json.loads(serialized(item))})


class RemoteResultSink:
    """ResultSink backed by POST /relay/response."""

    def __init__(self, http: RelayHttpClient):
        self._http = http

    async def publish(self, result: Result) -> None:
        await self._http.request("POST", "/relay/response", result.to_dict())
