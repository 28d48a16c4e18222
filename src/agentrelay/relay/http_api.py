"""
Relay HTTP API (Starlette).

The private worker polls these endpoints; the server itself never connects
to the worker.

    GET  /health                   liveness and queue depth (no auth)
    GET  /relay/pending            full pending list
    POST /relay/response           publish a Result
    POST /relay/pending/remove     remove one pending item by exact match

Relay endpoints require the shared secret in the ``X-Agent-Secret`` header.
"""

import hmac
import logging

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from agentrelay.errors import RelayTransportError
from agentrelay.relay.context import RelayContext
from agentrelay.relay.models import Result, canonical_json, strict_loads
from agentrelay.relay.remote import SECRET_HEADER
from agentrelay.reliability import ValidationError

log = logging.getLogger(__name__)


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def _json_body(request: Request) -> dict:
    try:
        body = strict_loads(await request.body())
    except ValueError as e:
        raise ValidationError(f"invalid JSON body: {e}") from e
    if not isinstance(body, dict):
        raise ValidationError("body must be a JSON object")
    return body


def create_app(context: RelayContext, secret: str, lifespan=None) -> Starlette:
    """Build the relay ASGI app around ``context``."""

    def authorized(request: Request) -> bool:
        supplied = request.headers.get(SECRET_HEADER, "")
        return bool(secret) and hmac.compare_digest(supplied.encode(), secret.encode())

    def guarded(handler):
        async def endpoint(request: Request) -> JSONResponse:
            if not authorized(request):
                log.warning(f"Unauthorized {request.method} {request.url.path} from "
                            f"{request.client.host if request.client else 'unknown'}")
                return _error("Unauthorized", 401)
            try:
                return await handler(request)
            except ValidationError as e:
                return _error(str(e), 400)
            except RelayTransportError as e:
                log.error(f"Store failure on {request.url.path}: {e}")
                return _error("Relay store unavailable", 503)
        return endpoint

    async def health(request: Request) -> JSONResponse:
        try:
            pending = len(await context.queue.list_all())
        except RelayTransportError as e:
            return JSONResponse({"healthy": False, "error": str(e)}, status_code=503)
        return JSONResponse({"healthy": True, "backend": context.backend, "pending": pending})

    async def list_pending(request: Request) -> JSONResponse:
        requests = []
        for raw in await context.queue.list_all():
            try:
                requests.append(strict_loads(raw))
            except ValueError:
                log.warning(f"Skipping unreadable pending entry: {raw[:100]}")
        return JSONResponse({"requests": requests})

    async def post_response(request: Request) -> JSONResponse:
        result = Result.from_dict(await _json_body(request))
        await context.store.publish(result)
        log.info(f"Result stored for {result.request_id} ({'ok' if result.ok else 'error'})")
        return JSONResponse({"success": True})

    async def remove_pending(request: Request) -> JSONResponse:
        item = (await _json_body(request)).get("item")
        if not isinstance(item, dict):
            raise ValidationError("item must be a JSON object")
        await context.queue.remove(canonical_json(item))
        return JSONResponse({"success": True})

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/relay/pending", guarded(list_pending), methods=["GET"]),
        Route("/relay/response", guarded(post_response), methods=["POST"]),
        Route("/relay/pending/remove", guarded(remove_pending), methods=["POST"]),
    ]
    return Starlette(routes=routes, lifespan=lifespan)
