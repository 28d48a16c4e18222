#!/usr/bin/env python3
"""
Agent Relay server - the public half.

Serves the relay HTTP API for the private worker, runs the Telegram bot
when configured, and periodically purges expired results.

Usage:
    agentrelay-server            # settings from env / ~/.agentrelay/config.env
"""

import asyncio
import contextlib
import logging
import sys
from collections.abc import AsyncIterator

import httpx
import uvicorn
from starlette.applications import Starlette

from agentrelay.bot.chat_service import ChatService, RateLimiter
from agentrelay.bot.telegram_bot import TelegramBot
from agentrelay.config import Config, load_config
from agentrelay.errors import ConfigError, RelayTransportError
from agentrelay.logs import setup_logging
from agentrelay.relay.context import RelayContext, open_relay
from agentrelay.relay.http_api import create_app
from agentrelay.relay.store import ResponseStore
from agentrelay.router.intent import IntentRouter, ResponseFormatter
from agentrelay.router.llm import LLMClient

log = logging.getLogger("agentrelay.server")

PURGE_INTERVAL = 60  # seconds


async def purge_loop(store: ResponseStore, interval: float = PURGE_INTERVAL) -> None:
    """Drop expired results forever. Cancel to stop."""
    while True:
        await asyncio.sleep(interval)
        try:
            purged = await store.purge_expired()
        except RelayTransportError as e:
            log.warning(f"Purge failed: {e}")
            continue
        if purged:
            log.info(f"Purged {purged} expired result(s)")


def build_bot(config: Config, relay: RelayContext, http: httpx.AsyncClient) -> TelegramBot:
    llm = LLMClient(http, config.llm_api_key, config.llm_base_url, config.llm_model)
    chat = ChatService(
        relay.client,
        IntentRouter(llm),
        ResponseFormatter(llm),
        allowed_users=config.allowed_users,
        rate_limiter=RateLimiter(limit=config.rate_limit_per_minute),
        deadline=config.wait_deadline,
    )
    return TelegramBot(config.telegram_token, chat)


def make_lifespan(relay: RelayContext, bot: TelegramBot | None):
    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        purge = asyncio.create_task(purge_loop(relay.store))
        if bot is not None:
            await bot.start()
        log.info(f"Relay server started ({relay.backend} store)")
        try:
            yield
        finally:
            if bot is not None:
                await bot.stop()
            purge.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await purge
            log.info("Relay server stopped")
    return lifespan


async def serve(config: Config) -> None:
    async with open_relay(config) as relay, httpx.AsyncClient() as http:
        bot = build_bot(config, relay, http) if config.telegram_token else None
        app = create_app(relay, config.secret, lifespan=make_lifespan(relay, bot))
        server = uvicorn.Server(uvicorn.Config(
            app, host=config.host, port=config.port, log_config=None,
        ))
        await server.serve()


def main():
    """Entry point."""
    try:
        config = load_config()
        config.require_server()
        if config.telegram_token:
            config.require_bot()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging("relay-server", config.logs_path)
    if not config.telegram_token:
        log.warning("TELEGRAM_BOT_TOKEN not set, running the relay API only")
    log.info(f"Starting on {config.host}:{config.port}")
    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        log.info("Server stopped by user")
    except Exception as e:
        log.exception(f"Server crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
