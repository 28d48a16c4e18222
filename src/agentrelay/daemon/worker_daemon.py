#!/usr/bin/env python3
"""
Agent Relay worker daemon - the private half.

Polls the relay server for pending work, runs each item on the local
agents and posts the results back. Never accepts inbound connections.
SIGTERM/SIGINT finish the current cycle and exit.
"""

import asyncio
import logging
import signal
import sys

import httpx

from agentrelay.agents.registry import build_default_dispatcher
from agentrelay.config import Config, load_config
from agentrelay.errors import ConfigError
from agentrelay.logs import setup_logging
from agentrelay.relay.remote import RelayHttpClient, RemotePendingQueue, RemoteResultSink
from agentrelay.relay.worker import RelayWorker
from agentrelay.reliability import AuditLog

log = logging.getLogger("agentrelay.worker")


def install_signal_handlers(worker: RelayWorker) -> None:
    loop = asyncio.get_running_loop()

    def request_shutdown(signame: str) -> None:
        log.info(f"Shutdown requested ({signame}), finishing current work...")
        worker.stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, request_shutdown, sig.name)


async def run_worker(config: Config, relay_transport: httpx.AsyncBaseTransport | None = None) -> None:
    log.info("=" * 60)
    log.info("Relay worker starting...")
    log.info(f"Server: {config.cloud_backend_url}")
    log.info(f"Files base: {config.files_base_dir}")
    log.info("=" * 60)

    async with RelayHttpClient(config.cloud_backend_url, config.secret, transport=relay_transport) as relay_http, \
            httpx.AsyncClient(timeout=30.0) as http:
        worker = RelayWorker(
            RemotePendingQueue(relay_http),
            RemoteResultSink(relay_http),
            build_default_dispatcher(config, http),
            poll_interval=config.worker_poll_interval,
            audit=AuditLog(config.logs_path),
        )
        install_signal_handlers(worker)
        await worker.run_forever()

    log.info("Shutdown complete - worker exiting gracefully")


def main():
    """Entry point."""
    try:
        config = load_config()
        config.require_worker()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging("relay-worker", config.logs_path)
    try:
        asyncio.run(run_worker(config))
    except KeyboardInterrupt:
        log.info("Worker stopped by user")
    except Exception as e:
        log.exception(f"Worker crashed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
