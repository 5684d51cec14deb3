"""Entrypoint for the dashboard.

Wires transport -> session negotiator -> RPC client -> worker from the
loaded settings and runs the Textual app.
"""

from __future__ import annotations

import logging

from . import config
from .app import DashboardApp
from .logger import setup_logging
from .models.messages import Refresh
from .rpc import RpcClient
from .session import SessionNegotiator
from .transport import HttpTransport
from .worker import RpcWorker

logger = logging.getLogger(__name__)


def build_worker(settings=None) -> RpcWorker:
    settings = settings or config.settings
    transport = HttpTransport(
        settings.endpoint,
        username=settings.USERNAME,
        password=settings.PASSWORD,
        timeout=settings.TIMEOUT_S,
        verify_ssl=settings.VERIFY_SSL,
        user_agent=settings.USER_AGENT,
    )
    client = RpcClient(SessionNegotiator(transport))
    return RpcWorker(client, poll_interval=settings.POLL_INTERVAL_S)


def run() -> None:
    settings = config.settings
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    config.validate_settings()
    logger.info("Starting transmission-dash against %s", settings.endpoint)

    worker = build_worker(settings)
    worker.submit(Refresh())
    try:
        DashboardApp(worker).run()
    finally:
        worker.client.negotiator.transport.close()
    logger.info("Stopped")


if __name__ == "__main__":
    run()
