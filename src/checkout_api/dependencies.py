"""
Process-wide gateway resources and their FastAPI lifespan.

One RequestQueue and one httpx.AsyncClient exist per process; both are
created at startup, stored on app.state, and closed at shutdown.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable
import logging

from fastapi import Request

from gateway_queue import RequestQueue

from .config import Settings, get_settings
from .gateway import CloverGateway, create_http_client

logger = logging.getLogger(__name__)


def create_lifespan(
    settings_provider: Callable[[], Settings] = get_settings,
) -> Callable[..., Any]:
    """
    Factory to create the FastAPI lifespan context manager.

    Args:
        settings_provider: Returns the settings used to build the gateway

    Returns:
        Lifespan context manager for the FastAPI app.
    """

    @asynccontextmanager
    async def lifespan(app: Any) -> AsyncGenerator[None, None]:
        settings = settings_provider()
        queue = RequestQueue(settings.queue_config(), queue_id="clover")
        client = create_http_client(settings)
        app.state.gateway = CloverGateway.from_settings(settings, client, queue)
        logger.info(
            f"Gateway ready: {settings.CLOVER_API_BASE_URL} "
            f"(queue concurrency {settings.QUEUE_MAX_CONCURRENT}, "
            f"interval {settings.QUEUE_MIN_INTERVAL_SECONDS}s)"
        )

        yield  # App is running

        await queue.close()
        await client.aclose()
        logger.info("Gateway resources closed")

    return lifespan


def get_gateway(request: Request) -> CloverGateway:
    """FastAPI dependency returning the process-wide gateway client."""
    return request.app.state.gateway
