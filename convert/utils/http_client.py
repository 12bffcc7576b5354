"""
httpx.AsyncClient factory.

Two kinds of client exist: the proxy's client for the external conversion
service (UPSTREAM) and the upload client's client for /api/convert (PROXY).
Both come from here so pooling and timeouts are set in one place.

Requests are never retried; a failed call is surfaced immediately. Only
connect and pool waits are bounded by default; the read timeout stays unset
unless JFIF2JPG_HTTP_TIMEOUT is configured.
"""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Dict, Optional

import httpx

from ..config import get_http_timeout

logger = logging.getLogger(__name__)

# Uploading a large image over a slow link can take minutes
WRITE_TIMEOUT = 300.0

CONNECTION_LIMITS = httpx.Limits(
    max_keepalive_connections=20,
    max_connections=100,
    keepalive_expiry=30.0
)


class ServiceType(Enum):
    UPSTREAM = "upstream"
    PROXY = "proxy"


# (connect, pool) seconds per service
_WAIT_TIMEOUTS = {
    ServiceType.UPSTREAM: (10.0, 10.0),
    ServiceType.PROXY: (5.0, 5.0),
}


def build_timeout(service_type: ServiceType) -> httpx.Timeout:
    connect, pool = _WAIT_TIMEOUTS[service_type]
    return httpx.Timeout(connect=connect, read=get_http_timeout(), write=WRITE_TIMEOUT, pool=pool)


class HTTPClientFactory:
    """
    Creates one client per service type and remembers it so
    close_all_clients() can release the connection pools.
    """

    def __init__(self):
        self._clients: Dict[ServiceType, httpx.AsyncClient] = {}

    def create_client(self, service_type: ServiceType, **overrides) -> httpx.AsyncClient:
        """
        Args:
            service_type: Which side the client talks to
            **overrides: httpx.AsyncClient arguments to replace (e.g. transport)
        """
        config = {
            'timeout': build_timeout(service_type),
            'limits': CONNECTION_LIMITS,
            'follow_redirects': False,
        }
        config.update(overrides)

        client = httpx.AsyncClient(**config)
        previous = self._clients.get(service_type)
        if previous is not None and not previous.is_closed:
            logger.warning(f"Replacing open {service_type.value} client")
        self._clients[service_type] = client
        logger.debug(f"Created HTTP client for {service_type.value}")
        return client

    def get_client(self, service_type: ServiceType) -> Optional[httpx.AsyncClient]:
        client = self._clients.get(service_type)
        if client is None or client.is_closed:
            return None
        return client

    async def close_all_clients(self):
        for service_type, client in list(self._clients.items()):
            try:
                await client.aclose()
            except Exception as e:
                logger.warning(f"Error closing {service_type.value} client: {e}")
        self._clients.clear()


# Used by the FastAPI app; the upload orchestrator owns its own factory
_http_factory = HTTPClientFactory()


def get_http_client_factory() -> HTTPClientFactory:
    return _http_factory


@asynccontextmanager
async def lifespan_http_clients():
    """Close the app's clients when the FastAPI lifespan ends."""
    try:
        yield
    finally:
        await _http_factory.close_all_clients()
