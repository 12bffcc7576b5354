"""
jfif2jpg proxy service.

Serves POST /api/convert plus two health routes. The upstream httpx client
is created when the app starts and closed when it stops.
"""

from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request

from convert.config import DEFAULT_PORT, get_upstream_settings
from convert.router import router as convert_router
from convert.utils.http_client import (
    ServiceType,
    get_http_client_factory,
    lifespan_http_clients
)
from convert.utils.logging_config import get_logger

logger = get_logger("jfif2jpg.app")


async def check_upstream_health(client: httpx.AsyncClient, service_url: str) -> tuple[bool, int]:
    """
    GET the service root. Anything below 500 counts as up: a service that only
    exposes POST /convert legitimately answers 404 or 405 here.

    Returns:
        (is_healthy, status_code); status_code is 0 when nothing answered
    """
    try:
        response = await client.get(f"{service_url}/")
    except httpx.RequestError as e:
        logger.warning(f"Upstream not reachable at {service_url}: {e}")
        return False, 0

    return response.status_code < 500, response.status_code


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.upstream_client = get_http_client_factory().create_client(ServiceType.UPSTREAM)
    logger.info(f"Proxying conversions to {get_upstream_settings().convert_url}")

    async with lifespan_http_clients():
        yield


app = FastAPI(title="jfif2jpg", lifespan=lifespan)
app.include_router(convert_router)


@app.get("/ping")
async def general_ping():
    return {"success": True, "data": "PONG!"}


@app.get("/ping-upstream")
async def ping_upstream(request: Request):
    """Report whether the external conversion service answers."""
    settings = get_upstream_settings()
    is_healthy, status_code = await check_upstream_health(
        request.app.state.upstream_client,
        settings.base_url
    )

    if status_code == 0:
        status = "unreachable"
    elif is_healthy:
        status = "healthy"
    else:
        status = "unhealthy"

    return {
        "success": is_healthy,
        "data": "UPSTREAM_HEALTHY" if is_healthy else "UPSTREAM_UNHEALTHY",
        "upstream": {"status": status, "response_code": status_code}
    }


def main():
    import uvicorn

    uvicorn.run("app:app", host="0.0.0.0", port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
