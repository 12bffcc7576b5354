"""
Conversion router for the /api/convert endpoint.

The browser posts one JFIF file; the file is re-posted to the external
conversion service with the server-held API key and the service's answer is
relayed back. The API key never leaves this process.
"""

import json
from typing import Any, Optional, Tuple

import httpx
from fastapi import APIRouter, Request, UploadFile
from fastapi.responses import JSONResponse

from .config import (
    SOURCE_FORMAT,
    UPLOAD_CHUNK_SIZE,
    UPLOAD_FIELD_NAME,
    UpstreamSettings,
    get_upstream_settings,
    mask_secret,
)
from .utils.error_handling import (
    ErrorCode,
    create_error_response,
    handle_unexpected_error,
    handle_upstream_failure,
)
from .utils.http_client import ServiceType, get_http_client_factory
from .utils.logging_config import get_logger
from .validate import ValidationError, validate_content

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["conversions"])

# Upstream statuses that mean the API key was refused
CREDENTIAL_REJECTED_STATUSES = {401, 403}


class UploadTooLargeError(Exception):
    """Raised when an upload exceeds the configured size limit."""

    def __init__(self, received: int, limit: int):
        super().__init__(f"Upload exceeds {limit} bytes (received at least {received})")
        self.received = received
        self.limit = limit


def get_upstream_client(request: Request) -> httpx.AsyncClient:
    """Client stored on app state by the lifespan, created lazily otherwise."""
    client = getattr(request.app.state, "upstream_client", None)
    if client is None:
        factory = get_http_client_factory()
        client = factory.get_client(ServiceType.UPSTREAM) or factory.create_client(ServiceType.UPSTREAM)
        request.app.state.upstream_client = client
    return client


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload in chunks, refusing to buffer more than max_bytes."""
    buffer = bytearray()
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise UploadTooLargeError(len(buffer), max_bytes)
    return bytes(buffer)


def parse_upstream_body(text: str) -> Tuple[bool, Any]:
    """Parse an upstream body that may or may not be JSON."""
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return False, None


async def forward_to_upstream(
    client: httpx.AsyncClient,
    settings: UpstreamSettings,
    filename: str,
    content: bytes,
    content_type: Optional[str]
) -> httpx.Response:
    """Re-post the file to the conversion service."""
    files = {UPLOAD_FIELD_NAME: (filename, content, content_type or "application/octet-stream")}

    logger.info(f"Making request to: {settings.convert_url}")
    logger.debug(f"API key prefix: {mask_secret(settings.api_key)}")

    response = await client.post(
        settings.convert_url,
        files=files,
        headers=settings.request_headers()
    )

    logger.info(f"Upstream response status for {filename}: {response.status_code}")
    return response


def build_upstream_response(response: httpx.Response, response_text: str) -> JSONResponse:
    """Map an upstream reply onto the response sent to the browser."""
    if response.status_code in CREDENTIAL_REJECTED_STATUSES:
        return create_error_response(
            ErrorCode.FORBIDDEN,
            details="API key verification failed"
        )

    parsed, data = parse_upstream_body(response_text)
    if not parsed:
        return create_error_response(
            ErrorCode.INVALID_UPSTREAM_RESPONSE,
            details=response_text
        )

    if not response.is_success:
        return handle_upstream_failure(response.status_code, data)

    return JSONResponse(status_code=200, content=data)


async def convert_upload(request: Request, file: UploadFile) -> JSONResponse:
    """Check one upload and relay it through the conversion service."""
    filename = file.filename or "upload.jfif"
    settings = get_upstream_settings()

    try:
        content = await read_upload(file, settings.max_upload_bytes)
    except UploadTooLargeError as e:
        return create_error_response(
            ErrorCode.FILE_TOO_LARGE,
            details=str(e),
            max_bytes=e.limit
        )

    if settings.validate_uploads:
        try:
            validate_content(content, SOURCE_FORMAT, filename=filename)
        except ValidationError as e:
            return create_error_response(ErrorCode.INVALID_FILE, details=str(e))

    logger.info(f"Converting {filename} ({len(content)} bytes)")

    response = await forward_to_upstream(
        get_upstream_client(request),
        settings,
        filename,
        content,
        file.content_type
    )
    response_text = response.text
    logger.debug(f"Raw upstream response for {filename}: {response_text[:500]}")

    return build_upstream_response(response, response_text)


@router.post("/convert")
async def convert_jfif(request: Request):
    """
    Convert one uploaded JFIF file through the external conversion service.

    The form is parsed inside the error handling: an unparsable multipart
    body answers 500 in the usual error shape, a text "file" field 400.
    """
    form = None
    try:
        form = await request.form()
        file = form.get(UPLOAD_FIELD_NAME)
        if file is None or isinstance(file, str):
            return create_error_response(ErrorCode.MISSING_FILE)

        return await convert_upload(request, file)

    except Exception as e:
        logger.error(f"Conversion request failed: {type(e).__name__}: {e}")
        return handle_unexpected_error(e)
    finally:
        if form is not None:
            await form.close()
