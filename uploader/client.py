"""
Client for the /api/convert route.

Posts one file, checks the ConversionResult envelope and decodes the base64
payload. Every failure mode is raised as ConversionError with a message fit to
show next to the file.
"""

import base64
import binascii
from typing import Any, Optional

import httpx

from convert.config import UPLOAD_FIELD_NAME
from convert.utils.error_handling import extract_upstream_error
from convert.utils.logging_config import get_logger

from .errors import ConversionError
from .models import SourceFile

logger = get_logger(__name__)

INVALID_RESPONSE_MESSAGE = "Invalid response from conversion service"
DECODE_FAILED_MESSAGE = "Failed to process converted image"

_WHITESPACE_TABLE = {ord(ch): None for ch in " \t\n\f\r"}


class ConvertedFile:
    """Decoded result of one conversion."""

    def __init__(self, filename: str, content_type: str, content: bytes, message: str = ""):
        self.filename = filename
        self.content_type = content_type
        self.content = content
        self.message = message

    def __repr__(self):
        return f"ConvertedFile(filename={self.filename!r}, size={len(self.content)})"


def _json_or_none(response: httpx.Response) -> Optional[Any]:
    try:
        return response.json()
    except ValueError:
        return None


def _usable_filename(filename: str) -> bool:
    """Non-blank and free of control characters (NUL included)."""
    if not filename.strip():
        return False
    return not any(ord(ch) < 0x20 or ord(ch) == 0x7f for ch in filename)


def decode_base64(encoded: str) -> bytes:
    """
    Lenient base64 decoding, matching what browsers accept in atob():
    ASCII whitespace is ignored and padding may be omitted. Any other
    non-alphabet character is still an error.

    Raises:
        binascii.Error: If the data is not valid base64
    """
    data = encoded.translate(_WHITESPACE_TABLE)
    if len(data) % 4 == 0 and data.endswith("="):
        data = data[:-2] if data.endswith("==") else data[:-1]
    if len(data) % 4 == 1:
        raise binascii.Error("Invalid base64 length")
    return base64.b64decode(data + "=" * (-len(data) % 4), validate=True)


def decode_result(result: Any) -> ConvertedFile:
    """
    Validate a ConversionResult body and decode its payload.

    Expected shape:
        {"success": bool, "message": str,
         "data": {"filename": str, "content_type": str, "base64_data": str}}
    """
    if not isinstance(result, dict):
        raise ConversionError(INVALID_RESPONSE_MESSAGE)

    if result.get("success") is False:
        raise ConversionError(result.get("message") or "Conversion failed")

    data = result.get("data")
    if not isinstance(data, dict):
        raise ConversionError(INVALID_RESPONSE_MESSAGE)

    filename = data.get("filename")
    encoded = data.get("base64_data")
    if not isinstance(filename, str) or not isinstance(encoded, str) or not _usable_filename(filename):
        raise ConversionError(INVALID_RESPONSE_MESSAGE)

    try:
        content = decode_base64(encoded)
    except (binascii.Error, ValueError) as e:
        logger.error(f"Base64 conversion error for {filename}: {e}")
        raise ConversionError(DECODE_FAILED_MESSAGE) from e

    return ConvertedFile(
        filename=filename,
        content_type=data.get("content_type") or "application/octet-stream",
        content=content,
        message=result.get("message") or ""
    )


class ProxyClient:
    """Thin wrapper around an httpx.AsyncClient pointed at /api/convert."""

    def __init__(self, client: httpx.AsyncClient, proxy_url: str):
        self.client = client
        self.proxy_url = proxy_url

    async def convert(self, source: SourceFile) -> ConvertedFile:
        files = {
            UPLOAD_FIELD_NAME: (
                source.name,
                source.content,
                source.content_type or "application/octet-stream"
            )
        }

        try:
            response = await self.client.post(self.proxy_url, files=files)
        except httpx.HTTPError as e:
            raise ConversionError(f"Network error: {e}") from e

        result = _json_or_none(response)

        if not response.is_success:
            message = extract_upstream_error(result) or "Conversion failed"
            raise ConversionError(message, status_code=response.status_code)

        return decode_result(result)
