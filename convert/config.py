"""
Configuration for the /api/convert proxy and the upload client.

Every value is read from the process environment when it is requested, so a
running service picks up a rotated credential or a new upstream URL on the
next request without a restart.
"""

import os
import tempfile
from pathlib import Path
from typing import Dict, Optional


# Upstream conversion service
DEFAULT_UPSTREAM_URL = "http://localhost:8000/api"  # local development fallback
UPSTREAM_CONVERT_PATH = "/convert"
API_KEY_HEADER = "X-API-Key"
DEFAULT_ORIGIN = "https://jfif2jpg.net"
USER_AGENT = "jfif2jpg-frontend"

# Proxy limits
DEFAULT_MAX_UPLOAD_BYTES = 20 * 1024 * 1024
UPLOAD_CHUNK_SIZE = 1024 * 1024
UPLOAD_FIELD_NAME = "file"

# Client side
DEFAULT_PROXY_URL = "http://localhost:8369/api/convert"
DEFAULT_PORT = 8369
ARCHIVE_NAME = "converted_images.zip"

# Accepted source format
ACCEPTED_EXTENSIONS = {"jfif"}
ACCEPTED_MIME_TYPES = {"image/jfif"}
SOURCE_FORMAT = "jfif"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def mask_secret(secret: Optional[str], visible: int = 4) -> str:
    """Return a log-safe rendition of a credential: its prefix and nothing else."""
    if not secret:
        return "<unset>"
    return f"{secret[:visible]}***"


class UpstreamSettings:
    """Settings for one request to the external conversion service."""

    def __init__(
        self,
        base_url: str = DEFAULT_UPSTREAM_URL,
        api_key: str = "",
        origin: str = DEFAULT_ORIGIN,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        validate_uploads: bool = False
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.origin = origin
        self.max_upload_bytes = max_upload_bytes
        self.validate_uploads = validate_uploads

    @property
    def convert_url(self) -> str:
        return f"{self.base_url}{UPSTREAM_CONVERT_PATH}"

    def request_headers(self) -> Dict[str, str]:
        """Headers attached to the upstream call. Never echoed to the client."""
        return {
            API_KEY_HEADER: self.api_key or "",
            "Origin": self.origin,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }

    def __repr__(self):
        return (
            f"UpstreamSettings(base_url={self.base_url!r}, "
            f"api_key={mask_secret(self.api_key)!r}, "
            f"max_upload_bytes={self.max_upload_bytes})"
        )


def get_upstream_settings() -> UpstreamSettings:
    """Resolve upstream settings from the environment."""
    return UpstreamSettings(
        base_url=os.getenv("PYTHON_API_URL") or DEFAULT_UPSTREAM_URL,
        api_key=os.getenv("API_KEY", ""),
        origin=os.getenv("JFIF2JPG_ORIGIN") or DEFAULT_ORIGIN,
        max_upload_bytes=_env_int("JFIF2JPG_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        validate_uploads=_env_flag("JFIF2JPG_VALIDATE_UPLOADS", False),
    )


def get_proxy_url() -> str:
    """URL of the /api/convert route used by the upload client."""
    return os.getenv("JFIF2JPG_PROXY_URL") or DEFAULT_PROXY_URL


def get_temp_dir() -> Path:
    """Base directory for preview and result files kept by the upload client."""
    configured = os.getenv("JFIF2JPG_TEMP_DIR")
    if configured:
        return Path(configured)
    return Path(tempfile.gettempdir()) / "jfif2jpg"


def get_http_timeout() -> Optional[float]:
    """Read timeout for HTTP clients. Unset means no timeout."""
    value = os.getenv("JFIF2JPG_HTTP_TIMEOUT", "").strip()
    if not value:
        return None
    return float(value)
