"""
Shared test configuration and fixtures for jfif2jpg tests.

The external conversion service is replaced by UpstreamStub, served through
httpx.MockTransport, so no test needs network access.
"""

import asyncio
import base64
import re
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from app import app


UPSTREAM_BASE_URL = "http://upstream.test/api"
PROXY_URL = "http://testserver/api/convert"
API_KEY = "secret-key-123"

# Smallest stream the JFIF validator accepts: SOI, APP0 "JFIF" 1.01, EOI
SAMPLE_JFIF = (
    b"\xff\xd8"
    b"\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00"
    b"\xff\xd9"
)
SAMPLE_JPG = b"\xff\xd8\xff\xdbconverted\xff\xd9"


def extract_filename(request: httpx.Request) -> Optional[str]:
    """Filename of the multipart 'file' field of a captured request."""
    match = re.search(rb'name="file"; filename="([^"]+)"', request.content)
    return match.group(1).decode() if match else None


def conversion_payload(filename: str, content: bytes = SAMPLE_JPG,
                       content_type: str = "image/jpeg") -> Dict:
    """Body of a successful conversion, as the upstream service returns it."""
    return {
        "success": True,
        "message": "File converted successfully",
        "data": {
            "filename": filename,
            "content_type": content_type,
            "base64_data": base64.b64encode(content).decode(),
        },
    }


def jpg_name(filename: str) -> str:
    return f"{Path(filename).stem}.jpg"


# ===== UPSTREAM STUB =====

class UpstreamStub:
    """
    Stand-in for the external conversion service.

    By default every upload is converted to "<stem>.jpg". Tests change the
    behaviour by assigning ``responder`` (request -> httpx.Response, may be
    async) or by holding ``gates`` to control completion order.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.responder: Optional[Callable] = None
        self.gates: Dict[str, asyncio.Event] = {}

    def gate(self, filename: str) -> asyncio.Event:
        """Block conversion of filename until the returned event is set."""
        event = asyncio.Event()
        self.gates[filename] = event
        return event

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        filename = extract_filename(request)

        if filename in self.gates:
            await self.gates[filename].wait()

        if self.responder is not None:
            response = self.responder(request)
            if asyncio.iscoroutine(response):
                response = await response
            return response

        return httpx.Response(200, json=conversion_payload(jpg_name(filename or "image.jfif")))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class ClientFactory:
    """Factory for the HTTP clients tests talk through."""

    @staticmethod
    def upstream_client(stub: UpstreamStub) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=stub.transport())

    @staticmethod
    def proxy_client() -> httpx.AsyncClient:
        """Async client that serves requests from the FastAPI app in-process."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver"
        )


# ===== STANDARD FIXTURES =====

@pytest.fixture(autouse=True)
def upstream_env(monkeypatch, tmp_path):
    """Point the proxy at the stub and keep temporary files inside tmp_path."""
    monkeypatch.setenv("PYTHON_API_URL", UPSTREAM_BASE_URL)
    monkeypatch.setenv("API_KEY", API_KEY)
    monkeypatch.setenv("JFIF2JPG_TEMP_DIR", str(tmp_path / "tmp"))
    monkeypatch.delenv("JFIF2JPG_MAX_UPLOAD_BYTES", raising=False)
    monkeypatch.delenv("JFIF2JPG_VALIDATE_UPLOADS", raising=False)
    monkeypatch.delenv("JFIF2JPG_HTTP_TIMEOUT", raising=False)


@pytest.fixture
def upstream():
    """The stubbed conversion service."""
    return UpstreamStub()


@pytest.fixture
def client(upstream):
    """FastAPI test client whose upstream calls go to the stub."""
    with TestClient(app) as test_client:
        app.state.upstream_client = ClientFactory.upstream_client(upstream)
        yield test_client


@pytest.fixture
async def proxy_app(upstream):
    """Serve the app in-process for async tests, upstream stubbed."""
    previous = getattr(app.state, "upstream_client", None)
    upstream_client = ClientFactory.upstream_client(upstream)
    app.state.upstream_client = upstream_client
    try:
        yield app
    finally:
        await upstream_client.aclose()
        app.state.upstream_client = previous


@pytest.fixture
async def proxy_http(proxy_app):
    """httpx client for the in-process app."""
    async with ClientFactory.proxy_client() as http:
        yield http


@pytest.fixture
def download_dir(tmp_path):
    path = tmp_path / "downloads"
    path.mkdir()
    return path


# ===== FILE FIXTURES =====

@pytest.fixture
def sample_jfif():
    return SAMPLE_JFIF


@pytest.fixture
def make_source():
    """Factory for SourceFile objects."""
    from uploader.models import SourceFile

    def factory(name: str, content: bytes = SAMPLE_JFIF, last_modified: int = 1700000000000,
                content_type: Optional[str] = "image/jpeg"):
        return SourceFile(name, content, last_modified=last_modified, content_type=content_type)

    return factory


@pytest.fixture
def payload_factory():
    """Factory for upstream conversion payloads."""
    return conversion_payload
