"""Shared pytest fixtures for ColorForge tests."""

from __future__ import annotations

import base64
import io
import json
import re
from typing import Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from colorforge.core.config import ColorForgeConfig
from colorforge.core.provider_client import ImageProviderClient

def _make_image_bytes(fmt: str = "PNG", color: tuple[int, int, int] = (255, 0, 0)) -> bytes:
    """Render a tiny solid-colour image with Pillow.

    Args:
        fmt: Pillow format name (``"PNG"``, ``"JPEG"``, ...).
        color: RGB fill colour.

    Returns:
        Encoded image bytes.
    """
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color=color).save(buffer, format=fmt)
    return buffer.getvalue()


def _multipart_field(request: httpx.Request, name: str) -> str | None:
    """Extract a text field from a multipart request body.

    Args:
        request: Captured request.
        name: Form field name.

    Returns:
        The decoded field value, or ``None`` if absent.
    """
    match = re.search(
        rb'name="' + name.encode() + rb'"\r\n\r\n(.*?)\r\n--',
        request.content,
        re.DOTALL,
    )
    return match.group(1).decode() if match else None


def _has_multipart_file(request: httpx.Request, name: str) -> bool:
    """Whether the multipart body carries a file part called *name*."""
    return (b'name="' + name.encode() + b'"; filename=') in request.content


class ProviderStub:
    """In-process stand-in for the external image service.

    Serves ``/images/generations``, ``/images/edits``, and any URL registered
    in :attr:`remote_images`.  Every request is recorded in :attr:`requests`.

    Attributes:
        requests: Captured requests, in order.
        generation_response: ``(status, json_body)`` for generation calls.
        edit_response: ``(status, json_body)`` for edit calls, or a callable
            ``(request, edit_index) -> (status, json_body)``.
        remote_images: URL to ``(bytes, content_type_or_None)``.
        transport_error: When set, every request raises it.
    """

    def __init__(self, image_bytes: bytes) -> None:
        self.requests: list[httpx.Request] = []
        encoded = base64.b64encode(image_bytes).decode()
        self.generation_response: tuple[int, object] = (
            200,
            {"created": 1, "data": [{"b64_json": encoded, "revised_prompt": "revised"}]},
        )
        self.edit_response: tuple[int, object] | Callable = (
            200,
            {"created": 2, "data": [{"b64_json": encoded}]},
        )
        self.remote_images: dict[str, tuple[bytes, str | None]] = {}
        self.transport_error: Exception | None = None

    @property
    def edit_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/images/edits")]

    @property
    def generation_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/images/generations")]

    @property
    def edit_prompts(self) -> list[str | None]:
        """The ``prompt`` field of every edit call, in order."""
        return [_multipart_field(r, "prompt") for r in self.edit_requests]

    def edit_field(self, index: int, name: str) -> str | None:
        """A text field of the *index*-th edit call."""
        return _multipart_field(self.edit_requests[index], name)

    def edit_has_file(self, index: int, name: str) -> bool:
        """Whether the *index*-th edit call uploaded a file part *name*."""
        return _has_multipart_file(self.edit_requests[index], name)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if self.transport_error is not None:
            raise self.transport_error

        path = request.url.path
        if path.endswith("/images/generations"):
            status, body = self.generation_response
            return _json_response(status, body)
        if path.endswith("/images/edits"):
            if callable(self.edit_response):
                status, body = self.edit_response(request, len(self.edit_requests) - 1)
            else:
                status, body = self.edit_response
            return _json_response(status, body)

        url = str(request.url)
        if url in self.remote_images:
            data, content_type = self.remote_images[url]
            headers = {"content-type": content_type} if content_type else {}
            return httpx.Response(200, content=data, headers=headers)
        return httpx.Response(404, text="not found")


def _json_response(status: int, body: object) -> httpx.Response:
    if isinstance(body, str):
        return httpx.Response(status, text=body)
    return httpx.Response(status, content=json.dumps(body).encode(), headers={
        "content-type": "application/json",
    })


@pytest.fixture
def test_config() -> ColorForgeConfig:
    """Configuration pointing at a fake provider host.

    Returns:
        ColorForgeConfig instance for testing
    """
    return ColorForgeConfig(
        _env_file=None,
        provider_base_url="https://images.test/v1/",
        image_model="gpt-image-1",
        default_size="1024x1024",
        request_timeout=5.0,
        job_workers=2,
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A real 8x8 PNG."""
    return _make_image_bytes("PNG")


@pytest.fixture
def png_base64(png_bytes: bytes) -> str:
    """The PNG as bare base64 text."""
    return base64.b64encode(png_bytes).decode()


@pytest.fixture
def provider_stub(png_bytes: bytes) -> ProviderStub:
    """Fresh fake image service."""
    return ProviderStub(png_bytes)


@pytest.fixture
def mock_http(provider_stub: ProviderStub) -> Generator[httpx.Client, None, None]:
    """httpx client whose transport is the provider stub."""
    client = httpx.Client(transport=httpx.MockTransport(provider_stub))
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def provider_client(test_config: ColorForgeConfig, mock_http: httpx.Client) -> ImageProviderClient:
    """Provider client wired to the stub."""
    return ImageProviderClient(test_config, http_client=mock_http)


@pytest.fixture
def test_client(
    monkeypatch: pytest.MonkeyPatch,
    test_config: ColorForgeConfig,
    mock_http: httpx.Client,
) -> Generator[TestClient, None, None]:
    """FastAPI TestClient with the provider client wired to the stub.

    The application's lifespan runs, so the job orchestrator is real.
    """
    from colorforge.api import main

    monkeypatch.setattr(
        main,
        "ImageProviderClient",
        lambda cfg: ImageProviderClient(test_config, http_client=mock_http),
    )
    monkeypatch.setattr(main.config, "openai_api_key", None)

    with TestClient(main.app) as client:
        yield client


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory rendering tiny images: ``make_image("JPEG", (0, 0, 255))``."""
    return _make_image_bytes


@pytest.fixture
def api_key() -> str:
    """Credential passed to the provider in tests."""
    return "sk-test-key"
