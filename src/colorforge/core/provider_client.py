"""Blocking client for the external image-generation service.

Processing flow:
    1. Build the request (JSON for generation, multipart for edits).
    2. Authenticate with the caller's bearer credential, supplied per call.
    3. Raise :class:`UpstreamServiceError` on any non-2xx response, keeping the
       raw status and body for diagnosis.
    4. Normalise each returned image to an inline data URI.  The service may
       answer with base64 bytes (``b64_json``) or with a URL; URLs are fetched
       and re-encoded through :func:`colorforge.core.image_source.to_inline_encoded`.

The client never retries.  Generation is not idempotent and every call is
billed, so retry policy belongs to whoever composes these calls.

Result Shape
------------
Provider items are parsed into an explicit two-case variant,
:class:`InlineImage` or :class:`RemoteImage`, and collapsed by
:meth:`ImageProviderClient.normalize`.  An item with neither field raises
:class:`EmptyUpstreamResultError`.

Usage
-----
::

    from colorforge.core.config import config
    from colorforge.core.provider_client import ImageProviderClient, TransformationRequest

    client = ImageProviderClient(config)
    results = client.generate("a red bicycle", api_key=key)
    edited = client.transform(
        TransformationRequest(source=payload, instruction="make it blue"),
        api_key=key,
    )
    client.close()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Union

import httpx

from colorforge.core.config import ColorForgeConfig
from colorforge.core.errors import EmptyUpstreamResultError, UpstreamServiceError
from colorforge.core.image_source import DEFAULT_CONTENT_TYPE, ImagePayload, to_inline_encoded

logger = logging.getLogger(__name__)

GENERATIONS_PATH = "/images/generations"
EDITS_PATH = "/images/edits"


# ---------------------------------------------------------------------------
# Result variants.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InlineImage:
    """Provider result carrying base64 image bytes."""

    b64_json: str


@dataclass(frozen=True)
class RemoteImage:
    """Provider result carrying a URL to the image."""

    url: str


RawImage = Union[InlineImage, RemoteImage]


def parse_raw_image(item: Any) -> RawImage:
    """Classify one provider result item.

    ``b64_json`` takes precedence over ``url`` when both are present.

    Args:
        item: One entry of the provider's ``data`` list.

    Returns:
        :class:`InlineImage` or :class:`RemoteImage`.

    Raises:
        EmptyUpstreamResultError: If the item carries neither field.
    """
    if isinstance(item, dict):
        if item.get("b64_json"):
            return InlineImage(item["b64_json"])
        if item.get("url"):
            return RemoteImage(item["url"])
    raise EmptyUpstreamResultError("Image service returned no image")


# ---------------------------------------------------------------------------
# Request / result records.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransformationRequest:
    """One edit of a source image.

    Attributes:
        source: Image to edit.
        instruction: Natural-language edit instruction.
        mask: Optional mask; transparent areas mark the region to edit.
        size: ``WIDTHxHEIGHT`` hint.  ``None`` uses the configured default.
    """

    source: ImagePayload
    instruction: str
    mask: ImagePayload | None = None
    size: str | None = None


@dataclass(frozen=True)
class TransformationResult:
    """A single normalised output image.

    Attributes:
        image: Output image as a ``data:`` URI.
        meta: Provider metadata (response fields other than image bytes).
    """

    image: str
    meta: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Client.
# ---------------------------------------------------------------------------


class ImageProviderClient:
    """Calls the image service's generation and edit endpoints.

    The underlying :class:`httpx.Client` is also used to fetch URL results,
    so a single transport (and a single mock in tests) covers every outbound
    call.

    Attributes:
        _config (ColorForgeConfig):
            Base URL, model, default size, and timeout.
        _http (httpx.Client):
            Shared blocking HTTP client.
    """

    def __init__(
        self,
        config: ColorForgeConfig,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Initialise the client.

        Args:
            config: Application configuration.
            http_client: Optional pre-built client.  When omitted, one is
                created with ``config.request_timeout`` and redirect
                following enabled.
        """
        self._config = config
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
        )

    @property
    def http(self) -> httpx.Client:
        """The HTTP client used for provider calls and remote fetches."""
        return self._http

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    # -- Public interface ---------------------------------------------------

    def generate(
        self,
        prompt: str,
        size: str | None = None,
        n: int = 1,
        *,
        api_key: str,
    ) -> list[TransformationResult]:
        """Generate images from a text prompt.

        Args:
            prompt: Text description of the image.
            size: ``WIDTHxHEIGHT``; defaults to ``config.default_size``.
            n: Number of images requested.
            api_key: Bearer credential for the service.

        Returns:
            One :class:`TransformationResult` per returned image, in provider
            order.

        Raises:
            UpstreamServiceError: On a non-2xx response.
            EmptyUpstreamResultError: If the response contains no images or
                an item with no image.
        """
        size = size or self._config.default_size
        body: dict[str, Any] = {
            "prompt": prompt,
            "model": self._config.image_model,
            "size": size,
            "n": n,
        }
        if self._config.response_format:
            body["response_format"] = self._config.response_format

        logger.info("Image generation request: model=%s size=%s n=%d", body["model"], size, n)
        response = self._http.post(
            self._url(GENERATIONS_PATH),
            json=body,
            headers=self._auth_headers(api_key),
        )
        payload = self._check(response, "generation")

        items = payload.get("data") or []
        if not items:
            raise EmptyUpstreamResultError("Image service returned no image")

        results = []
        for item in items:
            image = self.normalize(parse_raw_image(item))
            meta = {k: v for k, v in item.items() if k != "b64_json"}
            results.append(TransformationResult(image=image, meta=meta))
        return results

    def transform(self, request: TransformationRequest, *, api_key: str) -> TransformationResult:
        """Edit a source image according to an instruction.

        Args:
            request: Source image, instruction, optional mask, and size.
            api_key: Bearer credential for the service.

        Returns:
            The first (and only requested) output image.

        Raises:
            UpstreamServiceError: On a non-2xx response.
            EmptyUpstreamResultError: If the response carries no usable image.
        """
        size = request.size or self._config.default_size
        files = {
            "image": (request.source.filename, request.source.data, request.source.content_type),
        }
        if request.mask is not None:
            files["mask"] = ("mask.png", request.mask.data, request.mask.content_type)
        data = {
            "prompt": request.instruction,
            "model": self._config.image_model,
            "size": size,
        }

        logger.info(
            "Image edit request: model=%s size=%s mask=%s",
            data["model"],
            size,
            request.mask is not None,
        )
        response = self._http.post(
            self._url(EDITS_PATH),
            data=data,
            files=files,
            headers=self._auth_headers(api_key),
        )
        payload = self._check(response, "edit")

        items = payload.get("data") or [None]
        image = self.normalize(parse_raw_image(items[0]))
        meta = {k: v for k, v in payload.items() if k != "data"}
        return TransformationResult(image=image, meta=meta)

    def normalize(self, raw: RawImage) -> str:
        """Collapse a result variant into a data URI.

        Inline results are wrapped directly as ``image/png``; remote results
        are fetched and re-encoded with their declared content type.
        """
        if isinstance(raw, InlineImage):
            return f"data:{DEFAULT_CONTENT_TYPE};base64,{raw.b64_json}"
        return to_inline_encoded(raw.url, self._http)

    # -- Internals ----------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._config.provider_root}{path}"

    @staticmethod
    def _auth_headers(api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    @staticmethod
    def _check(response: httpx.Response, operation: str) -> dict:
        """Raise on failure, otherwise return the decoded JSON body."""
        if not response.is_success:
            logger.warning("Image %s failed with status %d", operation, response.status_code)
            raise UpstreamServiceError(operation, response.status_code, response.text)
        try:
            payload = response.json()
        except ValueError as exc:
            raise EmptyUpstreamResultError(
                f"Image service returned a non-JSON {operation} response"
            ) from exc
        if not isinstance(payload, dict):
            raise EmptyUpstreamResultError(f"Image service returned no image for {operation}")
        return payload
