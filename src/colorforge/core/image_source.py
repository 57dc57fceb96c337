"""Image source resolution: inline base64 or remote URL to one payload.

Callers hand images to ColorForge in one of two shapes:

- **Inline** — base64 text, optionally prefixed with a data-URI marker such
  as ``data:image/jpeg;base64,``.  The marker is stripped before decoding.
- **Remote** — an ``http(s)`` URL that is fetched synchronously.

Both shapes are normalised into an :class:`ImagePayload` (bytes plus a
content type) so the provider client never has to branch on where an image
came from.  The reverse direction, :func:`to_inline_encoded`, turns a remote
URL returned by the image service into a data URI so API responses always
carry inline images.

Content Type
------------
For inline data the content type comes from the data-URI marker when present.
Without a marker, Pillow is asked to identify the bytes; if it cannot, the
payload is tagged ``image/png``.  For remote data the response's
``Content-Type`` header is used, again defaulting to ``image/png``.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
from dataclasses import dataclass

import httpx
from PIL import Image, UnidentifiedImageError

from colorforge.core.errors import InvalidInputError, MissingInputError, UpstreamFetchError

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "image/png"


@dataclass(frozen=True)
class ImagePayload:
    """Binary image content tagged with its content type.

    Attributes:
        data: Raw image bytes.
        content_type: MIME type such as ``image/png``.
    """

    data: bytes
    content_type: str = DEFAULT_CONTENT_TYPE

    @property
    def filename(self) -> str:
        """Upload filename matching the content type (``image.png`` etc.)."""
        subtype = self.content_type.split("/", 1)[-1] or "png"
        return f"image.{subtype}"

    def to_data_uri(self) -> str:
        """Encode the payload as a ``data:<type>;base64,<data>`` string."""
        return encode_data_uri(self.data, self.content_type)


def encode_data_uri(data: bytes, content_type: str = DEFAULT_CONTENT_TYPE) -> str:
    """Encode raw bytes as a base64 data URI.

    Args:
        data: Bytes to encode.
        content_type: MIME type written into the data-URI marker.

    Returns:
        String of the form ``data:<content_type>;base64,<payload>``.
    """
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_uri(value: str) -> tuple[str | None, str]:
    """Separate an optional data-URI marker from its base64 payload.

    Everything up to the first comma is treated as the marker.  The media
    type is read from the marker when it looks like ``data:<type>[;...]``.

    Args:
        value: Inline image text, with or without a marker.

    Returns:
        Tuple of ``(media_type_or_None, base64_payload)``.
    """
    if "," not in value:
        return None, value

    marker, payload = value.split(",", 1)
    media_type = None
    if marker.startswith("data:"):
        media_type = marker[len("data:"):].split(";", 1)[0].strip() or None
    return media_type, payload


def _sniff_content_type(data: bytes) -> str | None:
    """Return the MIME type Pillow detects for *data*, or ``None``."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            return Image.MIME.get(img.format or "")
    except UnidentifiedImageError:
        return None


def decode_inline(value: str) -> ImagePayload:
    """Decode inline base64 image text into a payload.

    Args:
        value: Base64 text, optionally prefixed with a data-URI marker.
            Embedded whitespace (line-wrapped base64) is ignored.

    Returns:
        The decoded :class:`ImagePayload`.

    Raises:
        InvalidInputError: If the payload is not valid base64 or is empty.
    """
    media_type, payload = split_data_uri(value)
    payload = "".join(payload.split())

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidInputError(f"Invalid base64 image data: {exc}") from exc

    if not data:
        raise InvalidInputError("Invalid base64 image data: payload is empty")

    content_type = media_type or _sniff_content_type(data) or DEFAULT_CONTENT_TYPE
    return ImagePayload(data=data, content_type=content_type)


def fetch_remote(url: str, client: httpx.Client) -> ImagePayload:
    """Fetch a remote image into a payload.

    Args:
        url: Absolute URL of the image.
        client: HTTP client used for the request.

    Returns:
        :class:`ImagePayload` with the response body and declared type.

    Raises:
        UpstreamFetchError: If the remote host answers with a non-2xx status.
        httpx.HTTPError: On transport failures (timeouts, DNS, ...).
    """
    logger.info("Fetching remote image %s", url)
    response = client.get(url)
    if not response.is_success:
        logger.warning("Remote image fetch failed: %s -> %d", url, response.status_code)
        raise UpstreamFetchError(response.status_code, url)

    declared = response.headers.get("content-type", "")
    content_type = declared.split(";", 1)[0].strip() or DEFAULT_CONTENT_TYPE
    return ImagePayload(data=response.content, content_type=content_type)


def resolve(
    image_base64: str | None = None,
    image_url: str | None = None,
    *,
    client: httpx.Client,
) -> ImagePayload:
    """Normalise a caller-supplied image into a single payload.

    Inline data wins when both forms are supplied.  Empty strings count as
    absent.

    Args:
        image_base64: Inline base64 image, optionally data-URI prefixed.
        image_url: Remote image URL.
        client: HTTP client used when the image must be fetched.

    Returns:
        The resolved :class:`ImagePayload`.

    Raises:
        MissingInputError: If neither form is supplied.  No request is made.
        InvalidInputError: If inline data cannot be decoded.
        UpstreamFetchError: If the remote fetch returns a non-2xx status.
    """
    if image_base64:
        return decode_inline(image_base64)
    if image_url:
        return fetch_remote(image_url, client)
    raise MissingInputError("imageBase64 or imageUrl required")


def to_inline_encoded(url: str, client: httpx.Client) -> str:
    """Fetch a remote image and re-encode it as a data URI.

    Used to normalise URL results from the image service into the same shape
    as inline results.

    Args:
        url: Remote image URL.
        client: HTTP client used for the fetch.

    Returns:
        ``data:<declared type>;base64,<payload>`` string.

    Raises:
        UpstreamFetchError: If the remote fetch returns a non-2xx status.
    """
    return fetch_remote(url, client).to_data_uri()
