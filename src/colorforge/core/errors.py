"""Domain errors raised by the ColorForge core.

Every error carries ``http_status`` so the API layer can translate it without
a lookup table.  Single-shot pipelines let these propagate untouched; the job
orchestrator catches them and records ``str(exc)`` on the failed job.
"""

from __future__ import annotations


class ColorForgeError(Exception):
    """Base class for all ColorForge domain errors."""

    http_status: int = 500


class MissingInputError(ColorForgeError):
    """A required input (image data or URL) was not supplied."""

    http_status = 400


class InvalidInputError(ColorForgeError):
    """Inline image data could not be decoded."""

    http_status = 400


class MissingCredentialError(ColorForgeError):
    """No provider credential was supplied with the request or configured."""

    http_status = 401


class EmptyBatchError(ColorForgeError):
    """A batch was submitted without any sub-requests."""

    http_status = 400


class UpstreamFetchError(ColorForgeError):
    """A remote image URL answered with a non-success status.

    Attributes:
        status_code: HTTP status returned by the remote host.
        url: The URL that was fetched.
    """

    http_status = 502

    def __init__(self, status_code: int, url: str) -> None:
        super().__init__(f"Failed to fetch image: {status_code}")
        self.status_code = status_code
        self.url = url


class UpstreamServiceError(ColorForgeError):
    """The image service answered with a non-success status.

    Attributes:
        operation: ``"generation"`` or ``"edit"``.
        status_code: HTTP status returned by the service.
        body: Raw response body, kept for diagnosis.
    """

    http_status = 502

    def __init__(self, operation: str, status_code: int, body: str) -> None:
        super().__init__(f"Image {operation} failed: {status_code} {body}")
        self.operation = operation
        self.status_code = status_code
        self.body = body


class EmptyUpstreamResultError(ColorForgeError):
    """The image service succeeded but returned no usable image."""

    http_status = 502
