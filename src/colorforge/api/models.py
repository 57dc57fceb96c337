"""Pydantic request models for the ColorForge API.

These models define the JSON schema for every POST endpoint.  FastAPI uses
them for request validation and OpenAPI documentation; the batch dispatcher
uses the same models to validate sub-request payloads.

Field names are camelCase on the wire (``imageBase64``, ``preserveTexture``)
but snake_case names are accepted too.

Models
------
GenerateRequest
    ``POST /v1/generate`` — text-to-image.
EditRequest
    ``POST /v1/edit`` — single instruction edit with optional mask.
RecolorRequest
    ``POST /v1/recolor`` — one variation per colour.
VisualizeRequest
    ``POST /v1/visualize`` — palette variations with optional paint estimate.
BatchRequest
    ``POST /v1/batch`` — list of sub-requests run as a detached job.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from colorforge.core.jobs import SubRequest


class CamelModel(BaseModel):
    """Base model accepting both camelCase and snake_case field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ImageInput(CamelModel):
    """Source image supplied inline or by URL.

    Attributes:
        image_base64: Base64 image, optionally ``data:`` URI prefixed.
        image_url: Remote image URL.  Ignored when ``image_base64`` is set.
    """

    image_base64: str | None = Field(
        default=None,
        description="Inline base64 image (data-URI prefix allowed).",
    )
    image_url: str | None = Field(
        default=None,
        description="Remote image URL, used when imageBase64 is absent.",
    )


class GenerateRequest(CamelModel):
    """Request body for ``POST /v1/generate``.

    Attributes:
        prompt: Text description.  Defaults to a colourful abstract painting.
        n: Number of images (1-10).  Defaults to 1.
        size: ``WIDTHxHEIGHT``.  Defaults to the configured size.
    """

    prompt: str | None = Field(default=None, description="Text prompt.")
    n: int | None = Field(default=None, ge=1, le=10, description="Number of images.")
    size: str | None = Field(default=None, description="Output size, e.g. '1024x1024'.")


class EditRequest(ImageInput):
    """Request body for ``POST /v1/edit``.

    Attributes:
        mask_base64: Optional inline mask image.
        prompt: Edit instruction.
        size: Output size hint.
    """

    mask_base64: str | None = Field(default=None, description="Optional inline mask image.")
    prompt: str | None = Field(default=None, description="Edit instruction.")
    size: str | None = Field(default=None, description="Output size, e.g. '1024x1024'.")


class RecolorRequest(ImageInput):
    """Request body for ``POST /v1/recolor``.

    ``variations`` is deliberately untyped: invalid values fall back to the
    number of colours instead of being rejected.

    Attributes:
        colors: Target colours, applied cyclically.
        preserve_texture: Ask the model to keep texture and lighting.
        variations: Number of outputs.
        size: Output size hint.
    """

    colors: list[str] | None = Field(default=None, description="Target colours.")
    preserve_texture: bool = Field(default=True, description="Keep texture and lighting.")
    variations: Any = Field(default=None, description="Number of outputs (lenient).")
    size: str | None = Field(default=None, description="Output size, e.g. '1024x1024'.")


class VisualizeRequest(ImageInput):
    """Request body for ``POST /v1/visualize``.

    Attributes:
        palettes: Colours to try, applied cyclically.
        areas: Surfaces to paint, e.g. ``["walls", "trim"]``.
        variations: Number of outputs (lenient; default at most six).
        estimate_paint: Attach a paint quantity estimate to each output.
        square_feet: Wall area used for the estimate.
        size: Output size hint.
    """

    palettes: list[str] | None = Field(default=None, description="Colours to visualise.")
    areas: list[str] | None = Field(default=None, description="Surfaces to paint.")
    variations: Any = Field(default=None, description="Number of outputs (lenient).")
    estimate_paint: bool = Field(default=False, description="Include a paint estimate.")
    square_feet: float | None = Field(default=None, ge=0, description="Wall area in sq ft.")
    size: str | None = Field(default=None, description="Output size, e.g. '1024x1024'.")


class BatchRequest(CamelModel):
    """Request body for ``POST /v1/batch``.

    Attributes:
        jobs: Sub-requests, each ``{"endpoint": ..., "payload": {...}}``.
    """

    jobs: list[SubRequest] = Field(default_factory=list, description="Batch entries.")
