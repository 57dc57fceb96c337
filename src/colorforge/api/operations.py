"""Operations behind the ColorForge endpoints.

Each ``run_*`` function takes a validated request model, a provider client,
and a credential, and returns the JSON-ready response body.  The HTTP routes
call them directly; :func:`batch_handlers` wraps them so the job orchestrator
can call them with raw sub-request payloads.
"""

from __future__ import annotations

from colorforge.api.models import EditRequest, GenerateRequest, RecolorRequest, VisualizeRequest
from colorforge.core.config import config
from colorforge.core.errors import MissingCredentialError
from colorforge.core.image_source import decode_inline, resolve
from colorforge.core.jobs import Handler
from colorforge.core.palettes import list_palettes
from colorforge.core.provider_client import ImageProviderClient, TransformationRequest
from colorforge.core.variations import estimate_paint, recolor_variations, visualize_variations

DEFAULT_GENERATE_PROMPT = "A colorful abstract painting"
DEFAULT_EDIT_PROMPT = "Edit the image as requested."


def require_api_key(api_key: str | None) -> str:
    """Return *api_key*, or raise if the caller supplied none."""
    if not api_key:
        raise MissingCredentialError(f"{config.credential_header}: Required")
    return api_key


def run_generate(req: GenerateRequest, *, client: ImageProviderClient, api_key: str) -> dict:
    """Text-to-image generation."""
    results = client.generate(
        req.prompt or DEFAULT_GENERATE_PROMPT,
        req.size,
        req.n or 1,
        api_key=api_key,
    )
    return {
        "success": True,
        "results": [{"image": r.image, "meta": r.meta} for r in results],
    }


def run_edit(req: EditRequest, *, client: ImageProviderClient, api_key: str) -> dict:
    """Single edit of one image, optionally restricted by a mask."""
    source = resolve(req.image_base64, req.image_url, client=client.http)
    mask = decode_inline(req.mask_base64) if req.mask_base64 else None

    result = client.transform(
        TransformationRequest(
            source=source,
            instruction=req.prompt or DEFAULT_EDIT_PROMPT,
            mask=mask,
            size=req.size,
        ),
        api_key=api_key,
    )
    return {"success": True, "result": {"image": result.image, "meta": result.meta}}


def run_recolor(req: RecolorRequest, *, client: ImageProviderClient, api_key: str) -> dict:
    """One recolored variation per colour."""
    source = resolve(req.image_base64, req.image_url, client=client.http)
    variations = recolor_variations(
        source,
        req.colors,
        req.variations,
        client=client,
        api_key=api_key,
        preserve_texture=req.preserve_texture,
        size=req.size,
    )
    return {
        "success": True,
        "results": [
            {"color": v.attribute, "image": v.result.image, "meta": v.result.meta}
            for v in variations
        ],
    }


def run_visualize(req: VisualizeRequest, *, client: ImageProviderClient, api_key: str) -> dict:
    """Palette variations of a room or object, with optional paint estimate."""
    source = resolve(req.image_base64, req.image_url, client=client.http)
    variations = visualize_variations(
        source,
        req.palettes,
        req.variations,
        client=client,
        api_key=api_key,
        areas=req.areas,
        size=req.size,
    )

    entries = []
    for v in variations:
        entry = {"color": v.attribute, "image": v.result.image}
        if req.estimate_paint:
            entry["paintEstimate"] = estimate_paint(req.square_feet)
        entry["meta"] = v.result.meta
        entries.append(entry)
    return {"success": True, "variations": entries}


def batch_handlers(client: ImageProviderClient) -> dict[str, Handler]:
    """Build the endpoint -> handler table used by batch jobs.

    Payloads are validated with the same models as the HTTP routes; a
    validation error or a missing credential fails the job.
    """

    def _generate(payload: dict, api_key: str | None) -> dict:
        req = GenerateRequest.model_validate(payload)
        return run_generate(req, client=client, api_key=require_api_key(api_key))

    def _edit(payload: dict, api_key: str | None) -> dict:
        req = EditRequest.model_validate(payload)
        return run_edit(req, client=client, api_key=require_api_key(api_key))

    def _recolor(payload: dict, api_key: str | None) -> dict:
        req = RecolorRequest.model_validate(payload)
        return run_recolor(req, client=client, api_key=require_api_key(api_key))

    def _visualize(payload: dict, api_key: str | None) -> dict:
        req = VisualizeRequest.model_validate(payload)
        return run_visualize(req, client=client, api_key=require_api_key(api_key))

    def _palettes(payload: dict, api_key: str | None) -> list[dict]:
        return list_palettes(payload.get("brand"))

    return {
        "/v1/generate": _generate,
        "/v1/edit": _edit,
        "/v1/recolor": _recolor,
        "/v1/visualize": _visualize,
        "/v1/palettes": _palettes,
    }
