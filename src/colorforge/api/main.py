"""ColorForge — FastAPI Application.

This module is the single entry point for the web service.  It defines the
FastAPI ``app`` instance, all REST API routes, the error mapping, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The service is a stateless facade over an external image service:

- **Configuration** comes from :data:`~colorforge.core.config.config`
  (``COLORFORGE_*`` environment variables).
- **Provider calls** go through one
  :class:`~colorforge.core.provider_client.ImageProviderClient` created at
  startup and stored on ``app.state``.
- **Batch jobs** run on the
  :class:`~colorforge.core.jobs.JobOrchestrator` thread pool, also on
  ``app.state``.  Job state lives in memory only and is lost on restart.
- **Credentials** arrive per request in the ``X-OpenAI-Key`` header (name
  configurable), falling back to ``COLORFORGE_OPENAI_API_KEY``.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/v1/ping``                  Liveness check
GET       ``/v1/palettes``              Curated palettes, ``?brand=`` filter
POST      ``/v1/generate``              Text-to-image
POST      ``/v1/edit``                  Instruction edit with optional mask
POST      ``/v1/recolor``               One variation per colour
POST      ``/v1/visualize``             Palette variations + paint estimate
POST      ``/v1/batch``                 Submit a detached batch (202)
GET       ``/v1/jobs/{job_id}``         Batch job status and result
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    colorforge

Direct invocation::

    python -m colorforge.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from colorforge import __version__
from colorforge.api.models import (
    BatchRequest,
    EditRequest,
    GenerateRequest,
    RecolorRequest,
    VisualizeRequest,
)
from colorforge.api.operations import (
    batch_handlers,
    require_api_key,
    run_edit,
    run_generate,
    run_recolor,
    run_visualize,
)
from colorforge.core.config import config
from colorforge.core.errors import ColorForgeError, UpstreamFetchError, UpstreamServiceError
from colorforge.core.jobs import JobOrchestrator
from colorforge.core.palettes import list_palettes
from colorforge.core.provider_client import ImageProviderClient

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Application lifecycle: provider client and job pool setup and teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Creates the :class:`ImageProviderClient` and a
        :class:`JobOrchestrator` whose handlers share that client, and stores
        both on ``app.state``.

    On shutdown:
        Stops the job pool without waiting (running jobs are abandoned, as
        job state is not persisted anyway) and closes the HTTP client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    client = ImageProviderClient(config)
    app.state.provider_client = client
    app.state.orchestrator = JobOrchestrator(
        batch_handlers(client),
        max_workers=config.job_workers,
    )
    logger.info(
        "ColorForge started (provider=%s, model=%s, job workers=%d).",
        config.provider_root,
        config.image_model,
        config.job_workers,
    )

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    app.state.orchestrator.shutdown(wait=False)
    client.close()
    logger.info("ColorForge shut down.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="ColorForge",
    description="Image generation, editing, and recoloring API.",
    version=__version__,
    lifespan=lifespan,
)

# Browser clients call the API directly from other origins.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Error mapping.
# ---------------------------------------------------------------------------


@app.exception_handler(ColorForgeError)
async def colorforge_error_handler(request: Request, exc: ColorForgeError) -> JSONResponse:
    """Translate domain errors into ``{"detail": ...}`` responses."""
    body: dict = {"detail": str(exc)}
    if isinstance(exc, (UpstreamServiceError, UpstreamFetchError)):
        body["upstream_status"] = exc.status_code
    if exc.http_status >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.http_status, content=body)


@app.exception_handler(httpx.HTTPError)
async def transport_error_handler(request: Request, exc: httpx.HTTPError) -> JSONResponse:
    """Transport failures (timeouts, DNS, refused connections) become 502."""
    logger.warning("%s %s upstream transport error: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=502,
        content={"detail": f"Upstream request failed: {type(exc).__name__}: {exc}"},
    )


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_provider_client(request: Request) -> ImageProviderClient:
    return request.app.state.provider_client


def get_orchestrator(request: Request) -> JobOrchestrator:
    return request.app.state.orchestrator


def get_credential(request: Request) -> str | None:
    """Credential from the configured header, else the configured fallback."""
    return request.headers.get(config.credential_header) or config.openai_api_key


def get_required_credential(credential: str | None = Depends(get_credential)) -> str:
    return require_api_key(credential)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/v1/ping")
def ping() -> dict:
    """Liveness check with the server's current UTC time."""
    return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}


@app.get("/v1/palettes")
def get_palettes(brand: str | None = None) -> dict:
    """Return curated palettes, optionally filtered by brand.

    Args:
        brand: Exact brand name to keep.

    Returns:
        Dictionary with a single ``palettes`` list.
    """
    return {"palettes": list_palettes(brand)}


@app.post("/v1/generate")
def generate(
    req: GenerateRequest,
    client: ImageProviderClient = Depends(get_provider_client),
    api_key: str = Depends(get_required_credential),
) -> dict:
    """Generate images from a text prompt.

    Returns:
        ``{"success": true, "results": [{"image", "meta"}, ...]}`` with every
        image as a data URI.

    Raises:
        MissingCredentialError: 401 without a credential.
        UpstreamServiceError: 502 when the image service rejects the call.
    """
    return run_generate(req, client=client, api_key=api_key)


@app.post("/v1/edit")
def edit(
    req: EditRequest,
    client: ImageProviderClient = Depends(get_provider_client),
    api_key: str = Depends(get_required_credential),
) -> dict:
    """Edit one image according to a prompt, optionally within a mask.

    Returns:
        ``{"success": true, "result": {"image", "meta"}}``.

    Raises:
        MissingInputError: 400 when neither ``imageBase64`` nor ``imageUrl``
            is given.
        InvalidInputError: 400 for undecodable base64.
        UpstreamFetchError: 502 when ``imageUrl`` cannot be fetched.
    """
    return run_edit(req, client=client, api_key=api_key)


@app.post("/v1/recolor")
def recolor(
    req: RecolorRequest,
    client: ImageProviderClient = Depends(get_provider_client),
    api_key: str = Depends(get_required_credential),
) -> dict:
    """Produce one recolored variation per colour.

    The source image is resolved once and reused for every edit.  Any failing
    edit fails the whole request.

    Returns:
        ``{"success": true, "results": [{"color", "image", "meta"}, ...]}``.
    """
    return run_recolor(req, client=client, api_key=api_key)


@app.post("/v1/visualize")
def visualize(
    req: VisualizeRequest,
    client: ImageProviderClient = Depends(get_provider_client),
    api_key: str = Depends(get_required_credential),
) -> dict:
    """Visualise palette colours applied to areas of an image.

    Returns:
        ``{"success": true, "variations": [{"color", "image",
        "paintEstimate"?, "meta"}, ...]}``.
    """
    return run_visualize(req, client=client, api_key=api_key)


@app.post("/v1/batch", status_code=202)
def submit_batch(
    req: BatchRequest,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
    api_key: str | None = Depends(get_credential),
) -> dict:
    """Submit a batch of sub-requests as a detached job.

    Returns immediately; poll ``GET /v1/jobs/{jobId}`` for the outcome.

    Returns:
        ``{"jobId": ..., "status": "queued"}`` with status code 202.

    Raises:
        EmptyBatchError: 400 when ``jobs`` is empty.
    """
    job = orchestrator.submit(req.jobs, api_key=api_key)
    return {"jobId": job.job_id, "status": job.status.value}


@app.get("/v1/jobs/{job_id}")
def get_job(job_id: str, orchestrator: JobOrchestrator = Depends(get_orchestrator)) -> dict:
    """Return the current job record.

    Raises:
        HTTPException: 404 if the job id is unknown (including after a
            restart, since jobs are kept in memory only).
    """
    job = orchestrator.get_status(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="job not found")
    return job.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port, and log level from :data:`~colorforge.core.config.config`
    (``COLORFORGE_SERVER_HOST``, ``COLORFORGE_SERVER_PORT``,
    ``COLORFORGE_LOG_LEVEL``).  Defaults to ``0.0.0.0:8000``.

    This function is registered as the ``colorforge`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(
        "colorforge.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
