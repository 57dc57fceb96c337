"""Core functionality for ColorForge.

This package holds everything that does not depend on the HTTP layer:

- **Configuration** (config.py): environment-based settings using Pydantic
  Settings, all prefixed with ``COLORFORGE_``.
- **Errors** (errors.py): the domain error taxonomy.  Every error carries the
  HTTP status the API layer should answer with.
- **Image Source Resolver** (image_source.py): turns inline base64 data or a
  remote URL into a single :class:`ImagePayload`.
- **Provider Client** (provider_client.py): blocking calls to the external
  image service, with result normalisation to inline data URIs.
- **Variation Driver** (variations.py): one source image, N edits, one per
  colour.
- **Jobs** (jobs.py): in-memory job registry and the detached batch
  orchestrator.
- **Palettes** (palettes.py): curated demo palettes.

Architecture Overview
---------------------
Single-shot work flows top-down::

    variations -> provider_client -> image_source

Batched work goes through :class:`~colorforge.core.jobs.JobOrchestrator`,
which runs the same operations on a worker thread after the submitting
request has returned.
"""

from colorforge.core.config import ColorForgeConfig, config
from colorforge.core.image_source import ImagePayload
from colorforge.core.jobs import Job, JobOrchestrator, JobRegistry, JobStatus
from colorforge.core.provider_client import ImageProviderClient, TransformationResult

__all__ = [
    "ColorForgeConfig",
    "config",
    "ImagePayload",
    "ImageProviderClient",
    "Job",
    "JobOrchestrator",
    "JobRegistry",
    "JobStatus",
    "TransformationResult",
]
