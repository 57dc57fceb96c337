"""In-memory batch jobs: registry and detached orchestrator.

A batch is a list of sub-requests, each naming an endpoint and a payload.
:meth:`JobOrchestrator.submit` records a ``queued`` job, hands the work to a
thread pool, and returns the job id without waiting.  The worker moves the
job to ``processing`` and then to exactly one of ``completed`` or ``failed``.

State Machine
-------------
::

    queued --> processing --> completed
                          \\-> failed

States never revert.  Jobs are never removed; they accumulate for the
lifetime of the process and are lost on restart.

Ownership
---------
The submitting call performs the initial insert and never touches the job
again.  From then on the one worker running that job is its only writer.
Jobs are immutable pydantic records; each transition stores a fresh copy
under the registry lock, so readers always see a complete snapshot.

Dispatch
--------
Each sub-request is routed by its ``endpoint`` to a handler
``handler(payload, api_key)``.  Unknown endpoints produce
:data:`NOT_IMPLEMENTED_RESULT` instead of failing the batch.  Any handler
exception fails the whole job; results gathered so far are discarded.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from colorforge.core.errors import EmptyBatchError

logger = logging.getLogger(__name__)

NOT_IMPLEMENTED_RESULT = "noop: not implemented in batch demo"

Handler = Callable[[dict, str | None], Any]


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SubRequest(BaseModel):
    """One entry of a batch.

    Attributes:
        endpoint: Target operation path, e.g. ``"/v1/recolor"``.
        payload: JSON body the operation would receive over HTTP.
    """

    endpoint: str = Field(..., description="Target operation path, e.g. '/v1/recolor'.")
    payload: dict = Field(default_factory=dict, description="Body for the target operation.")


class Job(BaseModel):
    """Snapshot of a batch job.

    ``result`` is present only when completed, ``error`` only when failed.
    Serialises with camelCase keys (``jobId``, ``createdAt``).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    job_id: str
    status: JobStatus = JobStatus.QUEUED
    created_at: str
    result: list | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)


def new_job_id() -> str:
    """Return an opaque job identifier such as ``job_1f3a9c0b7d2e``."""
    return "job_" + uuid.uuid4().hex[:12]


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JobRegistry:
    """Process-wide map of job id to the latest :class:`Job` snapshot."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def add(self, job: Job) -> bool:
        """Insert a new job.  Returns ``False`` if the id is already taken."""
        with self._lock:
            if job.job_id in self._jobs:
                return False
            self._jobs[job.job_id] = job
            return True

    def put(self, job: Job) -> None:
        """Replace the stored snapshot for ``job.job_id``."""
        with self._lock:
            self._jobs[job.job_id] = job

    def get(self, job_id: str) -> Job | None:
        with self._lock:
            return self._jobs.get(job_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def __contains__(self, job_id: object) -> bool:
        with self._lock:
            return job_id in self._jobs


class JobOrchestrator:
    """Runs batches outside the request/response cycle.

    Attributes:
        registry (JobRegistry):
            Where job snapshots live.
        _handlers (Mapping[str, Handler]):
            Endpoint path to handler.
        _executor (Executor):
            Pool running detached jobs.
    """

    def __init__(
        self,
        handlers: Mapping[str, Handler],
        *,
        registry: JobRegistry | None = None,
        executor: Executor | None = None,
        max_workers: int = 4,
    ) -> None:
        """Initialise the orchestrator.

        Args:
            handlers: Endpoint path to ``handler(payload, api_key)``.
            registry: Job registry; a fresh one is created when omitted.
            executor: Executor for detached work.  When omitted a
                :class:`ThreadPoolExecutor` with *max_workers* threads is
                created and owned by this instance.
            max_workers: Pool size for the owned executor.
        """
        self.registry = registry if registry is not None else JobRegistry()
        self._handlers = dict(handlers)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="colorforge-job",
        )

    # -- Public interface ---------------------------------------------------

    def submit(self, sub_requests: Sequence[SubRequest], *, api_key: str | None = None) -> Job:
        """Record a queued job and schedule it.

        Args:
            sub_requests: Batch entries, processed in order.
            api_key: Provider credential made available to every handler.

        Returns:
            The ``queued`` job snapshot as inserted.

        Raises:
            EmptyBatchError: If *sub_requests* is empty.  Nothing is recorded.
        """
        if not sub_requests:
            raise EmptyBatchError("jobs array required")

        job = Job(job_id=new_job_id(), created_at=_utc_now_iso())
        while not self.registry.add(job):
            job = Job(job_id=new_job_id(), created_at=job.created_at)

        logger.info("Job %s queued with %d sub-request(s).", job.job_id, len(sub_requests))
        self._executor.submit(self._run, job, list(sub_requests), api_key)
        return job

    def get_status(self, job_id: str) -> Job | None:
        """Return the latest snapshot, or ``None`` if the id is unknown."""
        return self.registry.get(job_id)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the owned executor, optionally waiting for running jobs."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    # -- Detached work ------------------------------------------------------

    def _dispatch(self, sub_request: SubRequest, api_key: str | None) -> dict:
        handler = self._handlers.get(sub_request.endpoint)
        if handler is None:
            return {"endpoint": sub_request.endpoint, "result": NOT_IMPLEMENTED_RESULT}
        return {"endpoint": sub_request.endpoint, "result": handler(sub_request.payload, api_key)}

    def _run(self, job: Job, sub_requests: list[SubRequest], api_key: str | None) -> None:
        """Process one job.  Never raises."""
        job = job.model_copy(update={"status": JobStatus.PROCESSING})
        self.registry.put(job)
        logger.info("Job %s processing.", job.job_id)

        try:
            results = [self._dispatch(sub_request, api_key) for sub_request in sub_requests]
        except Exception as exc:
            logger.exception("Job %s failed.", job.job_id)
            error = str(exc) or type(exc).__name__
            self.registry.put(job.model_copy(update={"status": JobStatus.FAILED, "error": error}))
            return

        self.registry.put(job.model_copy(update={"status": JobStatus.COMPLETED, "result": results}))
        logger.info("Job %s completed.", job.job_id)
