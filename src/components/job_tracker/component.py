"""
Job tracker component - polls a regeneration job until it is terminal.

Key behaviors:
- One polling task per tracker; polls are sequential, so only one request
  is ever in flight and results apply in order
- Poll transport errors are swallowed; the job keeps running server-side
- On COMPLETED or FAILED: polling stops, exactly one terminal callback
  fires, then the catalog is refreshed once (whatever the outcome, since
  uploads and deletes may have landed even if regeneration failed)
- close() cancels the task synchronously; a result that arrives afterwards
  is discarded through the generation token, and later start() calls are
  ignored
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from types import TracebackType

from src.core.entities import ApplyJob, JobHandle, JobStatus
from src.core.ports.fonts_api import NotFound, Ok, describe

from .models import TrackerSnapshot, TrackerState
from .ports import CatalogRefreshPort, JobStatusPort

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 2.0

JobCallback = Callable[[ApplyJob], None]


class JobTracker:
    """
    Observes one regeneration job at a time.

    Must be started from inside a running event loop.
    """

    def __init__(
        self,
        api: JobStatusPort,
        *,
        catalog: CatalogRefreshPort | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        on_completed: JobCallback | None = None,
        on_failed: JobCallback | None = None,
        on_progress: JobCallback | None = None,
    ) -> None:
        self._api = api
        self._catalog = catalog
        self._poll_interval = poll_interval
        self._on_completed = on_completed
        self._on_failed = on_failed
        self._on_progress = on_progress

        self._state = TrackerState.IDLE
        self._job: ApplyJob | None = None
        self._polls = 0
        self._task: asyncio.Task[None] | None = None
        self._generation = 0
        self._closed = False

    # --- Observable state ---

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def job(self) -> ApplyJob | None:
        return self._job

    @property
    def is_running(self) -> bool:
        return self._state is TrackerState.RUNNING

    def snapshot(self) -> TrackerSnapshot:
        job = self._job
        return TrackerSnapshot(
            state=self._state,
            job_id=job.job_id if job else None,
            progress_message=job.progress_message if job else None,
            error_detail=job.error_detail if job else None,
            polls=self._polls,
        )

    # --- Lifecycle ---

    def start(self, handle: JobHandle) -> None:
        """
        Begin polling handle.job_id, replacing any job being observed.

        Ignored once the tracker is closed; the job keeps running server-side.
        """
        if self._closed:
            logger.debug("Tracker closed, not following jobId=%s", handle.job_id)
            return

        if self.is_running and self._job is not None and self._job.job_id == handle.job_id:
            return

        self._cancel_task()
        self._generation += 1
        self._state = TrackerState.RUNNING
        self._polls = 0
        self._job = ApplyJob(
            job_id=handle.job_id,
            status=JobStatus.RUNNING,
            progress_message="Starting...",
        )
        logger.info("Tracking font generation jobId=%s (adopted=%s)", handle.job_id, handle.adopted)

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._poll_loop(self._generation, handle.job_id))

    def close(self) -> None:
        """Tear down: cancel polling now; later results are ignored."""
        self._closed = True
        self._generation += 1
        self._cancel_task()

    async def wait(self) -> TrackerState:
        """Wait for the current polling task to finish (terminal or closed)."""
        task = self._task
        if task is None:
            return self._state
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
        return self._state

    async def __aenter__(self) -> JobTracker:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # --- Polling ---

    async def _poll_loop(self, generation: int, job_id: str) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            if generation != self._generation:
                return

            try:
                result = await self._api.get_job_status(job_id)
            except Exception as e:
                logger.debug("Ignoring poll error for jobId=%s: %s", job_id, e)
                continue

            if generation != self._generation:
                return
            self._polls += 1

            if isinstance(result, Ok):
                job = result.value
            elif isinstance(result, NotFound):
                job = ApplyJob(
                    job_id=job_id,
                    status=JobStatus.FAILED,
                    error_detail="Job is no longer tracked by the server",
                )
            else:
                logger.debug("Ignoring poll failure for jobId=%s: %s", job_id, describe(result))
                continue

            self._job = job
            if not job.is_terminal:
                self._notify(self._on_progress, job)
                continue

            await self._finish(generation, job)
            return

    async def _finish(self, generation: int, job: ApplyJob) -> None:
        if job.status is JobStatus.COMPLETED:
            self._state = TrackerState.COMPLETED
            logger.info("Font generation completed: jobId=%s", job.job_id)
            self._notify(self._on_completed, job)
        else:
            self._state = TrackerState.FAILED
            logger.warning(
                "Font generation failed: jobId=%s, error=%s",
                job.job_id,
                job.error_detail or "Unknown error",
            )
            self._notify(self._on_failed, job)

        if self._catalog is None or generation != self._generation:
            return
        try:
            await self._catalog.refresh()
        except Exception:
            logger.exception("Catalog refresh after jobId=%s failed", job.job_id)

    @staticmethod
    def _notify(callback: JobCallback | None, job: ApplyJob) -> None:
        if callback is None:
            return
        try:
            callback(job)
        except Exception:
            logger.exception("Job tracker callback failed for jobId=%s", job.job_id)


def create_job_tracker(
    api: JobStatusPort,
    *,
    catalog: CatalogRefreshPort | None = None,
    poll_interval_ms: int = 2000,
    on_completed: JobCallback | None = None,
    on_failed: JobCallback | None = None,
    on_progress: JobCallback | None = None,
) -> JobTracker:
    """Factory taking the interval in milliseconds, as configured in rules."""
    return JobTracker(
        api,
        catalog=catalog,
        poll_interval=poll_interval_ms / 1000,
        on_completed=on_completed,
        on_failed=on_failed,
        on_progress=on_progress,
    )
