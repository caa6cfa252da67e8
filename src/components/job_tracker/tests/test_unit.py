"""
Job tracker component unit tests.

Polling is driven with a zero interval so every scenario runs to its
terminal state immediately.
"""

from __future__ import annotations

import asyncio

from src.components.job_tracker import (
    JobTracker,
    TrackerState,
    create_job_tracker,
)
from src.core.entities import ApplyJob, JobHandle, JobStatus
from src.core.ports.fonts_api import Failure, NotFound, Ok, TransportFailure

# --- Helpers ---


def job(status: JobStatus, job_id: str = "job-1", **kwargs: str) -> Ok[ApplyJob]:
    return Ok(ApplyJob(job_id=job_id, status=status, **kwargs))


RUNNING = job(JobStatus.RUNNING, progress_message="Rebuilding font cache...")
COMPLETED = job(JobStatus.COMPLETED)


# --- Mock Implementations ---


class ScriptedJobApi:
    """Returns scripted poll results in order; the last one repeats."""

    def __init__(self, *results: object) -> None:
        self.results = list(results)
        self.calls: list[str] = []

    async def get_job_status(self, job_id: str) -> object:
        self.calls.append(job_id)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class BlockingJobApi:
    """Every poll waits until released."""

    def __init__(self, result: object) -> None:
        self.result = result
        self.release = asyncio.Event()
        self.calls = 0

    async def get_job_status(self, job_id: str) -> object:
        self.calls += 1
        await self.release.wait()
        return self.result


class MockCatalog:
    def __init__(self, error: Exception | None = None) -> None:
        self.refreshes = 0
        self.error = error

    async def refresh(self) -> object:
        self.refreshes += 1
        if self.error is not None:
            raise self.error
        return ()


class Recorder:
    def __init__(self) -> None:
        self.completed: list[ApplyJob] = []
        self.failed: list[ApplyJob] = []
        self.progress: list[ApplyJob] = []


def make_tracker(api: object, catalog: MockCatalog | None = None) -> tuple[JobTracker, Recorder]:
    recorder = Recorder()
    tracker = JobTracker(
        api,  # type: ignore[arg-type]
        catalog=catalog,
        poll_interval=0,
        on_completed=recorder.completed.append,
        on_failed=recorder.failed.append,
        on_progress=recorder.progress.append,
    )
    return tracker, recorder


# --- Tests ---


class TestTerminalStates:
    def test_running_running_completed(self) -> None:
        api = ScriptedJobApi(RUNNING, RUNNING, COMPLETED)
        catalog = MockCatalog()
        tracker, recorder = make_tracker(api, catalog)

        async def scenario() -> TrackerState:
            tracker.start(JobHandle(job_id="job-1"))
            assert tracker.state is TrackerState.RUNNING
            return await tracker.wait()

        assert asyncio.run(scenario()) is TrackerState.COMPLETED
        assert len(recorder.completed) == 1
        assert recorder.failed == []
        assert catalog.refreshes == 1
        assert len(api.calls) == 3
        assert len(recorder.progress) == 2
        assert recorder.progress[0].progress_message == "Rebuilding font cache..."

    def test_failed_job_still_refreshes(self) -> None:
        api = ScriptedJobApi(job(JobStatus.FAILED, error_detail="fc-cache exited with 1"))
        catalog = MockCatalog()
        tracker, recorder = make_tracker(api, catalog)

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await tracker.wait()

        asyncio.run(scenario())

        assert tracker.state is TrackerState.FAILED
        assert recorder.failed[0].error_detail == "fc-cache exited with 1"
        assert catalog.refreshes == 1
        assert tracker.snapshot().error_detail == "fc-cache exited with 1"

    def test_not_found_is_terminal_failure(self) -> None:
        api = ScriptedJobApi(NotFound("Job not found"))
        tracker, recorder = make_tracker(api, MockCatalog())

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await tracker.wait()

        asyncio.run(scenario())

        assert tracker.state is TrackerState.FAILED
        assert recorder.failed[0].error_detail == "Job is no longer tracked by the server"

    def test_queued_is_not_terminal(self) -> None:
        api = ScriptedJobApi(job(JobStatus.QUEUED), COMPLETED)
        tracker, recorder = make_tracker(api)

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await tracker.wait()

        asyncio.run(scenario())

        assert len(recorder.progress) == 1
        assert tracker.state is TrackerState.COMPLETED


class TestPollFailures:
    def test_transport_and_server_errors_are_swallowed(self) -> None:
        api = ScriptedJobApi(
            TransportFailure(),
            ConnectionError("reset by peer"),
            Failure("Bad gateway", status_code=502),
            COMPLETED,
        )
        tracker, recorder = make_tracker(api, MockCatalog())

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await tracker.wait()

        asyncio.run(scenario())

        assert tracker.state is TrackerState.COMPLETED
        assert len(api.calls) == 4
        assert recorder.progress == []

    def test_callback_errors_do_not_break_polling(self) -> None:
        def broken(job: ApplyJob) -> None:
            raise ValueError("view is gone")

        catalog = MockCatalog()
        tracker = JobTracker(
            ScriptedJobApi(COMPLETED),  # type: ignore[arg-type]
            catalog=catalog,
            poll_interval=0,
            on_completed=broken,
        )

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await tracker.wait()

        asyncio.run(scenario())

        assert tracker.state is TrackerState.COMPLETED
        assert catalog.refreshes == 1

    def test_refresh_failure_keeps_terminal_state(self) -> None:
        catalog = MockCatalog(error=RuntimeError("list failed"))
        tracker, recorder = make_tracker(ScriptedJobApi(COMPLETED), catalog)

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await tracker.wait()

        asyncio.run(scenario())

        assert tracker.state is TrackerState.COMPLETED
        assert len(recorder.completed) == 1


class TestLifecycle:
    def test_close_cancels_polling(self) -> None:
        api = ScriptedJobApi(RUNNING)
        catalog = MockCatalog()
        tracker, recorder = make_tracker(api, catalog)

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await asyncio.sleep(0.01)
            tracker.close()
            polls = len(api.calls)
            await asyncio.sleep(0.01)
            assert len(api.calls) == polls

        asyncio.run(scenario())

        assert recorder.completed == []
        assert catalog.refreshes == 0

    def test_result_after_close_is_discarded(self) -> None:
        api = BlockingJobApi(COMPLETED)
        catalog = MockCatalog()
        tracker, recorder = make_tracker(api, catalog)

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            while api.calls == 0:
                await asyncio.sleep(0)
            tracker.close()
            api.release.set()
            await tracker.wait()

        asyncio.run(scenario())

        assert tracker.snapshot().polls == 0
        assert tracker.job is not None
        assert tracker.job.status is JobStatus.RUNNING
        assert recorder.completed == []
        assert catalog.refreshes == 0

    def test_start_after_close_is_ignored(self) -> None:
        api = ScriptedJobApi(RUNNING)
        tracker, recorder = make_tracker(api)

        async def scenario() -> TrackerState:
            tracker.close()
            tracker.start(JobHandle(job_id="job-1"))
            return await tracker.wait()

        assert asyncio.run(scenario()) is TrackerState.IDLE
        assert not tracker.is_running
        assert tracker.job is None
        assert api.calls == []
        assert recorder.completed == []

    def test_same_job_is_not_restarted(self) -> None:
        api = ScriptedJobApi(RUNNING)
        tracker, _ = make_tracker(api)

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await asyncio.sleep(0.01)
            polls = tracker.snapshot().polls
            tracker.start(JobHandle(job_id="job-1", adopted=True))
            assert tracker.snapshot().polls == polls
            tracker.close()

        asyncio.run(scenario())

    def test_new_job_replaces_old(self) -> None:
        api = ScriptedJobApi(RUNNING)
        tracker, _ = make_tracker(api)

        async def scenario() -> None:
            tracker.start(JobHandle(job_id="job-1"))
            await asyncio.sleep(0.01)
            api.results = [job(JobStatus.COMPLETED, job_id="job-2")]
            tracker.start(JobHandle(job_id="job-2"))
            await tracker.wait()

        asyncio.run(scenario())

        assert tracker.state is TrackerState.COMPLETED
        assert tracker.job is not None
        assert tracker.job.job_id == "job-2"
        assert api.calls[-1] == "job-2"

    def test_async_context_manager_closes(self) -> None:
        api = ScriptedJobApi(RUNNING)

        async def scenario() -> JobTracker:
            async with create_job_tracker(api, poll_interval_ms=0) as tracker:  # type: ignore[arg-type]
                tracker.start(JobHandle(job_id="job-1"))
                await asyncio.sleep(0.01)
            return tracker

        tracker = asyncio.run(scenario())
        tracker.start(JobHandle(job_id="job-2"))

        assert tracker.job is not None
        assert tracker.job.job_id == "job-1"
        assert "job-2" not in api.calls

    def test_initial_snapshot(self) -> None:
        tracker, _ = make_tracker(ScriptedJobApi(RUNNING))
        snapshot = tracker.snapshot()

        assert snapshot.state is TrackerState.IDLE
        assert snapshot.job_id is None
        assert not TrackerState.RUNNING.is_terminal
