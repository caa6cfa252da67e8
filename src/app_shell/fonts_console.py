"""
Fonts console controller.

Binds the catalog, pending change set, apply orchestrator and job tracker
for one UI context (a settings tab, a CLI session). Holds the user-facing
error/success messages the view renders; no rendering happens here.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from types import TracebackType

from src.components.apply import ApplyOutput, ConfirmPort, create_apply_orchestrator
from src.components.catalog import CatalogService
from src.components.job_tracker import TrackerSnapshot, create_job_tracker
from src.components.pending import PendingChangeSet
from src.core.entities import ApplyJob, FontsStatus, JobHandle, PendingAddition, Resource
from src.core.ports.fonts_api import FontsApiPort, FontsError, UnauthorizedError
from src.rules.models import FontsRules

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Font cache regenerated successfully."

MessageCallback = Callable[[str | None, str | None], None]


class FontsConsole:
    """
    One font management session.

    error and success mirror what the view shows. A rejected session sets
    session_expired instead of an error message; re-authentication is left
    to the host.
    """

    def __init__(
        self,
        api: FontsApiPort,
        *,
        confirm: ConfirmPort | None = None,
        fonts_rules: FontsRules | None = None,
        on_message: MessageCallback | None = None,
    ) -> None:
        rules = fonts_rules or FontsRules()
        self._on_message = on_message

        self.catalog = CatalogService(api)
        self.pending = PendingChangeSet(rules.accepted_extensions)
        self.tracker = create_job_tracker(
            api,
            catalog=self.catalog,
            poll_interval_ms=rules.poll_interval_ms,
            on_completed=self._job_completed,
            on_failed=self._job_failed,
        )
        self.orchestrator = create_apply_orchestrator(
            api,
            confirm=confirm,
            observer=self.tracker,
            fonts_rules=rules,
        )

        self.status: FontsStatus | None = None
        self.error: str | None = None
        self.success: str | None = None
        self.session_expired = False

    # --- View state ---

    @property
    def available(self) -> bool:
        return self.status is not None and self.status.available

    @property
    def regenerating(self) -> bool:
        return self.orchestrator.in_progress or self.tracker.is_running

    @property
    def fonts(self) -> tuple[Resource, ...]:
        return self.catalog.resources

    def visible_fonts(self, name_filter: str = "", custom_only: bool = False) -> list[Resource]:
        return self.catalog.filter_resources(name_filter, custom_only)

    def progress(self) -> TrackerSnapshot:
        return self.tracker.snapshot()

    def _set_messages(self, error: str | None, success: str | None = None) -> None:
        self.error = error
        self.success = success
        if self._on_message is not None:
            self._on_message(error, success)

    # --- Loading ---

    async def load(self) -> FontsStatus | None:
        """
        Fetch status and, when the feature is available, the full catalog.

        Resumes tracking if the server is already regenerating.
        """
        try:
            self.status = await self.catalog.status()
            if not self.status.available:
                logger.info("Font management is not available on this server")
                return self.status

            await self.catalog.refresh()
        except UnauthorizedError:
            logger.warning("Session rejected while loading fonts")
            self.session_expired = True
            return None
        except FontsError as e:
            self._set_messages(str(e))
            return None

        job = self.status.current_job
        if self.status.is_generating and job is not None and not job.is_terminal:
            self.tracker.start(JobHandle(job_id=job.job_id, adopted=True))
        return self.status

    # --- Pending edits ---

    def add_files(self, files: Iterable[PendingAddition]) -> list[PendingAddition]:
        added = self.pending.add_files(files)
        if added:
            self.error = None
        return added

    def toggle_deletion(self, name: str) -> None:
        resource = self.catalog.find(name)
        if resource is None or not resource.is_custom:
            return
        if self.pending.is_marked(name):
            self.pending.unmark_for_deletion(name)
        else:
            self.pending.mark_for_deletion(name)

    def toggle_all_custom(self, checked: bool) -> None:
        self.pending.set_all_custom_marked(checked, self.catalog.resources)

    def all_custom_marked(self) -> bool:
        return self.pending.all_custom_marked(self.catalog.resources)

    # --- Apply ---

    async def apply(self) -> ApplyOutput | None:
        """
        Apply pending changes and regenerate.

        Returns None when the cycle failed; the reason is in error (or
        session_expired).
        """
        self._set_messages(None)
        try:
            output = await self.orchestrator.apply(self.pending, self.catalog.resources)
        except UnauthorizedError:
            logger.warning("Session rejected during apply")
            self.session_expired = True
            return None
        except FontsError as e:
            self._set_messages(str(e))
            return None

        summary = output.error_summary()
        if summary:
            self._set_messages(summary)
        return output

    async def wait_for_job(self) -> ApplyJob | None:
        await self.tracker.wait()
        return self.tracker.job

    def _job_completed(self, job: ApplyJob) -> None:
        # Upload/delete warnings from the apply stay visible next to the success
        self._set_messages(self.error, SUCCESS_MESSAGE)

    def _job_failed(self, job: ApplyJob) -> None:
        self._set_messages(f"Font generation failed: {job.error_detail or 'Unknown error'}")

    # --- Teardown ---

    def close(self) -> None:
        self.tracker.close()

    async def __aenter__(self) -> FontsConsole:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
