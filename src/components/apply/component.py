"""
Apply component - three-phase commit of pending font changes.

Phases run strictly in order; each is a hard barrier (every item of phase n
settles before phase n+1 starts):

1. Upload every pending file. Item failures are collected. Unauthorized
   stops further uploads and aborts the cycle.
2. Delete the physical files behind every marked custom font, one call per
   unique file id. NotFound is a successful no-op. Item failures are
   collected. Unauthorized aborts the cycle.
3. Trigger regeneration, always. Conflict adopts the running job.

The pending change set is cleared once phase 3 has been attempted,
whatever its outcome. Collected failures are returned as warnings and are
not retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import TYPE_CHECKING, TypeVar

from src.components.catalog import resolve_file_ids
from src.components.pending import PendingChangeSet, PendingSnapshot
from src.core.entities import JobHandle, PendingAddition, Resource
from src.core.ports.fonts_api import (
    ApplyRejectedError,
    Conflict,
    Failure,
    FontsError,
    NotFound,
    Ok,
    TransportError,
    TransportFailure,
    Unauthorized,
    UnauthorizedError,
    describe,
)

from .models import (
    ApplyOutput,
    ConfirmationPrompt,
    ItemFailure,
    PhaseReport,
)
from .ports import ApplyApiPort, ConfirmPort, JobObserverPort

if TYPE_CHECKING:
    from src.rules.models import FontsRules

logger = logging.getLogger(__name__)

T = TypeVar("T")

DURATION_NOTICE = "This process may take 1-5 minutes. Continue?"


# --- Helpers ---


def build_confirmation(changes: PendingSnapshot, restart_notice: str = "") -> ConfirmationPrompt:
    """Prompt text for an apply (pending changes) or a plain regenerate."""
    if changes.is_empty:
        head = "Generate font cache?"
    else:
        head = f"Apply changes ({', '.join(changes.action_parts())}) and regenerate font cache?"

    sections = [head]
    if restart_notice:
        sections.append(restart_notice)
    sections.append(DURATION_NOTICE)

    return ConfirmationPrompt(
        message="\n\n".join(sections),
        has_pending_changes=not changes.is_empty,
        summary=changes.summary(),
    )


async def _settle_all(
    items: Sequence[T],
    call: Callable[[T], Awaitable[object]],
    concurrency: int,
) -> list[tuple[T, object | None]]:
    """
    Run call(item) for every item with bounded concurrency and wait for all.

    Once any call returns Unauthorized, items not yet started are skipped
    (their result is None). Unexpected exceptions become Failure results.
    """
    semaphore = asyncio.Semaphore(max(1, concurrency))
    unauthorized = False

    async def run_one(item: T) -> tuple[T, object | None]:
        nonlocal unauthorized
        async with semaphore:
            if unauthorized:
                return item, None
            try:
                result = await call(item)
            except Exception as e:
                logger.warning("Unexpected error for %s: %s", item, e)
                result = Failure(str(e))
            if isinstance(result, Unauthorized):
                unauthorized = True
            return item, result

    return list(await asyncio.gather(*(run_one(item) for item in items)))


def _first_unauthorized(results: Iterable[tuple[object, object | None]]) -> Unauthorized | None:
    for _, result in results:
        if isinstance(result, Unauthorized):
            return result
    return None


# --- Phases ---


async def run_uploads(
    additions: Sequence[PendingAddition],
    *,
    api: ApplyApiPort,
    concurrency: int = 1,
) -> PhaseReport:
    """Phase 1. Raises UnauthorizedError if any upload was unauthorized."""
    if not additions:
        return PhaseReport()

    logger.info("Uploading %d font file(s)", len(additions))
    results = await _settle_all(additions, api.upload, concurrency)

    denied = _first_unauthorized(results)
    if denied is not None:
        logger.warning("Upload rejected as unauthorized; aborting apply")
        raise UnauthorizedError(denied.message)

    succeeded: list[str] = []
    failures: list[ItemFailure] = []
    for item, result in results:
        if isinstance(result, Ok):
            succeeded.append(item.name)
        else:
            message = describe(result)
            logger.warning("Upload failed for %s: %s", item.name, message)
            failures.append(ItemFailure(name=item.name, error=message))

    return PhaseReport(succeeded=tuple(succeeded), failures=tuple(failures))


async def run_deletions(
    names: Sequence[str],
    catalog: Sequence[Resource],
    *,
    api: ApplyApiPort,
    concurrency: int = 1,
) -> PhaseReport:
    """
    Phase 2. Deletes by physical file id, one call per unique id.

    Raises UnauthorizedError if any delete was unauthorized.
    """
    if not names:
        return PhaseReport()

    resolved = resolve_file_ids(catalog, names)
    failures: list[ItemFailure] = [
        ItemFailure(name=name, error="Built-in fonts cannot be deleted")
        for name in resolved.builtin_names
    ]
    if resolved.unknown_names:
        logger.info("Skipping fonts no longer in catalog: %s", ", ".join(resolved.unknown_names))
    for file_id, others in resolved.shared_file_ids.items():
        logger.info("Deleting %s, also referenced by unmarked font(s): %s", file_id, ", ".join(others))

    logger.info("Deleting %d font file(s) for %d font(s)", len(resolved.file_ids), len(names))
    results = await _settle_all(resolved.file_ids, api.delete, concurrency)

    denied = _first_unauthorized(results)
    if denied is not None:
        logger.warning("Delete rejected as unauthorized; aborting apply")
        raise UnauthorizedError(denied.message)

    succeeded: list[str] = []
    already_gone: list[str] = []
    for file_id, result in results:
        if isinstance(result, Ok):
            succeeded.append(file_id)
        elif isinstance(result, NotFound):
            # An earlier, partially completed apply may already have removed it
            already_gone.append(file_id)
        else:
            message = describe(result)
            logger.warning("Delete failed for %s: %s", file_id, message)
            failures.append(ItemFailure(name=file_id, error=message))

    return PhaseReport(
        succeeded=tuple(succeeded),
        failures=tuple(failures),
        already_gone=tuple(already_gone),
        skipped=resolved.unknown_names,
    )


async def trigger_regeneration(*, api: ApplyApiPort) -> JobHandle:
    """Phase 3. Returns the new job, or the running one on Conflict."""
    result = await api.apply_changes()

    if isinstance(result, Ok):
        logger.info("Font generation started: jobId=%s", result.value.job_id)
        return result.value
    if isinstance(result, Conflict):
        logger.info("Font generation already running, adopting jobId=%s", result.existing_job_id)
        return JobHandle(job_id=result.existing_job_id, adopted=True)
    if isinstance(result, Unauthorized):
        raise UnauthorizedError(result.message)
    if isinstance(result, TransportFailure):
        raise TransportError(result.message)

    status_code = result.status_code if isinstance(result, Failure) else None
    raise ApplyRejectedError(describe(result), status_code=status_code)


def _warnings(uploads: PhaseReport, deletions: PhaseReport) -> list[str]:
    warnings = [f"Failed to upload {f.name}: {f.error}" for f in uploads.failures]
    warnings.extend(f"Failed to delete {f.name}: {f.error}" for f in deletions.failures)
    return warnings


# --- Service ---


class ApplyOrchestrator:
    """
    Runs one apply cycle at a time against the fonts API.

    The pending change set is owned by the orchestrator for the duration of
    a cycle.
    """

    def __init__(
        self,
        api: ApplyApiPort,
        *,
        confirm: ConfirmPort | None = None,
        observer: JobObserverPort | None = None,
        upload_concurrency: int = 1,
        delete_concurrency: int = 1,
        restart_notice: str = "",
    ) -> None:
        self._api = api
        self._confirm = confirm
        self._observer = observer
        self._upload_concurrency = upload_concurrency
        self._delete_concurrency = delete_concurrency
        self._restart_notice = restart_notice
        self._in_progress = False

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    async def apply(
        self,
        pending: PendingChangeSet,
        catalog: Sequence[Resource],
    ) -> ApplyOutput:
        """
        Apply pending changes (if any) and regenerate.

        Raises:
            UnauthorizedError: session rejected in any phase
            ApplyRejectedError: regeneration refused (other than Conflict)
            TransportError: regeneration trigger could not reach the server
        """
        if self._in_progress:
            raise FontsError("An apply is already in progress")

        # Claimed before the confirmation await so a second caller is refused
        self._in_progress = True
        try:
            changes = pending.snapshot()
            if self._confirm is not None:
                prompt = build_confirmation(changes, self._restart_notice)
                if not await self._confirm.confirm(prompt):
                    logger.info("Apply cancelled by user")
                    return ApplyOutput(cancelled=True)

            return await self._run(pending, changes, catalog)
        finally:
            self._in_progress = False

    async def _run(
        self,
        pending: PendingChangeSet,
        changes: PendingSnapshot,
        catalog: Sequence[Resource],
    ) -> ApplyOutput:
        uploads = await run_uploads(
            changes.additions,
            api=self._api,
            concurrency=self._upload_concurrency,
        )
        deletions = await run_deletions(
            changes.deletions,
            catalog,
            api=self._api,
            concurrency=self._delete_concurrency,
        )

        try:
            handle = await trigger_regeneration(api=self._api)
        finally:
            # The batch has been submitted; it is never retried automatically
            pending.clear()

        if self._observer is not None:
            self._observer.start(handle)

        output = ApplyOutput(
            started_job=handle,
            warnings=_warnings(uploads, deletions),
            uploads=uploads,
            deletions=deletions,
        )
        if output.warnings:
            logger.warning("Apply finished with %d warning(s)", len(output.warnings))
        return output


def create_apply_orchestrator(
    api: ApplyApiPort,
    *,
    confirm: ConfirmPort | None = None,
    observer: JobObserverPort | None = None,
    fonts_rules: FontsRules | None = None,
) -> ApplyOrchestrator:
    """
    Factory function to create an orchestrator from fonts rules.

    Args:
        api: Fonts API write port.
        confirm: Optional user confirmation capability.
        observer: Optional job observer (usually the job tracker).
        fonts_rules: Optional fonts rules; defaults apply when omitted.
    """
    if fonts_rules is None:
        return ApplyOrchestrator(api, confirm=confirm, observer=observer)

    return ApplyOrchestrator(
        api,
        confirm=confirm,
        observer=observer,
        upload_concurrency=fonts_rules.upload_concurrency,
        delete_concurrency=fonts_rules.delete_concurrency,
        restart_notice=fonts_rules.restart_notice,
    )
