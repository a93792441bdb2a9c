from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .cache.metadata import metadata_path, read_metadata, stamp_next_update
from .cache.snapshot import SnapshotManager
from .errors import (
    BackupFailed,
    ExecutionFailed,
    MetadataError,
    MetadataMalformed,
    MetadataNotFound,
    RestoreFailed,
)
from .executor import RefreshExecutor
from .models import CycleOutcome, CycleStatus
from .util.time import format_rfc3339, now_utc

LOGGER = logging.getLogger(__name__)

UP_TO_DATE_MESSAGE = "Trivy DB is up-to-date. No update needed."
COMPLETE_MESSAGE = "Trivy DB update complete."


class RefreshOrchestrator:
    """Decides whether the cache is due and runs snapshot -> attempt -> commit-or-rollback.

    Every failure is turned into a ``CycleOutcome``; only the execution step is
    recovered from (by restoring the snapshot and pushing the schedule back).
    """

    def __init__(
        self,
        cache_dir: Path,
        snapshots: SnapshotManager,
        executor: RefreshExecutor,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.cache_dir = cache_dir
        self.snapshots = snapshots
        self.executor = executor
        self.clock = clock

    @property
    def metadata_file(self) -> Path:
        return metadata_path(self.cache_dir)

    def run_cycle(self) -> CycleOutcome:
        LOGGER.info("Checking %s", self.metadata_file)
        issue: Optional[str] = None
        try:
            record = read_metadata(self.metadata_file)
        except MetadataNotFound:
            issue = "missing"
            LOGGER.info("No metadata found; executing Trivy DB download...")
        except MetadataMalformed as exc:
            issue = "malformed"
            LOGGER.warning("Metadata is present but malformed, forcing a refresh: %s", exc.reason)
        except MetadataError as exc:
            issue = "unreadable"
            LOGGER.warning("Metadata could not be read, forcing a refresh: %s", exc.reason)
        else:
            next_update_at = record.next_update_at
            if self.clock() < next_update_at:
                LOGGER.info(UP_TO_DATE_MESSAGE)
                LOGGER.info("Next Trivy DB update will happen at: %s", format_rfc3339(next_update_at))
                return CycleOutcome(
                    status=CycleStatus.UP_TO_DATE,
                    message=UP_TO_DATE_MESSAGE,
                    next_update_at=next_update_at,
                )
            LOGGER.info("Updating Trivy DB...")
        return self._refresh(issue)

    def _refresh(self, issue: Optional[str]) -> CycleOutcome:
        LOGGER.info("Backing up %s", self.cache_dir)
        try:
            self.snapshots.backup(self.cache_dir)
        except BackupFailed as exc:
            LOGGER.error("Error backing up Trivy DB: %s", exc)
            return CycleOutcome(
                status=CycleStatus.BACKUP_FAILED,
                message=f"Error backing up Trivy DB: {exc}",
                metadata_issue=issue,
            )

        LOGGER.info("Running Trivy DB update")
        try:
            self.executor.run(self.cache_dir)
        except ExecutionFailed as exc:
            LOGGER.error("%s", exc)
            return self._rollback(exc, issue)
        except Exception as exc:
            LOGGER.exception("Trivy DB update crashed")
            return self._rollback(ExecutionFailed(f"trivy update crashed: {exc!r}"), issue)
        return self._commit(issue)

    def _commit(self, issue: Optional[str]) -> CycleOutcome:
        try:
            record = read_metadata(self.metadata_file)
            next_update_at = record.next_update_at
        except MetadataError as exc:
            LOGGER.error("Trivy DB updated but the new schedule could not be read: %s", exc)
            return CycleOutcome(
                status=CycleStatus.REPORT_FAILED,
                message=f"{COMPLETE_MESSAGE} Reading the new schedule failed: {exc}",
                metadata_issue=issue,
                backup_taken=True,
            )
        LOGGER.info(COMPLETE_MESSAGE)
        LOGGER.info("Next Trivy DB update will happen at: %s", format_rfc3339(next_update_at))
        return CycleOutcome(
            status=CycleStatus.REFRESHED,
            message=COMPLETE_MESSAGE,
            next_update_at=next_update_at,
            metadata_issue=issue,
            backup_taken=True,
        )

    def _rollback(self, failure: ExecutionFailed, issue: Optional[str]) -> CycleOutcome:
        LOGGER.warning("Update failed, restoring from backup...")
        try:
            self.snapshots.restore(self.cache_dir)
        except RestoreFailed as exc:
            LOGGER.error("Error restoring from backup: %s", exc)
            return CycleOutcome(
                status=CycleStatus.RESTORE_FAILED,
                message=f"Error restoring from backup: {exc}",
                metadata_issue=issue,
                backup_taken=True,
                diagnostics=failure.diagnostics,
            )

        try:
            stamped = stamp_next_update(self.metadata_file, self.clock())
        except MetadataError as exc:
            LOGGER.error("Restored from backup but could not delay the next update: %s", exc)
            return CycleOutcome(
                status=CycleStatus.RESTAMP_FAILED,
                message=f"Update failed and cache restored, but delaying the next update failed: {exc}",
                metadata_issue=issue,
                backup_taken=True,
                rolled_back=True,
                diagnostics=failure.diagnostics,
            )

        return CycleOutcome(
            status=CycleStatus.UPDATE_FAILED,
            message=f"Update failed, restored from backup: {failure}",
            next_update_at=stamped.next_update_at,
            metadata_issue=issue,
            backup_taken=True,
            rolled_back=True,
            diagnostics=failure.diagnostics,
        )
