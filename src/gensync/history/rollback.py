"""Undo recorded runs: delete created files and restore overwritten ones."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from gensync.core.errors import HistoryError
from gensync.core.models import GenerationRun, ManifestEntry, WriteStatus
from gensync.history.store import RunStore

logger = logging.getLogger(__name__)

RESULT_STATUSES = ("restored", "deleted", "skipped", "error")


@dataclass(frozen=True)
class RollbackAction:
    """One manifest entry scheduled for rollback."""

    run: GenerationRun
    entry: ManifestEntry

    @property
    def label(self) -> str:
        return self.run.source.source_path or self.run.run_id

    @property
    def verb(self) -> str:
        if self.entry.status is WriteStatus.WRITTEN:
            return "delete"
        if self.entry.status is WriteStatus.OVERWRITTEN:
            return "restore"
        return "skip"


@dataclass(frozen=True)
class RollbackResult:
    action: RollbackAction
    status: str  # one of RESULT_STATUSES
    detail: str


@dataclass
class RollbackReport:
    """Per-entry results and counts of a rollback."""

    results: list[RollbackResult] = field(default_factory=list)
    runs: list[str] = field(default_factory=list)
    dry_run: bool = False

    def count(self, status: str) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def restored(self) -> int:
        return self.count("restored")

    @property
    def deleted(self) -> int:
        return self.count("deleted")

    @property
    def skipped(self) -> int:
        return self.count("skipped")

    @property
    def errors(self) -> int:
        return self.count("error")

    @property
    def failed(self) -> bool:
        return self.errors > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "runs": list(self.runs),
            "dry_run": self.dry_run,
            "restored": self.restored,
            "deleted": self.deleted,
            "skipped": self.skipped,
            "errors": self.errors,
            "failed": self.failed,
        }


def collect_actions(runs: Iterable[GenerationRun]) -> list[RollbackAction]:
    """Entries of runs, in run order then manifest order."""
    return [RollbackAction(run, entry) for run in runs for entry in run.entries]


class Rollback:
    """Reverses recorded runs using the backups in a RunStore.

    Entries are handled independently; a failure is reported for that
    entry and the rest still run. Manifests are never modified, so the
    same runs can be rolled back again.
    """

    def __init__(self, store: RunStore):
        self.store = store

    def apply(self, runs: Iterable[GenerationRun], dry_run: bool = False) -> RollbackReport:
        runs = list(runs)
        report = RollbackReport(runs=[run.run_id for run in runs], dry_run=dry_run)

        for action in collect_actions(runs):
            if dry_run:
                report.results.append(RollbackResult(action, "skipped", f"would {action.verb} {action.entry.absolute_path}"))
                continue
            report.results.append(self.rollback_entry(action))

        logger.info(
            "Rollback of %d run(s): restored=%d deleted=%d skipped=%d errors=%d",
            len(runs), report.restored, report.deleted, report.skipped, report.errors,
        )
        return report

    def rollback_entry(self, action: RollbackAction) -> RollbackResult:
        entry = action.entry

        def result(status: str, detail: str) -> RollbackResult:
            if status == "error":
                logger.warning("%s", detail)
            return RollbackResult(action, status, detail)

        if entry.status not in (WriteStatus.WRITTEN, WriteStatus.OVERWRITTEN):
            return result("skipped", f'Status "{entry.status.value}" is not rolled back.')

        if not entry.absolute_path:
            return result("error", f'No path recorded for "{entry.relative_path or "unknown"}".')

        target = Path(entry.absolute_path)

        if entry.status is WriteStatus.WRITTEN:
            if not target.is_file():
                return result("skipped", f'"{target}" no longer exists.')
            try:
                target.unlink()
            except OSError as e:
                return result("error", f'Could not delete "{target}": {e.strerror or e}')
            return result("deleted", f'Deleted "{target}".')

        if not entry.backup:
            return result("error", f'No backup recorded for "{target}".')
        try:
            content = self.store.read_backup(action.run, entry.backup)
        except HistoryError as e:
            return result("error", str(e))

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return result("error", f'Could not create directory "{target.parent}": {e.strerror or e}')
        try:
            target.write_bytes(content)
        except OSError as e:
            return result("error", f'Could not restore "{target}": {e.strerror or e}')
        return result("restored", f'Restored "{target}".')
