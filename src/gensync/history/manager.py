"""Run history: record what a generation pass changed, and find runs again."""

from __future__ import annotations

import logging
import re
import time
import uuid
from datetime import datetime
from pathlib import PurePosixPath
from typing import Iterable

from gensync.core.models import GenerationRun, ManifestEntry, SourceIdentity, WriteOutcome, WriteStatus
from gensync.history.store import RunStore

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    """Lowercase ASCII slug: runs of other characters become one ``-``."""
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def make_run_id(source: SourceIdentity, now: datetime | None = None) -> str:
    """``<YYYYmmddHHMMSS>-<module|global>-<entity>-<uuid>``; sorts by creation time."""
    now = now or datetime.now()
    module = slugify(source.module or "") or "global"
    entity = slugify(source.entity) or "entity"
    return f"{now.strftime('%Y%m%d%H%M%S')}-{module}-{entity}-{uuid.uuid4()}"


def backup_name(relative_path: str, index: int) -> str:
    """``NNN-<slug of basename>.bak``, numbered from 1 in manifest order."""
    basename = PurePosixPath(relative_path.replace("\\", "/")).name if relative_path else ""
    return f"{index + 1:03d}-{slugify(basename) or 'file'}.bak"


class HistoryManager:
    """Records generation runs into a RunStore and lists them back."""

    def __init__(self, store: RunStore | None, enabled: bool = True):
        self.store = store
        self.enabled = enabled

    @property
    def is_enabled(self) -> bool:
        return self.enabled and self.store is not None

    def record(
        self,
        source: SourceIdentity,
        outcomes: Iterable[WriteOutcome],
        context: dict | None = None,
    ) -> str | None:
        """Persist the tracked outcomes of one pass as a new run.

        Returns the run id, or None when history is disabled or nothing was
        written or overwritten. ``context`` may carry ``execution_id``,
        ``options``, ``filters``, ``warnings`` and a per-path ``layers`` map.
        Raises HistoryError when the store cannot persist the run.
        """
        if not self.is_enabled:
            return None

        tracked = [outcome for outcome in outcomes if outcome.is_tracked]
        if not tracked:
            return None

        context = context or {}
        layers = context.get("layers") or {}
        now = datetime.now().astimezone()

        entries: list[ManifestEntry] = []
        backups: dict[str, bytes] = {}

        for index, outcome in enumerate(tracked):
            backup = None
            overwritten = outcome.status is WriteStatus.OVERWRITTEN
            if overwritten and outcome.previous_content is not None:
                backup = backup_name(outcome.relative_path, index)
                backups[backup] = outcome.previous_content

            entries.append(ManifestEntry(
                status=outcome.status,
                relative_path=outcome.relative_path,
                absolute_path=outcome.absolute_path,
                byte_size=outcome.byte_size,
                content_hash=outcome.content_hash,
                previous_content_hash=outcome.previous_content_hash if overwritten else None,
                previous_byte_size=outcome.previous_byte_size if overwritten else None,
                backup=backup,
                layer=layers.get(outcome.relative_path),
            ))

        run = GenerationRun(
            run_id=make_run_id(source, now),
            created_at=now,
            source=source,
            entries=entries,
            execution_id=context.get("execution_id"),
            options=dict(context.get("options") or {}),
            filters=dict(context.get("filters") or {}),
            warnings=list(context.get("warnings") or []),
            sequence=time.time(),
        )

        self.store.save(run, backups)
        logger.info("Recorded run %s (%d entries, %d backups)", run.run_id, len(entries), len(backups))
        return run.run_id

    def list_runs(self) -> list[GenerationRun]:
        """All readable runs, newest first.

        Ordered by sequence, then timestamp, then storage modification
        time, then run id, each descending.
        """
        if not self.is_enabled:
            return []

        runs = []
        for run_id in self.store.run_ids():
            run = self.store.load(run_id)
            if run is not None:
                runs.append(run)

        def sort_key(run: GenerationRun):
            timestamp = run.created_at.timestamp() if run.created_at else 0.0
            mtime = self.store.modified_at(run.run_id) or 0.0
            return (run.sequence, timestamp, mtime, run.run_id)

        return sorted(runs, key=sort_key, reverse=True)

    def get_run(self, run_id: str) -> GenerationRun | None:
        if not self.is_enabled or not run_id.strip():
            return None
        return self.store.load(run_id.strip())

    def get_latest_run(self) -> GenerationRun | None:
        runs = self.list_runs()
        return runs[0] if runs else None

    def resolve_targets(self, run_id: str | None = None, execution_id: str | None = None) -> list[GenerationRun]:
        """Runs a rollback should undo.

        An explicit run id selects that run alone. An execution id selects
        every run of that execution. Otherwise the newest run is selected
        together with the other runs of its execution.
        """
        run_id = (run_id or "").strip() or None
        execution_id = (execution_id or "").strip() or None

        if run_id is not None:
            run = self.get_run(run_id)
            return [run] if run is not None else []

        runs = self.list_runs()
        if not runs:
            return []

        if execution_id is not None:
            return [run for run in runs if run.execution_id == execution_id]

        latest = runs[0]
        if latest.execution_id is None:
            return [latest]
        return [run for run in runs if run.execution_id == latest.execution_id]
