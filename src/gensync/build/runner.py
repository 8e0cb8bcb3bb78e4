"""Generation pass: write artifacts, log outcomes, record history."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable

from gensync.build.sequencer import TimestampSequencer
from gensync.build.writer import ArtifactWriter, normalize_relative_path
from gensync.core.config import GenerationOptions
from gensync.core.errors import HistoryError, MergeError
from gensync.core.logging import GenerationLogger, OutcomeSummary, Verbosity
from gensync.core.models import GeneratedArtifact, SourceIdentity, WriteOutcome
from gensync.history.manager import HistoryManager
from gensync.history.store import FilesystemRunStore

logger = logging.getLogger(__name__)


def new_execution_id() -> str:
    """Id shared by every run of one batch invocation."""
    return f"{datetime.now().strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:12]}"


@dataclass
class PassResult:
    """Summary of one generation pass."""

    outcomes: list[WriteOutcome] = field(default_factory=list)
    run_id: str | None = None
    summary: OutcomeSummary = field(default_factory=OutcomeSummary)
    warnings: list[str] = field(default_factory=list)
    total_time: float = 0.0

    @property
    def failed(self) -> bool:
        return self.summary.failed


class GenerationRunner:
    """Runs one generation pass over already-rendered artifacts."""

    def __init__(
        self,
        writer: ArtifactWriter,
        history: HistoryManager,
        logger: GenerationLogger | None = None,
    ):
        self.writer = writer
        self.history = history
        self.log = logger or GenerationLogger()

    @classmethod
    def from_settings(cls, settings=None, verbosity: Verbosity = Verbosity.DEFAULT) -> GenerationRunner:
        """Runner wired to the configured output, history and log directories."""
        from gensync.config import get_settings

        settings = settings or get_settings()
        settings.ensure_storage_dir()
        return cls(
            ArtifactWriter(settings.output_dir, case_policy=settings.case_policy),
            HistoryManager(FilesystemRunStore(settings.history_path), enabled=settings.history_enabled),
            GenerationLogger(verbosity=verbosity, log_dir=settings.log_dir),
        )

    def close(self) -> None:
        self.log.close()

    def __enter__(self) -> GenerationRunner:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def ordering_key(self, sequencer: TimestampSequencer, namespace: str, directory: str, suffix: str) -> str:
        """Resolve the ordering key of an artifact in ``directory`` (relative to the output root)."""
        key = sequencer.resolve(namespace, self.writer.base_path / directory, suffix)
        self.log.key_issued(namespace, key)
        return key

    def merged_artifact(
        self,
        relative_path: str,
        merge: Callable[[str | None], str | None],
    ) -> GeneratedArtifact | None:
        """Run a merger against the current content of a hand-maintained file.

        Returns an artifact that overwrites the file with the merged text,
        or None when the merger reports no change.
        """
        target = self.writer.base_path / normalize_relative_path(relative_path)
        try:
            existing = target.read_bytes().decode("utf-8") if target.is_file() else None
        except (OSError, UnicodeDecodeError) as e:
            raise MergeError(f"Could not read {relative_path}: {e}") from e

        merged = merge(existing)
        self.log.merge_event(relative_path, merged is not None)
        if merged is None:
            return None
        return GeneratedArtifact(relative_path, merged, force_overwrite=True)

    def apply(
        self,
        artifacts: Iterable[GeneratedArtifact],
        source: SourceIdentity,
        options: GenerationOptions | None = None,
        execution_id: str | None = None,
        context: dict | None = None,
    ) -> PassResult:
        """Write artifacts and record the pass.

        Dry runs preview every artifact and never record history.
        """
        start = time.time()
        options = options or GenerationOptions()
        artifacts = list(artifacts)
        result = PassResult()

        self.log.pass_start(source.source_path or source.entity, len(artifacts), options.dry_run)

        for artifact in artifacts:
            outcome = self.writer.write(artifact, dry_run=options.dry_run, force=options.force)
            self.log.outcome(outcome)
            result.outcomes.append(outcome)

        result.summary = OutcomeSummary.from_outcomes(result.outcomes)

        if not options.dry_run:
            record_context = dict(context or {})
            record_context.setdefault("options", options.to_dict())
            if execution_id is not None:
                record_context["execution_id"] = execution_id
            try:
                result.run_id = self.history.record(source, result.outcomes, record_context)
            except HistoryError as e:
                logger.error("%s", e)
                result.warnings.append(str(e))
            self.log.run_recorded(result.run_id)

        self.log.pass_finish()
        result.total_time = time.time() - start
        return result
