"""Structured logging and verbosity levels for generation passes."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from gensync.core.models import WriteOutcome


class Verbosity(IntEnum):
    """Verbosity levels for console output."""

    DEFAULT = 0   # Summary only
    VERBOSE = 1   # + per-artifact status
    DEBUG = 2     # + merge / sequencer details


STATUS_STYLES = {
    "written": "green",
    "overwritten": "yellow",
    "skipped": "dim",
    "preview": "cyan",
    "error": "red",
}

STATUS_MARKERS = {
    "written": "+",
    "overwritten": "~",
    "skipped": "=",
    "preview": "?",
    "error": "!",
}


@dataclass
class OutcomeSummary:
    """Counts of write outcomes by status for one pass.

    The dict format is::

        {
            "written": 3,
            "overwritten": 1,
            "skipped": 2,
            "preview": 0,
            "error": 0,
            "failed": False,
            "errors": ["app/Foo.php: permission denied"],
        }
    """

    counts: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    def add(self, outcome: WriteOutcome) -> None:
        status = outcome.status.value
        self.counts[status] = self.counts.get(status, 0) + 1
        if outcome.is_error:
            self.errors.append(f"{outcome.relative_path}: {outcome.message or 'unknown error'}")

    def count(self, status: str) -> int:
        return self.counts.get(status, 0)

    @property
    def failed(self) -> bool:
        """A pass fails only when some artifact errored, never because of skips."""
        return self.count("error") > 0

    @property
    def changed(self) -> int:
        return self.count("written") + self.count("overwritten")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            status: self.count(status) for status in STATUS_STYLES
        }
        data["failed"] = self.failed
        data["errors"] = list(self.errors)
        return data

    @classmethod
    def from_outcomes(cls, outcomes: list[WriteOutcome]) -> OutcomeSummary:
        summary = cls()
        for outcome in outcomes:
            summary.add(outcome)
        return summary


class GenerationLogger:
    """Structured logger for generation passes.

    Writes JSONL log files to log_dir and optionally emits console output
    via Rich based on verbosity level.
    """

    def __init__(
        self,
        verbosity: Verbosity = Verbosity.DEFAULT,
        log_dir: Path | None = None,
    ):
        self.verbosity = verbosity
        self.log_dir = log_dir
        self.stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        self.summary = OutcomeSummary()
        self._log_file = None
        self._log_path: Path | None = None

        if log_dir is not None:
            log_dir.mkdir(parents=True, exist_ok=True)
            self._log_path = log_dir / f"{self.stamp}.jsonl"
            self._log_file = open(self._log_path, "a")

    @property
    def log_path(self) -> Path | None:
        return self._log_path

    def _write_event(self, event: dict[str, Any]) -> None:
        """Write a JSON event to the JSONL log file."""
        if self._log_file is not None:
            event["timestamp"] = datetime.now(timezone.utc).isoformat()
            self._log_file.write(json.dumps(event) + "\n")
            self._log_file.flush()

    def _console_print(self, message: str, min_verbosity: Verbosity) -> None:
        """Print to console if verbosity is high enough."""
        if self.verbosity >= min_verbosity:
            from rich.console import Console

            Console().print(message)

    # -- Pass lifecycle --

    def pass_start(self, source: str, artifact_count: int, dry_run: bool) -> None:
        self.summary = OutcomeSummary()
        self._write_event({
            "event": "pass_start",
            "source": source,
            "artifact_count": artifact_count,
            "dry_run": dry_run,
        })
        self._console_print(
            f"  [bold]Generating:[/bold] {source} ({artifact_count} artifacts)",
            Verbosity.VERBOSE,
        )

    def outcome(self, outcome: WriteOutcome) -> None:
        """Log one write outcome and count it."""
        self.summary.add(outcome)
        status = outcome.status.value

        self._write_event({
            "event": "artifact",
            **outcome.to_dict(),
        })

        style = STATUS_STYLES.get(status, "white")
        marker = STATUS_MARKERS.get(status, " ")
        suffix = f" [dim]({outcome.message})[/dim]" if outcome.message else ""
        self._console_print(
            f"      [{style}]{marker}[/{style}] {outcome.relative_path}{suffix}",
            Verbosity.DEFAULT if outcome.is_error else Verbosity.VERBOSE,
        )

    def merge_event(self, target: str, changed: bool, detail: str = "") -> None:
        self._write_event({
            "event": "merge",
            "target": target,
            "changed": changed,
            "detail": detail,
        })
        state = "updated" if changed else "unchanged"
        self._console_print(f"        [dim]merge {target}: {state} {detail}[/dim]", Verbosity.DEBUG)

    def key_issued(self, namespace: str | None, key: str) -> None:
        self._write_event({"event": "key_issued", "namespace": namespace, "key": key})
        self._console_print(f"        [dim]key {namespace or '-'} -> {key}[/dim]", Verbosity.DEBUG)

    def run_recorded(self, run_id: str | None) -> None:
        self._write_event({"event": "run_recorded", "run_id": run_id})
        if run_id:
            self._console_print(f"  [dim]History run:[/dim] {run_id}", Verbosity.VERBOSE)

    def pass_finish(self) -> OutcomeSummary:
        """Log the completion of a pass and return its summary."""
        self._write_event({"event": "pass_finish", **self.summary.to_dict()})
        return self.summary

    def close(self) -> None:
        """Close the log file if open."""
        if self._log_file is not None:
            self._log_file.close()
            self._log_file = None
