"""Unit tests for gensync structured logging."""

from __future__ import annotations

import json

from gensync.core.logging import GenerationLogger, OutcomeSummary, Verbosity
from gensync.core.models import WriteOutcome, WriteStatus


def make_outcome(status: WriteStatus, path: str = "a.php", message: str | None = None) -> WriteOutcome:
    return WriteOutcome(path, f"/app/{path}", status, 3, "sha256:abc", message=message)


class TestOutcomeSummary:
    def test_counts(self):
        summary = OutcomeSummary.from_outcomes([
            make_outcome(WriteStatus.WRITTEN),
            make_outcome(WriteStatus.OVERWRITTEN),
            make_outcome(WriteStatus.SKIPPED),
            make_outcome(WriteStatus.SKIPPED),
        ])
        assert summary.count("skipped") == 2
        assert summary.changed == 2
        assert summary.failed is False

    def test_only_errors_fail(self):
        summary = OutcomeSummary.from_outcomes([
            make_outcome(WriteStatus.PREVIEW),
            make_outcome(WriteStatus.ERROR, "b.php", "Permission denied"),
        ])
        assert summary.failed is True
        assert summary.errors == ["b.php: Permission denied"]

    def test_to_dict(self):
        d = OutcomeSummary.from_outcomes([make_outcome(WriteStatus.WRITTEN)]).to_dict()
        assert d == {
            "written": 1,
            "overwritten": 0,
            "skipped": 0,
            "preview": 0,
            "error": 0,
            "failed": False,
            "errors": [],
        }


class TestGenerationLogger:
    def test_no_log_dir_writes_nothing(self, tmp_path):
        log = GenerationLogger()
        log.pass_start("x.yaml", 1, False)
        log.outcome(make_outcome(WriteStatus.WRITTEN))
        assert log.log_path is None
        assert log.pass_finish().count("written") == 1

    def test_jsonl_events(self, tmp_path):
        log = GenerationLogger(log_dir=tmp_path / "logs")
        log.pass_start("x.yaml", 2, True)
        log.outcome(make_outcome(WriteStatus.PREVIEW))
        log.merge_event("routes/api.php", changed=False)
        log.key_issued("_:invoices", "2024_06_01_120000")
        log.pass_finish()
        log.close()

        lines = log.log_path.read_text().splitlines()
        events = [json.loads(line) for line in lines]
        assert [e["event"] for e in events] == ["pass_start", "artifact", "merge", "key_issued", "pass_finish"]
        assert all("timestamp" in e for e in events)
        assert events[0]["dry_run"] is True
        assert events[1]["status"] == "preview"
        assert events[1]["checksum"] == "sha256:abc"
        assert events[-1]["preview"] == 1

    def test_close_is_idempotent(self, tmp_path):
        log = GenerationLogger(log_dir=tmp_path)
        log.close()
        log.close()

    def test_errors_printed_at_default_verbosity(self, capsys):
        log = GenerationLogger(verbosity=Verbosity.DEFAULT)
        log.outcome(make_outcome(WriteStatus.WRITTEN, "quiet.php"))
        log.outcome(make_outcome(WriteStatus.ERROR, "loud.php", "boom"))

        out = capsys.readouterr().out
        assert "loud.php" in out
        assert "quiet.php" not in out

    def test_verbose_prints_every_outcome(self, capsys):
        log = GenerationLogger(verbosity=Verbosity.VERBOSE)
        log.outcome(make_outcome(WriteStatus.SKIPPED, "kept.php"))
        assert "kept.php" in capsys.readouterr().out
