"""Tests for the artifact writer: write/overwrite/skip/preview and case reconciliation."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from gensync.build.writer import SKIP_MESSAGE, ArtifactWriter, CasePolicy, normalize_relative_path
from gensync.core.models import GeneratedArtifact, WriteStatus, content_hash


@pytest.fixture
def writer(app_dir):
    return ArtifactWriter(app_dir)


class TestWrite:
    def test_new_file_is_written(self, writer, app_dir):
        outcome = writer.write(GeneratedArtifact("app/Models/Invoice.php", "<?php // v1\n"))

        assert outcome.status is WriteStatus.WRITTEN
        assert (app_dir / "app" / "Models" / "Invoice.php").read_text() == "<?php // v1\n"
        assert outcome.byte_size == len(b"<?php // v1\n")
        assert outcome.content_hash == content_hash(b"<?php // v1\n")
        assert outcome.previous_content is None
        assert outcome.absolute_path == str(app_dir / "app" / "Models" / "Invoice.php")

    def test_leading_slashes_and_backslashes_normalized(self, writer, app_dir):
        outcome = writer.write(GeneratedArtifact("/routes\\api.php", "x"))

        assert outcome.relative_path == "routes/api.php"
        assert (app_dir / "routes" / "api.php").exists()

    def test_normalize_relative_path(self):
        assert normalize_relative_path("\\a\\b.php") == "a/b.php"
        assert normalize_relative_path("//a/b.php") == "a/b.php"

    def test_parent_traversal_is_an_error(self, writer, tmp_path):
        outcome = writer.write(GeneratedArtifact("../escape.php", "x"))

        assert outcome.status is WriteStatus.ERROR
        assert not (tmp_path / "escape.php").exists()

    def test_write_all_keeps_order_and_continues_after_error(self, writer, app_dir):
        (app_dir / "blocked").write_text("a file, not a directory")

        outcomes = writer.write_all([
            GeneratedArtifact("one.php", "1"),
            GeneratedArtifact("blocked/two.php", "2"),
            GeneratedArtifact("three.php", "3"),
        ])

        assert [o.status for o in outcomes] == [WriteStatus.WRITTEN, WriteStatus.ERROR, WriteStatus.WRITTEN]
        assert outcomes[1].message
        assert (app_dir / "three.php").exists()


class TestSkipSafety:
    def test_existing_file_is_skipped_without_force(self, writer, app_dir):
        target = app_dir / "Invoice.php"
        target.write_text("hand edited")
        before = target.stat().st_mtime_ns

        outcome = writer.write(GeneratedArtifact("Invoice.php", "generated"))

        assert outcome.status is WriteStatus.SKIPPED
        assert outcome.message == SKIP_MESSAGE
        assert target.read_text() == "hand edited"
        assert target.stat().st_mtime_ns == before
        assert outcome.previous_content is None

    def test_skip_reads_no_bytes(self, writer, app_dir, monkeypatch):
        (app_dir / "Invoice.php").write_text("hand edited")

        def fail(*args, **kwargs):
            raise AssertionError("existing file must not be read")

        monkeypatch.setattr(Path, "read_bytes", fail)
        outcome = writer.write(GeneratedArtifact("Invoice.php", "generated"))
        assert outcome.status is WriteStatus.SKIPPED


class TestOverwrite:
    def test_force_overwrites_and_captures_previous(self, writer, app_dir):
        target = app_dir / "Invoice.php"
        target.write_text("v1")

        outcome = writer.write(GeneratedArtifact("Invoice.php", "v2"), force=True)

        assert outcome.status is WriteStatus.OVERWRITTEN
        assert target.read_text() == "v2"
        assert outcome.previous_content == b"v1"
        assert outcome.previous_content_hash == content_hash(b"v1")
        assert outcome.previous_byte_size == 2

    def test_artifact_force_flag_overwrites(self, writer, app_dir):
        (app_dir / "DatabaseSeeder.php").write_text("old")

        outcome = writer.write(GeneratedArtifact("DatabaseSeeder.php", "new", force_overwrite=True))

        assert outcome.status is WriteStatus.OVERWRITTEN
        assert (app_dir / "DatabaseSeeder.php").read_text() == "new"

    def test_write_failure_keeps_previous_content(self, writer, app_dir, monkeypatch):
        (app_dir / "Invoice.php").write_text("v1")

        def refuse(self, data):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(Path, "write_bytes", refuse)
        outcome = writer.write(GeneratedArtifact("Invoice.php", "v2"), force=True)

        assert outcome.status is WriteStatus.ERROR
        assert "Permission denied" in outcome.message
        assert outcome.previous_content == b"v1"
        assert outcome.previous_content_hash == content_hash(b"v1")


class TestDryRun:
    def test_preview_touches_nothing(self, writer, app_dir):
        outcome = writer.write(GeneratedArtifact("app/Models/Invoice.php", "content"), dry_run=True)

        assert outcome.status is WriteStatus.PREVIEW
        assert outcome.preview == b"content"
        assert outcome.byte_size == 7
        assert outcome.content_hash == content_hash(b"content")
        assert os.listdir(app_dir) == []

    def test_preview_of_existing_file_does_not_modify_it(self, writer, app_dir):
        (app_dir / "Invoice.php").write_text("v1")

        outcome = writer.write(GeneratedArtifact("Invoice.php", "v2"), dry_run=True, force=True)

        assert outcome.status is WriteStatus.PREVIEW
        assert (app_dir / "Invoice.php").read_text() == "v1"

    def test_preview_without_base_directory(self, tmp_path):
        writer = ArtifactWriter(tmp_path / "missing")

        outcome = writer.write(GeneratedArtifact("a.php", "x"), dry_run=True)

        assert outcome.status is WriteStatus.PREVIEW
        assert not (tmp_path / "missing").exists()


class TestCaseReconciliation:
    def test_first_casing_wins_by_default(self, writer, app_dir):
        writer.write(GeneratedArtifact("Foo/bar.txt", "one"))

        outcome = writer.write(GeneratedArtifact("foo/bar.txt", "two"), force=True)

        assert outcome.status is WriteStatus.OVERWRITTEN
        assert os.listdir(app_dir) == ["Foo"]
        assert (app_dir / "Foo" / "bar.txt").read_text() == "two"

    def test_preserve_policy_keeps_existing_casing(self, writer, app_dir):
        (app_dir / "app" / "models").mkdir(parents=True)

        outcome = writer.write(GeneratedArtifact("App/Models/Invoice.php", "invoice"))

        assert outcome.status is WriteStatus.WRITTEN
        assert os.listdir(app_dir) == ["app"]
        assert (app_dir / "app" / "models" / "Invoice.php").read_text() == "invoice"

    def test_rename_policy_renames_differently_cased_directory(self, app_dir):
        legacy = app_dir / "app" / "models"
        legacy.mkdir(parents=True)
        (legacy / "Customer.php").write_text("customer")

        writer = ArtifactWriter(app_dir, case_policy=CasePolicy.RENAME)
        outcome = writer.write(GeneratedArtifact("App/Models/Invoice.php", "invoice"))

        assert outcome.status is WriteStatus.WRITTEN
        assert os.listdir(app_dir) == ["App"]
        assert os.listdir(app_dir / "App") == ["Models"]
        assert sorted(os.listdir(app_dir / "App" / "Models")) == ["Customer.php", "Invoice.php"]

    def test_exact_casing_left_alone(self, writer, app_dir):
        (app_dir / "App").mkdir()

        writer.write(GeneratedArtifact("App/Invoice.php", "x"))

        assert os.listdir(app_dir) == ["App"]

    def test_two_step_rename_when_direct_rename_fails(self, app_dir, monkeypatch):
        (app_dir / "app").mkdir()
        (app_dir / "app" / "kept.php").write_text("kept")
        real_rename = os.rename
        calls = []

        def flaky(src, dst):
            calls.append((os.path.basename(src), os.path.basename(dst)))
            if len(calls) == 1:
                raise OSError(1, "Operation not permitted")
            real_rename(src, dst)

        monkeypatch.setattr(os, "rename", flaky)
        writer = ArtifactWriter(app_dir, case_policy=CasePolicy.RENAME)
        outcome = writer.write(GeneratedArtifact("App/Invoice.php", "x"))

        assert outcome.status is WriteStatus.WRITTEN
        assert len(calls) == 3
        assert calls[1][1].startswith(".app.gensync-")
        assert calls[2] == (calls[1][1], "App")
        assert os.listdir(app_dir) == ["App"]
        assert sorted(os.listdir(app_dir / "App")) == ["Invoice.php", "kept.php"]

    def test_failed_rename_is_an_error_outcome(self, app_dir, monkeypatch):
        (app_dir / "app").mkdir()

        def refuse(src, dst):
            raise OSError(1, "Operation not permitted")

        monkeypatch.setattr(os, "rename", refuse)
        writer = ArtifactWriter(app_dir, case_policy=CasePolicy.RENAME)
        outcome = writer.write(GeneratedArtifact("App/Invoice.php", "x"))

        assert outcome.status is WriteStatus.ERROR
        assert "Could not rename directory" in outcome.message
        assert os.listdir(app_dir) == ["app"]
