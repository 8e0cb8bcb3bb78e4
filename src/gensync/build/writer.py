"""Artifact writer: decide write/overwrite/skip/preview for generated files."""

from __future__ import annotations

import logging
import os
import uuid
from enum import Enum
from pathlib import Path
from typing import Iterable

from gensync.core.errors import CaseReconcileError
from gensync.core.models import GeneratedArtifact, WriteOutcome, WriteStatus, content_hash

logger = logging.getLogger(__name__)

SKIP_MESSAGE = "File already exists. Use --force to overwrite."


class CasePolicy(str, Enum):
    """What to do when a directory exists under a different casing.

    PRESERVE (the default) keeps the existing directory and writes into it,
    so the first casing created wins. RENAME renames the existing directory
    to the casing the artifact asks for.
    Either way only one directory exists afterwards.
    """

    RENAME = "rename"
    PRESERVE = "preserve"


def normalize_relative_path(path: str) -> str:
    """Strip leading separators and use forward slashes."""
    return path.replace("\\", "/").lstrip("/")


class ArtifactWriter:
    """Materializes generated artifacts under a base directory.

    Recoverable filesystem failures never raise; they come back as
    ``error`` outcomes so a batch can continue past one bad artifact.
    """

    def __init__(self, base_path: str | Path, case_policy: CasePolicy = CasePolicy.PRESERVE):
        self.base_path = Path(base_path)
        self.case_policy = CasePolicy(case_policy)

    def write_all(
        self,
        artifacts: Iterable[GeneratedArtifact],
        dry_run: bool = False,
        force: bool = False,
    ) -> list[WriteOutcome]:
        """Write each artifact in order, returning one outcome per artifact."""
        return [self.write(artifact, dry_run=dry_run, force=force) for artifact in artifacts]

    def write(
        self,
        artifact: GeneratedArtifact,
        dry_run: bool = False,
        force: bool = False,
    ) -> WriteOutcome:
        """Write one artifact and report what happened."""
        relative = normalize_relative_path(artifact.relative_path)
        content = artifact.content
        size = len(content)
        digest = content_hash(content)
        target = self.base_path / relative

        def outcome(status: WriteStatus, **extra) -> WriteOutcome:
            return WriteOutcome(
                relative_path=relative,
                absolute_path=str(extra.pop("absolute", target)),
                status=status,
                byte_size=size,
                content_hash=digest,
                **extra,
            )

        if dry_run:
            return outcome(WriteStatus.PREVIEW, preview=content)

        segments = [s for s in relative.split("/") if s not in ("", ".")]
        if not segments or ".." in segments:
            return outcome(WriteStatus.ERROR, message=f'Invalid artifact path "{artifact.relative_path}".')

        try:
            directory = self.ensure_directory(segments[:-1])
        except CaseReconcileError as e:
            logger.warning("%s", e)
            return outcome(WriteStatus.ERROR, message=str(e))
        except OSError as e:
            return outcome(
                WriteStatus.ERROR,
                message=f'Could not create directory "{target.parent}": {e.strerror or e}',
            )

        target = directory / segments[-1]
        exists = target.is_file()

        if exists and not (force or artifact.force_overwrite):
            return outcome(WriteStatus.SKIPPED, absolute=target, message=SKIP_MESSAGE)

        previous: bytes | None = None
        if exists:
            try:
                previous = target.read_bytes()
            except OSError as e:
                return outcome(
                    WriteStatus.ERROR,
                    absolute=target,
                    message=f"Could not read existing file: {e.strerror or e}",
                )

        previous_fields = {}
        if previous is not None:
            previous_fields = {
                "previous_content": previous,
                "previous_content_hash": content_hash(previous),
                "previous_byte_size": len(previous),
            }

        try:
            target.write_bytes(content)
        except OSError as e:
            return outcome(
                WriteStatus.ERROR,
                absolute=target,
                message=f"Could not write file: {e.strerror or e}",
                **previous_fields,
            )

        status = WriteStatus.OVERWRITTEN if exists else WriteStatus.WRITTEN
        logger.debug("%s %s (%d bytes)", status.value, relative, size)
        return outcome(status, absolute=target, **previous_fields)

    def ensure_directory(self, segments: list[str]) -> Path:
        """Create the directory chain below base_path, reconciling casing.

        Each segment is compared case-insensitively against existing siblings
        so a case-insensitive filesystem and a case-sensitive one end up with
        the same single directory.
        """
        current = self.base_path
        current.mkdir(parents=True, exist_ok=True)

        for segment in segments:
            current = self._resolve_segment(current, segment)

        return current

    def _resolve_segment(self, parent: Path, segment: str) -> Path:
        expected = parent / segment
        names = os.listdir(parent)

        if segment in names:
            if not expected.is_dir():
                raise NotADirectoryError(f'"{expected}" exists and is not a directory')
            return expected

        lowered = segment.lower()
        existing = next(
            (parent / name for name in sorted(names)
             if name.lower() == lowered and (parent / name).is_dir()),
            None,
        )

        if existing is None:
            expected.mkdir(exist_ok=True)
            return expected

        if self.case_policy is CasePolicy.PRESERVE:
            return existing

        rename_directory_case(existing, expected)
        return expected


def rename_directory_case(existing: Path, expected: Path) -> None:
    """Rename a directory that differs only in casing.

    Falls back to a two-step rename through a temporary sibling, which is
    what case-insensitive filesystems need when the direct rename is a no-op
    or rejected. Raises CaseReconcileError when both attempts fail.
    """
    try:
        os.rename(existing, expected)
        if expected.name in os.listdir(expected.parent):
            logger.info("Renamed directory %s -> %s", existing, expected.name)
            return
    except OSError as e:
        logger.debug("Direct rename of %s failed: %s", existing, e)

    temporary = existing.parent / f".{existing.name}.gensync-{uuid.uuid4().hex[:8]}"
    try:
        os.rename(existing, temporary)
    except OSError as e:
        raise CaseReconcileError(existing, expected, e.strerror or str(e)) from e

    try:
        os.rename(temporary, expected)
    except OSError as e:
        # Put the original back so the tree is not left with a temp name.
        try:
            os.rename(temporary, existing)
        except OSError:
            logger.error("Directory left at temporary name %s", temporary)
        raise CaseReconcileError(existing, expected, e.strerror or str(e)) from e

    logger.info("Renamed directory %s -> %s via %s", existing, expected.name, temporary.name)
