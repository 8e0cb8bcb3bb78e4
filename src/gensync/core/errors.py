"""gensync error types and utilities."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write(path: Path, content: str | bytes) -> None:
    """Write content to a file atomically using temp file + rename.

    Writes to a temporary file in the same directory, fsyncs it,
    then atomically replaces the target path.
    """
    data = content.encode() if isinstance(content, str) else content
    fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        os.write(fd, data)
        os.fsync(fd)
        os.close(fd)
        os.replace(tmp, str(path))
    except BaseException:
        try:
            os.close(fd)
        except OSError:
            pass
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


class GensyncError(Exception):
    """Base exception for gensync."""

    pass


class WriterError(GensyncError):
    """Error materializing a generated artifact."""

    pass


class CaseReconcileError(WriterError):
    """A differently-cased directory could not be renamed to the expected casing."""

    def __init__(self, existing: Path, expected: Path, reason: str):
        self.existing = existing
        self.expected = expected
        self.reason = reason
        super().__init__(
            f'Could not rename directory "{existing}" to "{expected.name}": {reason}'
        )


class SequencerError(GensyncError):
    """Error in ordering-key issuance or state persistence."""

    pass


class MergeError(GensyncError):
    """Error merging a generated fragment into a hand-maintained file."""

    pass


class HistoryError(GensyncError):
    """Error in run history storage or retrieval."""

    pass
