"""Run history storage: one manifest plus backups per recorded run."""

from __future__ import annotations

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

from gensync.core.errors import HistoryError, atomic_write
from gensync.core.models import GenerationRun

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


class RunStore(ABC):
    """Persistence for recorded runs.

    ``save`` must persist every backup before the manifest, so a manifest
    never points at a backup that does not exist.
    """

    @abstractmethod
    def save(self, run: GenerationRun, backups: dict[str, bytes]) -> None:
        ...

    @abstractmethod
    def load(self, run_id: str) -> GenerationRun | None:
        """Load one run, or None if it does not exist or is unreadable."""
        ...

    @abstractmethod
    def run_ids(self) -> list[str]:
        ...

    @abstractmethod
    def read_backup(self, run: GenerationRun, name: str) -> bytes:
        """Return backup bytes. Raises HistoryError when unavailable."""
        ...

    def modified_at(self, run_id: str) -> float | None:
        """Storage modification time of a run, when the store knows it."""
        return None


class FilesystemRunStore(RunStore):
    """Runs stored as ``<root>/<run_id>/manifest.json`` plus ``*.bak`` files."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def run_path(self, run_id: str) -> Path:
        return self.root / run_id

    def save(self, run: GenerationRun, backups: dict[str, bytes]) -> None:
        run_path = self.run_path(run.run_id)
        try:
            run_path.mkdir(parents=True, exist_ok=True)
            for name, data in backups.items():
                (run_path / name).write_bytes(data)
            atomic_write(
                run_path / MANIFEST_NAME,
                json.dumps(run.to_manifest(), indent=2, ensure_ascii=False),
            )
        except OSError as e:
            raise HistoryError(f"Could not record run {run.run_id} in {run_path}: {e}") from e
        run.path = str(run_path)

    def load(self, run_id: str) -> GenerationRun | None:
        run_id = run_id.strip()
        if not run_id or "/" in run_id or "\\" in run_id or run_id in (".", ".."):
            return None

        manifest_path = self.run_path(run_id) / MANIFEST_NAME
        if not manifest_path.is_file():
            return None

        try:
            data = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Skipping unreadable manifest %s: %s", manifest_path, e)
            return None

        if not isinstance(data, dict):
            return None
        return GenerationRun.from_manifest(data, run_id, path=str(manifest_path.parent))

    def run_ids(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(name for name in os.listdir(self.root) if (self.root / name).is_dir())

    def read_backup(self, run: GenerationRun, name: str) -> bytes:
        run_path = Path(run.path) if run.path else self.run_path(run.run_id)
        backup_path = run_path / name
        if not backup_path.is_file():
            raise HistoryError(f"Backup file missing: {backup_path}")
        try:
            return backup_path.read_bytes()
        except OSError as e:
            raise HistoryError(f"Unable to read backup file {backup_path}: {e.strerror or e}") from e

    def modified_at(self, run_id: str) -> float | None:
        try:
            return self.run_path(run_id).stat().st_mtime
        except OSError:
            return None


class MemoryRunStore(RunStore):
    """In-memory run history, for tests."""

    def __init__(self):
        self.manifests: dict[str, dict] = {}
        self.backups: dict[str, dict[str, bytes]] = {}

    def save(self, run: GenerationRun, backups: dict[str, bytes]) -> None:
        self.backups[run.run_id] = dict(backups)
        self.manifests[run.run_id] = copy.deepcopy(run.to_manifest())

    def load(self, run_id: str) -> GenerationRun | None:
        data = self.manifests.get(run_id)
        if data is None:
            return None
        return GenerationRun.from_manifest(copy.deepcopy(data), run_id)

    def run_ids(self) -> list[str]:
        return sorted(self.manifests)

    def read_backup(self, run: GenerationRun, name: str) -> bytes:
        try:
            return self.backups[run.run_id][name]
        except KeyError:
            raise HistoryError(f"Backup file missing: {run.run_id}/{name}") from None
