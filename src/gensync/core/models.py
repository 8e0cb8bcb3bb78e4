"""Core data models for gensync."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


def content_hash(data: bytes) -> str:
    """Return the ``sha256:<hex>`` digest used for outcomes and manifests."""
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


class WriteStatus(str, Enum):
    """Result of materializing one artifact."""

    WRITTEN = "written"
    OVERWRITTEN = "overwritten"
    SKIPPED = "skipped"
    PREVIEW = "preview"
    ERROR = "error"


# Statuses that changed the working tree and therefore belong in a run.
TRACKED_STATUSES = frozenset({WriteStatus.WRITTEN, WriteStatus.OVERWRITTEN})


@dataclass(frozen=True)
class GeneratedArtifact:
    """One generated file, as produced by the rendering layer."""

    relative_path: str
    content: bytes
    force_overwrite: bool = False

    def __post_init__(self):
        if isinstance(self.content, str):
            object.__setattr__(self, "content", self.content.encode())


@dataclass(frozen=True)
class WriteOutcome:
    """Outcome of attempting to write one GeneratedArtifact.

    ``previous_*`` fields are only populated when the target existed and its
    content was read before being replaced.
    """

    relative_path: str
    absolute_path: str
    status: WriteStatus
    byte_size: int
    content_hash: str
    message: str | None = None
    previous_content_hash: str | None = None
    previous_byte_size: int | None = None
    previous_content: bytes | None = None
    preview: bytes | None = None

    @property
    def is_error(self) -> bool:
        return self.status is WriteStatus.ERROR

    @property
    def is_tracked(self) -> bool:
        return self.status in TRACKED_STATUSES

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "path": self.relative_path,
            "full_path": self.absolute_path,
            "status": self.status.value,
            "bytes": self.byte_size,
            "checksum": self.content_hash,
        }
        if self.message is not None:
            data["message"] = self.message
        if self.previous_content_hash is not None:
            data["previous_checksum"] = self.previous_content_hash
        if self.previous_byte_size is not None:
            data["previous_bytes"] = self.previous_byte_size
        return data


@dataclass(frozen=True)
class SourceIdentity:
    """Which entity description a generation run came from."""

    entity: str
    source_path: str
    module: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"module": self.module, "entity": self.entity, "path": self.source_path}

    @classmethod
    def from_dict(cls, data: dict) -> SourceIdentity:
        return cls(
            entity=str(data.get("entity") or ""),
            source_path=str(data.get("path") or ""),
            module=data.get("module"),
        )


@dataclass(frozen=True)
class ManifestEntry:
    """One tracked outcome as persisted in a run manifest."""

    status: WriteStatus
    relative_path: str
    absolute_path: str
    byte_size: int | None = None
    content_hash: str | None = None
    previous_content_hash: str | None = None
    previous_byte_size: int | None = None
    backup: str | None = None
    layer: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "status": self.status.value,
            "layer": self.layer,
            "path": self.relative_path,
            "full_path": self.absolute_path,
        }
        if self.byte_size is not None:
            data["bytes"] = self.byte_size
        if self.content_hash is not None:
            data["checksum"] = self.content_hash
        if self.previous_content_hash is not None:
            data["previous_checksum"] = self.previous_content_hash
        if self.previous_byte_size is not None:
            data["previous_bytes"] = self.previous_byte_size
        if self.backup is not None:
            data["backup"] = self.backup
        return data

    @classmethod
    def from_dict(cls, data: dict) -> ManifestEntry:
        try:
            status = WriteStatus(data.get("status", ""))
        except ValueError:
            status = WriteStatus.ERROR
        return cls(
            status=status,
            relative_path=str(data.get("path") or ""),
            absolute_path=str(data.get("full_path") or ""),
            byte_size=data.get("bytes"),
            content_hash=data.get("checksum"),
            previous_content_hash=data.get("previous_checksum"),
            previous_byte_size=data.get("previous_bytes"),
            backup=data.get("backup"),
            layer=data.get("layer"),
        )


@dataclass
class GenerationRun:
    """A persisted record of one generation invocation."""

    run_id: str
    created_at: datetime | None
    source: SourceIdentity
    entries: list[ManifestEntry] = field(default_factory=list)
    execution_id: str | None = None
    options: dict = field(default_factory=dict)
    filters: dict = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    sequence: float = 0.0
    path: str | None = None  # run directory, when filesystem-backed

    def to_manifest(self) -> dict[str, Any]:
        return {
            "id": self.run_id,
            "timestamp": self.created_at.isoformat() if self.created_at else None,
            "sequence": self.sequence,
            "execution_id": self.execution_id,
            "blueprint": self.source.to_dict(),
            "options": self.options,
            "filters": self.filters,
            "warnings": self.warnings,
            "entries": [entry.to_dict() for entry in self.entries],
        }

    @classmethod
    def from_manifest(cls, data: dict, run_id: str, path: str | None = None) -> GenerationRun:
        try:
            sequence = float(data.get("sequence") or 0.0)
        except (TypeError, ValueError):
            sequence = 0.0
        created_at = None
        raw_timestamp = data.get("timestamp")
        if isinstance(raw_timestamp, str):
            try:
                created_at = datetime.fromisoformat(raw_timestamp)
            except ValueError:
                pass
        entries = data.get("entries")
        if not isinstance(entries, list):
            entries = []
        return cls(
            run_id=str(data.get("id") or run_id),
            created_at=created_at,
            source=SourceIdentity.from_dict(data.get("blueprint") or {}),
            entries=[ManifestEntry.from_dict(e) for e in entries if isinstance(e, dict)],
            execution_id=data.get("execution_id"),
            options=data.get("options") or {},
            filters=data.get("filters") or {},
            warnings=list(data.get("warnings") or []),
            sequence=sequence,
            path=path,
        )


@dataclass(frozen=True)
class DependencyEntity:
    """A named node with named dependencies, used for dependency ordering."""

    name: str
    dependencies: tuple[str, ...] = ()
    payload: dict = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self):
        if not isinstance(self.dependencies, tuple):
            object.__setattr__(self, "dependencies", tuple(self.dependencies))
