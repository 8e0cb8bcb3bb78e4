"""Timestamp sequencer: monotonic, collision-free filename ordering keys.

Keys sort lexically in issue order, within one process and across separate
invocations that share the same state store. Two encodings are recognized:

- canonical: ``2024_03_15_142501`` (what new keys use)
- legacy: ``20240315142501`` (14 digits, reconciled to canonical on sight)
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from gensync.build.state import StateStore

logger = logging.getLogger(__name__)

CANONICAL_FORMAT = "%Y_%m_%d_%H%M%S"
LEGACY_FORMAT = "%Y%m%d%H%M%S"
CLOCK_UNIT = timedelta(seconds=1)

_CANONICAL_RE = re.compile(r"^\d{4}_\d{2}_\d{2}_\d{6}$")
_LEGACY_RE = re.compile(r"^\d{14}$")


@dataclass(frozen=True)
class ExistingKey:
    """An artifact already on disk whose filename carries an ordering key."""

    path: Path
    key: str
    style: str  # "canonical" or "legacy"


def is_canonical(key: str) -> bool:
    return bool(_CANONICAL_RE.match(key))


def is_legacy(key: str) -> bool:
    return bool(_LEGACY_RE.match(key))


def to_canonical(key: str) -> str:
    """Convert a legacy key to canonical form; canonical keys pass through."""
    if is_legacy(key):
        return f"{key[0:4]}_{key[4:6]}_{key[6:8]}_{key[8:14]}"
    return key


def increment_key(key: str, clock: Callable[[], datetime] = datetime.now) -> str:
    """Advance a key by one clock unit."""
    try:
        moment = datetime.strptime(to_canonical(key), CANONICAL_FORMAT)
    except ValueError:
        moment = clock()
    return (moment + CLOCK_UNIT).strftime(CANONICAL_FORMAT)


def migration_namespace(table: str, module: str | None = None) -> str:
    """Sequencer namespace for a table, scoped by module."""
    module_key = module.lower() if module else "_"
    return f"{module_key}:{table.lower()}"


def migration_suffix(table: str) -> str:
    return f"create_{table}_table.php"


def _max_key(*keys: str | None) -> str | None:
    present = [to_canonical(k) for k in keys if k]
    return max(present) if present else None


class TimestampSequencer:
    """Issues ordering keys and keeps the last one in a StateStore.

    The store holds ``meta.last_generated`` (the newest key issued in any
    namespace) and ``migrations[<namespace>].prefix`` (the key owned by each
    namespace). Both are saved immediately after every change.
    """

    def __init__(self, store: StateStore, clock: Callable[[], datetime] | None = None):
        self.store = store
        self.clock = clock or datetime.now
        self._last: str | None = None

    @property
    def last_issued(self) -> str | None:
        state = self.store.load()
        return _max_key(self._last, state["meta"].get("last_generated"))

    def stored_key(self, namespace: str) -> str | None:
        """Key previously associated with a namespace, if any."""
        entry = self.store.load()["migrations"].get(namespace)
        if isinstance(entry, dict) and isinstance(entry.get("prefix"), str):
            return entry["prefix"]
        return None

    def next_key(self, namespace: str | None = None, existing_candidate: str | None = None) -> str:
        """Issue a key strictly greater than every key issued before.

        ``existing_candidate`` is a key already associated with the artifact
        (for instance one found on disk); the new key sorts after it too.
        """
        state = self.store.load()
        prior = _max_key(
            self._last,
            state["meta"].get("last_generated"),
            self._namespace_prefix(state, namespace),
            existing_candidate,
        )

        candidate = self.clock().strftime(CANONICAL_FORMAT)
        if prior is not None and candidate <= prior:
            candidate = increment_key(prior, self.clock)

        self._remember(state, namespace, candidate)
        logger.debug("Issued key %s for %s", candidate, namespace or "-")
        return candidate

    def discover(self, directory: str | Path, suffix: str) -> ExistingKey | None:
        """Find the newest artifact named ``<key>_<suffix>`` in directory.

        Canonical matches take precedence over legacy ones.
        """
        directory = Path(directory)
        if not directory.is_dir():
            return None

        pattern = re.compile(
            r"^(?:(?P<canonical>\d{4}_\d{2}_\d{2}_\d{6})|(?P<legacy>\d{14}))_" + re.escape(suffix) + "$"
        )
        canonical: list[ExistingKey] = []
        legacy: list[ExistingKey] = []

        for name in os.listdir(directory):
            match = pattern.match(name)
            if match is None or not (directory / name).is_file():
                continue
            if match.group("canonical"):
                canonical.append(ExistingKey(directory / name, match.group("canonical"), "canonical"))
            else:
                legacy.append(ExistingKey(directory / name, match.group("legacy"), "legacy"))

        for group in (canonical, legacy):
            if group:
                return max(group, key=lambda item: item.key)
        return None

    def resolve(self, namespace: str, directory: str | Path, suffix: str) -> str:
        """Return the ordering key an artifact in ``namespace`` should use.

        A key already stored for the namespace is reused. Otherwise an
        existing file is adopted: legacy-keyed files, and files that no
        longer sort after the last issued key, are renamed to a fresh
        canonical key. With nothing on disk a new key is issued.
        """
        stored = self.stored_key(namespace)
        if stored is not None:
            return stored

        existing = self.discover(directory, suffix)
        if existing is None:
            return self.next_key(namespace)

        last = self.last_issued
        if existing.style == "legacy" or (last is not None and existing.key <= last):
            desired = self.next_key()
            return self.rekey(existing, desired, namespace, suffix)

        self._remember(self.store.load(), namespace, existing.key)
        return existing.key

    def rekey(self, existing: ExistingKey, desired: str, namespace: str, suffix: str) -> str:
        """Rename an existing artifact to carry ``desired`` (or the next free key)."""
        key = desired
        target = existing.path.parent / f"{key}_{suffix}"
        while target.exists():
            key = increment_key(key, self.clock)
            target = existing.path.parent / f"{key}_{suffix}"

        try:
            os.rename(existing.path, target)
        except OSError as e:
            logger.warning("Could not rename %s to %s: %s", existing.path, target.name, e)
            key = desired
        else:
            logger.info("Renamed %s -> %s", existing.path.name, target.name)

        self._remember(self.store.load(), namespace, key)
        return key

    def _namespace_prefix(self, state: dict, namespace: str | None) -> str | None:
        if namespace is None:
            return None
        entry = state["migrations"].get(namespace)
        if isinstance(entry, dict):
            return entry.get("prefix")
        return None

    def _remember(self, state: dict, namespace: str | None, key: str) -> None:
        last = _max_key(self._last, state["meta"].get("last_generated"), key)
        self._last = last
        state["meta"]["last_generated"] = last
        if namespace is not None:
            entry = state["migrations"].get(namespace)
            if not isinstance(entry, dict):
                entry = {}
            entry["prefix"] = key
            state["migrations"][namespace] = entry
        self.store.save(state)
