"""Persistent generator state: sequencer keys and the seeder registry."""

from __future__ import annotations

import copy
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from gensync.core.errors import SequencerError, atomic_write

logger = logging.getLogger(__name__)

SECTIONS = ("migrations", "seeders", "meta")


def empty_state() -> dict[str, dict]:
    return {section: {} for section in SECTIONS}


def normalize_state(data: object) -> dict[str, dict]:
    """Coerce a loaded document into the three-section shape."""
    state = empty_state()
    if not isinstance(data, dict):
        return state
    for section in SECTIONS:
        value = data.get(section)
        if isinstance(value, dict):
            state[section] = value
    return state


class StateStore(ABC):
    """Load/save access to the state document.

    Components read the whole document, modify their section and save it
    back immediately after every change.
    """

    @abstractmethod
    def load(self) -> dict[str, dict]:
        ...

    @abstractmethod
    def save(self, state: dict[str, dict]) -> None:
        ...


class JsonStateStore(StateStore):
    """State document backed by a JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, dict]:
        if not self.path.is_file():
            return empty_state()
        try:
            return normalize_state(json.loads(self.path.read_text()))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, e)
            return empty_state()

    @classmethod
    def from_settings(cls, settings=None) -> JsonStateStore:
        from gensync.config import get_settings

        return cls((settings or get_settings()).state_path)

    def save(self, state: dict[str, dict]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            atomic_write(self.path, json.dumps(normalize_state(state), indent=2))
        except OSError as e:
            raise SequencerError(f"Could not save state to {self.path}: {e}") from e


class MemoryStateStore(StateStore):
    """In-memory state, for tests and dry runs."""

    def __init__(self, initial: dict | None = None):
        self._state = normalize_state(copy.deepcopy(initial))
        self.saves = 0

    def load(self) -> dict[str, dict]:
        return copy.deepcopy(self._state)

    def save(self, state: dict[str, dict]) -> None:
        self._state = normalize_state(copy.deepcopy(state))
        self.saves += 1
