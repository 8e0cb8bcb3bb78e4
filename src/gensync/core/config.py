"""Per-pass option resolution: explicit values > env > defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUTHY = {"1", "true", "yes", "on"}


def interpret_bool(value: object) -> bool:
    """Interpret loosely typed flags the way entity descriptions spell them."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


@dataclass
class GenerationOptions:
    """Options for one generation pass.

    Config precedence: explicit dict values > env vars > defaults.

    Environment variables:
    - GENSYNC_DRY_RUN: preview every artifact without touching disk
    - GENSYNC_FORCE: overwrite existing files
    """

    dry_run: bool = False
    force: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> GenerationOptions:
        """Create GenerationOptions from a dict, applying env var overrides."""
        config = cls()

        env_dry_run = os.environ.get("GENSYNC_DRY_RUN")
        if env_dry_run:
            config.dry_run = interpret_bool(env_dry_run)
        env_force = os.environ.get("GENSYNC_FORCE")
        if env_force:
            config.force = interpret_bool(env_force)

        if "dry_run" in data:
            config.dry_run = interpret_bool(data["dry_run"])
        if "force" in data:
            config.force = interpret_bool(data["force"])

        return config

    def to_dict(self) -> dict[str, bool]:
        return {"dry_run": self.dry_run, "force": self.force}
