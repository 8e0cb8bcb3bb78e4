"""Configuration settings for gensync.

Storage layout under ``storage_dir``:
- state.json: sequencer keys and seeder registry
- history/<run_id>/: one manifest.json plus *.bak backups per recorded run
- logs/: JSONL event logs of generation passes
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gensync.build.writer import CasePolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GENSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Root of the working tree generated files are written into
    output_dir: Path = Field(default=Path("."))

    # "preserve" a differently-cased existing directory, or "rename" it to the requested casing
    case_policy: CasePolicy = CasePolicy.PRESERVE

    # Storage directory (default: .gensync in current directory)
    storage_dir: Path = Field(default=Path(".gensync"))

    # Run history
    history_enabled: bool = True
    history_dir: Path | None = None

    @property
    def history_path(self) -> Path:
        """Directory holding one sub-directory per recorded run."""
        if self.history_dir is not None:
            return self.history_dir
        return self.storage_dir / "history"

    @property
    def state_path(self) -> Path:
        """Path to the sequencer/seeder state document."""
        return self.storage_dir / "state.json"

    @property
    def log_dir(self) -> Path:
        """Directory for JSONL generation logs."""
        return self.storage_dir / "logs"

    def ensure_storage_dir(self) -> None:
        """Create storage directory if it doesn't exist."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings cache (useful for testing)."""
    global _settings
    _settings = None

