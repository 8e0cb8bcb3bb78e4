"""Shared test fixtures for gensync."""

from __future__ import annotations

from datetime import datetime

import pytest

from gensync.build.state import MemoryStateStore
from gensync.config import reset_settings
from gensync.core.models import SourceIdentity


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Keep GENSYNC_* env vars and .env files from leaking into tests."""
    import os

    for key in list(os.environ):
        if key.startswith("GENSYNC_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def app_dir(tmp_path):
    """Working tree generated files are written into."""
    d = tmp_path / "app"
    d.mkdir()
    return d


@pytest.fixture
def history_dir(tmp_path):
    return tmp_path / "history"


@pytest.fixture
def state_store():
    return MemoryStateStore()


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 6, 1, 12, 0, 0))


@pytest.fixture
def invoice_source():
    return SourceIdentity(entity="Invoice", source_path="blueprints/billing/invoice.yaml", module="Billing")
