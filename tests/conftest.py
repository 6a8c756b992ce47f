import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def _isolate_singletons(monkeypatch):
    """Fresh process-wide controller/preview store per test, offline generation, no broker."""
    from src.pagegen.infrastructure import events, preview_store
    from src.pagegen.services import assistant_controller

    monkeypatch.setenv("PAGEGEN_TRANSPORT", "offline")
    monkeypatch.setenv("PAGEGEN_STREAM_THROTTLE_MS", "0")
    monkeypatch.delenv("PAGEGEN_ASSETS_PATH", raising=False)
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setattr(assistant_controller, "_controller", None)
    monkeypatch.setattr(preview_store, "_store", None)
    monkeypatch.setattr(events, "_publisher", None)
