from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure the project root is on sys.path so `import opptrack.*` works in tests.
PROJECT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_DIR))


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += float(seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def jwt_secret(monkeypatch):
    from opptrack.settings import settings

    monkeypatch.setattr(settings, "jwt_secret", "unit-test-secret")
    return "unit-test-secret"
