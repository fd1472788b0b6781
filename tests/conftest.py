"""Pytest fixtures for Charmscript tests."""

import pytest

from charmscript.app import CharmApplication
from charmscript.foundation.config import CharmConfig, config_from_dict, reset_config
from charmscript.runtime import Actor, ExecutionContext, Scope


class FakeClock:
    """Monotonic clock driven by the test."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch):
    """Keep CHARMSCRIPT_* variables from the developer's shell out of tests."""
    import os

    for key in list(os.environ):
        if key.startswith("CHARMSCRIPT_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config() -> CharmConfig:
    """Built-in defaults, no files or environment."""
    return config_from_dict({})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def app(config: CharmConfig, clock: FakeClock) -> CharmApplication:
    """Application with every core charm registered."""
    return CharmApplication(config, clock=clock)


@pytest.fixture
def ctx(app: CharmApplication) -> ExecutionContext:
    """Fresh top-level context."""
    return app.context()


@pytest.fixture
def actor() -> Actor:
    return Actor(id="u1", name="ada")


@pytest.fixture
def guild() -> Scope:
    return Scope(id="general", guild_id="g1")


@pytest.fixture
def dm() -> Scope:
    return Scope(id="dm-u1")
