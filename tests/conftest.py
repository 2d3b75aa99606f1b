"""Pytest configuration and fixtures for bot tests."""

import pytest

from botcore.clock import FakeClock
from botcore.component_ids import ComponentIdGenerator
from botcore.config import BotConfig
from botcore.dispatcher import Dispatcher
from botcore.models import FunctionContext
from botcore.registry import HandlerRegistry
from botcore.storage import ComponentIdStore

REGULAR_TTL = 3600.0
START = 1_700_000_000.0


@pytest.fixture
def clock():
    """Clock starting at a fixed wall-clock instant."""
    return FakeClock(START)


@pytest.fixture
def db_path(tmp_path):
    """Path of a fresh SQLite database."""
    return tmp_path / "bot.db"


@pytest.fixture
def store(db_path, clock):
    """Component ID store backed by a temporary database."""
    return ComponentIdStore(db_path, regular_ttl=REGULAR_TTL, clock=clock)


@pytest.fixture
def generator(store):
    """Generator over the temporary store."""
    return ComponentIdGenerator(store)


@pytest.fixture
def registry():
    return HandlerRegistry()


@pytest.fixture
def dispatcher(generator, registry):
    """Dispatcher with an empty registry."""
    d = Dispatcher(generator, registry, max_workers=2)
    yield d
    d.shutdown(timeout=1)


@pytest.fixture
def config(db_path):
    return BotConfig(regular_ttl=REGULAR_TTL, db_path=db_path, rate_limit_window=5, rate_limit_capacity=2)


@pytest.fixture
def context(generator, config, clock):
    """Services handed to functions."""
    return FunctionContext(generator=generator, config=config, clock=clock)


class RecordingSink:
    """Collects replies sent to the user."""

    def __init__(self):
        self.replies = []

    def __call__(self, reply):
        self.replies.append(reply)

    @property
    def texts(self):
        return [reply.text for reply in self.replies]


@pytest.fixture
def sink():
    return RecordingSink()
