"""
Pytest Configuration and Fixtures for StudyForge Tests
======================================================

Purpose
-------
Centralized fixtures for the StudyForge test suite: a controllable clock,
a seeded random source, an in-memory record store with failure injection,
and ready-made engine instances.

Architecture Notes
------------------
- Unit tests use InMemoryProgressionStore (fast, isolated)
- Integration tests use a temporary SQLite file through aiosqlite
- Every engine gets its own EventBus and ConfigManager; nothing is global
"""

from __future__ import annotations

import os
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, List, Optional

import pytest
import pytest_asyncio

from studyforge.core.config.config import Config
from studyforge.core.config.manager import ConfigManager
from studyforge.core.event.bus import EventBus
from studyforge.core.exceptions import PersistenceError
from studyforge.domain.models.progression import Mission, ProgressionRecord
from studyforge.modules.forge.service import StudyForgeService
from studyforge.modules.forge.store import ProgressionStore

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_configure(config):
    """Configure the test environment."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"
    Config.load()


# ============================================================================
# TEST DOUBLES
# ============================================================================

START = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryProgressionStore(ProgressionStore):
    """
    Record store kept in memory.

    Records are cloned on the way in and out so tests observe exactly what
    a durable store would. Set `fail_saves` / `fail_loads` to simulate a
    broken backend.
    """

    def __init__(self, record: Optional[ProgressionRecord] = None) -> None:
        self._record = record.clone() if record is not None else None
        self.saves = 0
        self.loads = 0
        self.fail_saves = False
        self.fail_loads = False

    @property
    def stored(self) -> Optional[ProgressionRecord]:
        return self._record

    async def load(self) -> Optional[ProgressionRecord]:
        self.loads += 1
        if self.fail_loads:
            raise PersistenceError("load", RuntimeError("store unavailable"))
        return self._record.clone() if self._record is not None else None

    async def save(self, record: ProgressionRecord) -> None:
        if self.fail_saves:
            raise PersistenceError("save", RuntimeError("disk full"))
        self._record = record.clone()
        self.saves += 1


# ============================================================================
# BASIC FIXTURES
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def config_manager() -> ConfigManager:
    manager = ConfigManager()
    manager.initialize()
    return manager


@pytest.fixture
def event_bus(config_manager: ConfigManager) -> EventBus:
    return EventBus(config_manager)


@pytest.fixture
def store() -> InMemoryProgressionStore:
    return InMemoryProgressionStore()


@pytest.fixture
def store_factory() -> Callable[[], InMemoryProgressionStore]:
    return InMemoryProgressionStore


@pytest.fixture
def mock_event_bus(mocker):
    """
    EventBus double whose publish() is an AsyncMock.

    Use when a test asserts on exactly what was published, not on delivery.
    """
    mock_bus = mocker.MagicMock(spec=EventBus)
    mock_bus.publish = mocker.AsyncMock()
    return mock_bus


@pytest.fixture
def recorded_events(event_bus: EventBus) -> List[Any]:
    """Every event published on `event_bus`, in order."""
    events: List[Any] = []

    def record(event: Any) -> None:
        events.append(event)

    event_bus.subscribe(record)
    return events


# ============================================================================
# DOMAIN FACTORIES
# ============================================================================


def make_mission(
    mission_id: str = "create_notes",
    *,
    target: int = 3,
    reward: int = 50,
    progress: int = 0,
    claimed: bool = False,
) -> Mission:
    return Mission(
        id=mission_id,
        title=mission_id.replace("_", " ").title(),
        description=f"Complete {mission_id}",
        target=target,
        reward=reward,
        progress=progress,
        claimed=claimed,
    )


@pytest.fixture
def mission_factory() -> Callable[..., Mission]:
    return make_mission


@pytest.fixture
def make_record() -> Callable[..., ProgressionRecord]:
    """Factory for records dated at the default clock start."""

    def factory(**overrides: Any) -> ProgressionRecord:
        values: dict[str, Any] = {
            "last_active_at": START,
            "missions_seeded_on": START.date(),
            "active_missions": [
                make_mission("create_notes", target=3, reward=50),
                make_mission("earn_xp", target=100, reward=30),
                make_mission("daily_login", target=1, reward=25),
            ],
        }
        values.update(overrides)
        return ProgressionRecord(**values)

    return factory


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def forge_service(
    store: InMemoryProgressionStore,
    config_manager: ConfigManager,
    event_bus: EventBus,
    clock: FakeClock,
    rng: random.Random,
) -> StudyForgeService:
    return StudyForgeService(store, config_manager, event_bus, clock=clock, rng=rng)


@pytest_asyncio.fixture
async def seeded_forge(
    store: InMemoryProgressionStore,
    config_manager: ConfigManager,
    event_bus: EventBus,
    clock: FakeClock,
    rng: random.Random,
    make_record: Callable[..., ProgressionRecord],
) -> StudyForgeService:
    """
    Initialized engine over a stored record with known missions.

    Tests that need specific balances replace `store` contents before
    requesting this fixture, or use `forge_with_record`.
    """
    if store.stored is None:
        await store.save(make_record())
        store.saves = 0
    service = StudyForgeService(store, config_manager, event_bus, clock=clock, rng=rng)
    await service.initialize()
    return service


@pytest.fixture
def forge_with_record(
    store: InMemoryProgressionStore,
    config_manager: ConfigManager,
    event_bus: EventBus,
    clock: FakeClock,
    rng: random.Random,
) -> Callable[[ProgressionRecord], Any]:
    """Build and initialize an engine over the given stored record."""

    async def factory(record: ProgressionRecord) -> StudyForgeService:
        await store.save(record)
        store.saves = 0
        service = StudyForgeService(store, config_manager, event_bus, clock=clock, rng=rng)
        await service.initialize()
        return service

    return factory
