"""
Integration Tests for the SQL Record Store
==========================================

Runs DatabaseService and SqlProgressionStore against a temporary SQLite
file through aiosqlite, then drives the whole engine through ForgeContext.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from studyforge.core.config.config import Config
from studyforge.core.database.service import DatabaseService
from studyforge.core.exceptions import DatabaseNotInitializedError, PersistenceError
from studyforge.core.infra.application_context import ForgeContext, HealthStatus
from studyforge.database.models.progression import ProgressionRow
from studyforge.domain.models.progression import (
    ActivityKind,
    ActivityLogEntry,
    ForgeSettings,
    Mission,
    ProgressionRecord,
)
from studyforge.modules.forge.store import SqlProgressionStore

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'forge.db'}"


@pytest_asyncio.fixture
async def database(database_url):
    service = DatabaseService(database_url)
    await service.initialize()
    yield service
    await service.shutdown()


@pytest.fixture
def sql_store(database) -> SqlProgressionStore:
    return SqlProgressionStore(database)


def _rich_record() -> ProgressionRecord:
    return ProgressionRecord(
        total_experience=640,
        available_experience=140,
        pending_idle_experience=12.5,
        passive_experience_per_second=0.5,
        last_active_at=NOW,
        daily_streak=4,
        last_streak_date=NOW.date(),
        missions_seeded_on=NOW.date(),
        active_missions=[
            Mission("earn_xp", "XP Hunter", "Earn 100 XP from any source", 100, 30, 100, True),
            Mission("create_notes", "Note Creator", "Create 3 notes", 3, 50, 1),
        ],
        owned_themes=["default", "mindforge_dark"],
        owned_upgrades={"note_mastery_1": True, "small_furnace": True},
        settings=ForgeSettings(theme="mindforge_dark", sound_enabled=False),
        activity_log=[
            ActivityLogEntry(NOW, ActivityKind.UPGRADE_PURCHASED, "Purchased Small Furnace"),
            ActivityLogEntry(
                NOW - timedelta(minutes=5), ActivityKind.LEVEL_UP, "Leveled up to 3!", level=3
            ),
        ],
    )


# ============================================================================
# DATABASE SERVICE
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestDatabaseService:
    async def test_health_check(self, database):
        assert await database.health_check() is True

    async def test_health_check_after_shutdown(self, database_url):
        service = DatabaseService(database_url)
        await service.initialize()
        await service.shutdown()

        assert await service.health_check() is False
        assert service.metrics.health_check_failures == 1

    async def test_session_before_initialize(self, database_url):
        service = DatabaseService(database_url)

        with pytest.raises(DatabaseNotInitializedError):
            async with service.get_session():
                pass

    async def test_transaction_rolls_back_on_error(self, database):
        with pytest.raises(RuntimeError):
            async with database.get_transaction() as session:
                session.add(ProgressionRow(id=99, version=1, **_row_values()))
                raise RuntimeError("abort")

        async with database.get_session() as session:
            assert await session.get(ProgressionRow, 99) is None
        assert database.metrics.transactions_rolled_back == 1


def _row_values() -> dict:
    return {
        "total_experience": 0,
        "available_experience": 0,
        "level": 1,
        "experience_for_next_level": 282,
        "level_progress": 0.0,
        "pending_idle_experience": 0.0,
        "passive_experience_per_second": 0.0,
        "last_active_at": NOW,
        "daily_streak": 0,
        "last_streak_date": None,
        "missions_seeded_on": NOW.date(),
        "active_missions": [],
        "owned_themes": ["default"],
        "owned_upgrades": {},
        "settings": {},
        "activity_log": [],
    }


# ============================================================================
# SQL PROGRESSION STORE
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestSqlProgressionStore:
    async def test_load_empty_database(self, sql_store):
        assert await sql_store.load() is None

    async def test_saved_record_reads_back(self, sql_store):
        # Arrange
        record = _rich_record()

        # Act
        await sql_store.save(record)
        loaded = await sql_store.load()

        # Assert
        assert loaded is not None
        assert loaded.to_snapshot() == record.to_snapshot()
        assert loaded.last_active_at.tzinfo is not None

    async def test_save_overwrites_and_bumps_version(self, sql_store, database):
        record = _rich_record()
        await sql_store.save(record)
        record.credit_experience(10, NOW)
        await sql_store.save(record)

        async with database.get_session() as session:
            row = await session.get(ProgressionRow, 1)

        assert row.version == 2
        assert row.total_experience == 650
        assert (await sql_store.load()).total_experience == 650

    async def test_stale_level_is_rederived(self, sql_store, database, caplog):
        # Arrange
        await sql_store.save(_rich_record())
        async with database.get_transaction() as session:
            row = await session.get(ProgressionRow, 1)
            row.level = 9

        # Act
        with caplog.at_level(logging.WARNING):
            loaded = await sql_store.load()

        # Assert
        assert loaded.level == 3
        assert "Stored level disagrees" in caplog.text

    async def test_unknown_document_keys_are_ignored(self, sql_store, database):
        await sql_store.save(_rich_record())
        async with database.get_transaction() as session:
            row = await session.get(ProgressionRow, 1)
            row.settings = {"theme": "default", "legacy_volume": 7}

        loaded = await sql_store.load()

        assert loaded.settings == ForgeSettings()

    async def test_malformed_document_raises_persistence_error(self, sql_store, database):
        await sql_store.save(_rich_record())
        async with database.get_transaction() as session:
            row = await session.get(ProgressionRow, 1)
            row.active_missions = [{"id": "earn_xp"}]

        with pytest.raises(PersistenceError) as exc_info:
            await sql_store.load()

        assert exc_info.value.operation == "load"

    async def test_uninitialized_database_raises_persistence_error(self, database_url):
        store = SqlProgressionStore(DatabaseService(database_url))

        with pytest.raises(PersistenceError):
            await store.save(_rich_record())


# ============================================================================
# END TO END
# ============================================================================


@pytest.mark.integration
@pytest.mark.asyncio
class TestForgeContext:
    async def test_state_survives_restart(self, database_url, tmp_path, monkeypatch):
        # Arrange
        monkeypatch.setattr(Config, "LOGS_DIR", tmp_path / "logs")
        clock_time = [NOW]

        def clock():
            return clock_time[0]

        first = ForgeContext(database_url, clock=clock, configure_logging=False)
        await first.initialize()

        # Act
        await first.forge.award_experience(150, "Deep work")
        assert await first.forge.purchase_upgrade("note_mastery_1")
        await first.forge.update_settings({"theme": "default", "notifications_enabled": False})
        await first.shutdown()

        clock_time[0] = NOW + timedelta(hours=2)
        second = ForgeContext(database_url, clock=clock, configure_logging=False)
        await second.initialize()

        # Assert
        snapshot = second.forge.get_snapshot()
        assert snapshot.total_experience == 150
        assert snapshot.available_experience == 50
        assert snapshot.owned_upgrades["note_mastery_1"] is True
        assert snapshot.settings.notifications_enabled is False
        assert snapshot.last_active_at == NOW + timedelta(hours=2)
        assert snapshot.activity_log[0].message == "Purchased Note Mastery I"

        report = await second.health_check()
        assert report["components"]["database"]["status"] == HealthStatus.HEALTHY.value
        assert report["components"]["forge"]["status"] == HealthStatus.HEALTHY.value

        await second.shutdown()

    async def test_double_initialize_rejected(self, database_url, tmp_path, monkeypatch):
        monkeypatch.setattr(Config, "LOGS_DIR", tmp_path / "logs")
        context = ForgeContext(database_url, configure_logging=False)
        await context.initialize()

        with pytest.raises(RuntimeError):
            await context.initialize()

        await context.shutdown()
        assert context.is_initialized is False
