"""
Durable Record Store
====================

Purpose
-------
Load and save the singleton ProgressionRecord.

- `ProgressionStore`: the contract the engine depends on
- `SqlProgressionStore`: SQLAlchemy async implementation over DatabaseService

Mapping Rules
-------------
- Unknown keys inside stored JSON documents are ignored on read
- Naive datetimes read back from SQLite are treated as UTC
- The cached level is re-derived from total experience on read; a stale
  value is healed and logged
- Driver and ORM failures surface as PersistenceError
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, fields
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError

from studyforge.core.database.service import DatabaseService
from studyforge.core.exceptions import DatabaseNotInitializedError, PersistenceError
from studyforge.core.logging.logger import get_logger
from studyforge.database.models.progression import ProgressionRow
from studyforge.domain.models.base import DomainValidationError
from studyforge.domain.models.progression import (
    ActivityKind,
    ActivityLogEntry,
    ForgeSettings,
    Mission,
    ProgressionRecord,
)
from studyforge.modules.shared.constants import PROGRESSION_RECORD_ID

logger = get_logger(__name__)


class ProgressionStore(ABC):
    """Persistence contract for the singleton progression record."""

    @abstractmethod
    async def load(self) -> Optional[ProgressionRecord]:
        """Return the stored record, or None when nothing has been saved yet."""

    @abstractmethod
    async def save(self, record: ProgressionRecord) -> None:
        """Persist `record`, replacing any previous version."""


# ============================================================================
# Row <-> record mapping
# ============================================================================


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _known_fields(cls: type, data: Mapping[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


def mission_to_document(mission: Mission) -> Dict[str, Any]:
    return asdict(mission)


def mission_from_document(data: Mapping[str, Any]) -> Mission:
    return Mission(**_known_fields(Mission, data))


def activity_to_document(entry: ActivityLogEntry) -> Dict[str, Any]:
    document: Dict[str, Any] = {
        "timestamp": entry.timestamp.isoformat(),
        "kind": entry.kind.value,
        "message": entry.message,
    }
    if entry.experience is not None:
        document["experience"] = entry.experience
    if entry.level is not None:
        document["level"] = entry.level
    return document


def activity_from_document(data: Mapping[str, Any]) -> ActivityLogEntry:
    return ActivityLogEntry(
        timestamp=_as_utc(datetime.fromisoformat(data["timestamp"])),
        kind=ActivityKind(data["kind"]),
        message=data["message"],
        experience=data.get("experience"),
        level=data.get("level"),
    )


def settings_from_document(data: Mapping[str, Any]) -> ForgeSettings:
    return ForgeSettings(**_known_fields(ForgeSettings, data))


def record_from_row(row: ProgressionRow) -> ProgressionRecord:
    record = ProgressionRecord(
        record_id=row.id,
        total_experience=row.total_experience,
        available_experience=row.available_experience,
        pending_idle_experience=row.pending_idle_experience,
        passive_experience_per_second=row.passive_experience_per_second,
        last_active_at=_as_utc(row.last_active_at),
        daily_streak=row.daily_streak,
        last_streak_date=row.last_streak_date,
        missions_seeded_on=row.missions_seeded_on,
        active_missions=[mission_from_document(m) for m in row.active_missions or []],
        owned_themes=list(row.owned_themes or []),
        owned_upgrades={k: bool(v) for k, v in (row.owned_upgrades or {}).items()},
        settings=settings_from_document(row.settings or {}),
        activity_log=[activity_from_document(e) for e in row.activity_log or []],
    )

    if record.level != row.level:
        logger.warning(
            "Stored level disagrees with total experience; re-derived",
            extra={
                "stored_level": row.level,
                "derived_level": record.level,
                "total_experience": record.total_experience,
            },
        )

    return record


def apply_record_to_row(record: ProgressionRecord, row: ProgressionRow) -> None:
    row.total_experience = record.total_experience
    row.available_experience = record.available_experience
    row.level = record.level
    row.experience_for_next_level = record.experience_for_next_level
    row.level_progress = record.level_progress
    row.pending_idle_experience = record.pending_idle_experience
    row.passive_experience_per_second = record.passive_experience_per_second
    row.last_active_at = record.last_active_at
    row.daily_streak = record.daily_streak
    row.last_streak_date = record.last_streak_date
    row.missions_seeded_on = record.missions_seeded_on
    row.active_missions = [mission_to_document(m) for m in record.active_missions]
    row.owned_themes = list(record.owned_themes)
    row.owned_upgrades = dict(record.owned_upgrades)
    row.settings = record.settings.to_dict()
    row.activity_log = [activity_to_document(e) for e in record.activity_log]


# ============================================================================
# SQL implementation
# ============================================================================


class SqlProgressionStore(ProgressionStore):
    """
    ProgressionRecord persistence through SQLAlchemy async sessions.

    The store assumes it is the only writer of the record; concurrent
    processes sharing one database are not coordinated.
    """

    def __init__(self, database: DatabaseService, record_id: int = PROGRESSION_RECORD_ID) -> None:
        self._database = database
        self._record_id = record_id

    async def load(self) -> Optional[ProgressionRecord]:
        try:
            async with self._database.get_session() as session:
                row = await session.get(ProgressionRow, self._record_id)
                if row is None:
                    logger.info(
                        "No stored progression record",
                        extra={"record_id": self._record_id},
                    )
                    return None
                record = record_from_row(row)
        except (SQLAlchemyError, DatabaseNotInitializedError) as exc:
            raise PersistenceError("load", exc) from exc
        except (KeyError, TypeError, ValueError, DomainValidationError) as exc:
            logger.error(
                "Stored progression record is malformed",
                extra={"record_id": self._record_id, "error": str(exc)},
            )
            raise PersistenceError("load", exc) from exc

        logger.debug(
            "Progression record loaded",
            extra={"record_id": self._record_id, "version": row.version},
        )
        return record

    async def save(self, record: ProgressionRecord) -> None:
        try:
            async with self._database.get_transaction() as session:
                row = await session.get(ProgressionRow, self._record_id)
                if row is None:
                    row = ProgressionRow(id=self._record_id, version=0)
                    session.add(row)
                apply_record_to_row(record, row)
                row.version = (row.version or 0) + 1
        except (SQLAlchemyError, DatabaseNotInitializedError) as exc:
            raise PersistenceError("save", exc) from exc

        logger.debug(
            "Progression record saved",
            extra={"record_id": self._record_id, "version": row.version},
        )
