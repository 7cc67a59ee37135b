"""
ProgressionRow: the persisted StudyForge progression record.
Schema only; mapping to and from the domain record lives in the store.

Structured collections (missions, themes, upgrades, settings, activity log)
are JSON documents: JSONB on PostgreSQL, JSON text elsewhere.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, BigInteger, Date, DateTime, Float, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from studyforge.core.database.base import Base, TimestampMixin

JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class ProgressionRow(Base, TimestampMixin):
    """
    Singleton progression record (primary key fixed at 1).
    """

    __tablename__ = "progression_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    version: Mapped[int] = mapped_column(
        nullable=False,
        default=1,
        doc="Incremented on every save",
    )

    total_experience: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    available_experience: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    experience_for_next_level: Mapped[int] = mapped_column(BigInteger, nullable=False)
    level_progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    pending_idle_experience: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    passive_experience_per_second: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0
    )
    last_active_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    daily_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_streak_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    missions_seeded_on: Mapped[date] = mapped_column(Date, nullable=False)

    active_missions: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
    owned_themes: Mapped[List[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    owned_upgrades: Mapped[Dict[str, bool]] = mapped_column(
        JSONDocument, nullable=False, default=dict
    )
    settings: Mapped[Dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    activity_log: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONDocument, nullable=False, default=list
    )
