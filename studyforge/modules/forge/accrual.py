"""
Idle Accrual Engine

Purpose
-------
Fold wall-clock time spent away into passive experience.

Reconciliation
--------------
1. elapsed = now - last_active_at, floored to whole seconds
2. nothing accrues when elapsed <= 0 or the passive rate is 0
3. elapsed is capped (24h by default), then multiplied by the rate and floored
4. with the auto-collect upgrade the amount is credited through the
   level-up path; otherwise it is queued in pending_idle_experience
5. last_active_at = now, always

Manual collection empties the queue into real balances regardless of the
auto-collect upgrade.
"""

from __future__ import annotations

import math
from datetime import datetime

from studyforge.core.logging.logger import get_logger
from studyforge.domain.models.progression import (
    ActivityKind,
    ActivityLogEntry,
    ProgressionRecord,
)
from studyforge.modules.shared.constants import (
    ACTIVITY_LOG_LIMIT,
    AUTO_COLLECT_UPGRADE_ID,
    MAX_IDLE_SECONDS,
)
from studyforge.modules.shared.formulas import calculate_idle_experience

logger = get_logger(__name__)


class IdleAccrualEngine:
    def __init__(
        self,
        max_idle_seconds: int = MAX_IDLE_SECONDS,
        log_limit: int = ACTIVITY_LOG_LIMIT,
    ) -> None:
        self._max_idle_seconds = max_idle_seconds
        self._log_limit = log_limit

    @staticmethod
    def elapsed_seconds(record: ProgressionRecord, now: datetime) -> int:
        return math.floor((now - record.last_active_at).total_seconds())

    def reconcile(self, record: ProgressionRecord, now: datetime) -> int:
        """
        Accrue idle experience on `record` up to `now`.

        Returns the amount credited to balances; 0 when nothing accrued or
        when the amount was queued for manual collection.
        """
        elapsed = self.elapsed_seconds(record, now)
        idle_experience = calculate_idle_experience(
            elapsed, record.passive_experience_per_second, self._max_idle_seconds
        )
        record.touch(now)

        if idle_experience <= 0:
            return 0

        if record.owns_upgrade(AUTO_COLLECT_UPGRADE_ID):
            self._credit(record, idle_experience, now)
            logger.info(
                "Idle experience auto-collected",
                extra={"elapsed_seconds": elapsed, "experience": idle_experience},
            )
            return idle_experience

        record.queue_idle_experience(idle_experience)
        logger.info(
            "Idle experience queued for collection",
            extra={
                "elapsed_seconds": elapsed,
                "experience": idle_experience,
                "pending": record.pending_idle_experience,
            },
        )
        return 0

    def collect_pending(self, record: ProgressionRecord, now: datetime) -> int:
        """Convert the queued amount into real experience. Returns the amount."""
        amount = record.take_pending_idle_experience()
        record.touch(now)
        if amount <= 0:
            return 0

        self._credit(record, amount, now)
        logger.info("Pending idle experience collected", extra={"experience": amount})
        return amount

    def _credit(self, record: ProgressionRecord, amount: int, now: datetime) -> None:
        record.credit_experience(amount, now, log_limit=self._log_limit)
        record.record_activity(
            ActivityLogEntry(
                timestamp=now,
                kind=ActivityKind.XP_EARNED,
                message=f"Collected {amount} idle XP",
                experience=amount,
            ),
            limit=self._log_limit,
        )
