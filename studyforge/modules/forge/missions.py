"""
Daily Mission Scheduler
=======================

Purpose
-------
Selects the day's missions from the fixed template pool, applies progress
and decides when the set must be reseeded.

Domain
------
- Seed 3 distinct templates, uniformly without replacement
- Reseed wholesale on day rollover (unclaimed progress is discarded)
- Count-based progress for the mission named by an award
- Quantity-based progress for `earn_xp` (tracks experience, not events)

The scheduler never touches storage or the bus. It operates on the draft
record handed to it by StudyForgeService.
"""

from __future__ import annotations

import random
from datetime import date
from typing import List, Optional, Sequence

from studyforge.core.logging.logger import get_logger
from studyforge.domain.models.progression import Mission, ProgressionRecord
from studyforge.modules.shared.catalog import MISSION_POOL, MissionTemplate
from studyforge.modules.shared.constants import DAILY_MISSION_COUNT, EARN_XP_MISSION_ID

logger = get_logger(__name__)


class MissionScheduler:
    """
    Daily mission selection and progress tracking.

    Args:
        rng: Random source; inject a seeded `random.Random` for deterministic tests
        pool: Mission templates to draw from
        count: Missions per day
    """

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        pool: Sequence[MissionTemplate] = MISSION_POOL,
        count: int = DAILY_MISSION_COUNT,
    ) -> None:
        if count > len(pool):
            raise ValueError(f"Cannot seed {count} missions from a pool of {len(pool)}")
        self._rng = rng or random.Random()
        self._pool = tuple(pool)
        self._count = count

    def seed(self, rng: Optional[random.Random] = None) -> List[Mission]:
        """Fresh missions for a new day: progress 0, unclaimed."""
        templates = (rng or self._rng).sample(self._pool, self._count)
        return [
            Mission(
                id=template.id,
                title=template.title,
                description=template.description,
                target=template.target,
                reward=template.reward,
            )
            for template in templates
        ]

    @staticmethod
    def needs_reseed(record: ProgressionRecord, today: date) -> bool:
        return record.missions_seeded_on != today or not record.active_missions

    def reseed_if_needed(self, record: ProgressionRecord, today: date) -> bool:
        """Replace the record's missions when they belong to another day."""
        if not self.needs_reseed(record, today):
            return False

        previous_day = record.missions_seeded_on
        record.replace_missions(self.seed(), today)

        logger.info(
            "Daily missions reseeded",
            extra={
                "previous_day": previous_day.isoformat(),
                "seeded_on": today.isoformat(),
                "mission_ids": [m.id for m in record.active_missions],
            },
        )
        return True

    @staticmethod
    def record_award(
        record: ProgressionRecord,
        effective_experience: int,
        mission_id: Optional[str] = None,
    ) -> None:
        """
        Apply the progress an experience award implies.

        Both rules apply independently, so an award naming `earn_xp` moves
        that mission by one and by the effective amount.
        """
        if mission_id is not None:
            record.advance_mission(mission_id, 1)
        record.advance_mission(EARN_XP_MISSION_ID, effective_experience)
