"""
StudyForge Domain Constants

Purpose
-------
Gameplay constants for the progression economy: the level curve, the
streak booster, idle accrual limits, the activity log and the daily
mission count.

IMPORTANT:
This module contains GAMEPLAY constants only. Infrastructure concerns
(database URL, logging) belong in studyforge.core.config.

Design Notes
------------
- Values are annotated with typing.Final to signal immutability
- The tunable ones (idle cap, log size, booster threshold) are the
  fallbacks for the matching ConfigManager keys under `forge.*`
"""

from __future__ import annotations

from typing import Final

# ============================================================================
# RECORD
# ============================================================================

PROGRESSION_RECORD_ID: Final[int] = 1  # Singleton key in the record store
DEFAULT_THEME: Final[str] = "default"

# ============================================================================
# LEVELING SYSTEM
# ============================================================================

XP_BASE: Final[int] = 100
XP_EXPONENT: Final[float] = 1.5
MIN_LEVEL: Final[int] = 1

# ============================================================================
# MULTIPLIERS & STREAKS
# ============================================================================

BASE_MULTIPLIER: Final[float] = 1.0
STREAK_BOOSTER_UPGRADE_ID: Final[str] = "streak_booster"
STREAK_BOOSTER_THRESHOLD: Final[int] = 3  # Streak days before the booster applies
STREAK_BOOSTER_BONUS: Final[float] = 1.0  # Doubles the base multiplier

# ============================================================================
# IDLE ACCRUAL
# ============================================================================

AUTO_COLLECT_UPGRADE_ID: Final[str] = "auto_collect"
MAX_IDLE_SECONDS: Final[int] = 24 * 60 * 60

# ============================================================================
# MISSIONS & ACTIVITY LOG
# ============================================================================

DAILY_MISSION_COUNT: Final[int] = 3
EARN_XP_MISSION_ID: Final[str] = "earn_xp"  # Progress counts XP, not events
ACTIVITY_LOG_LIMIT: Final[int] = 10
