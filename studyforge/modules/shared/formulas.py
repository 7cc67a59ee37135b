"""
StudyForge Progression Formulas

Purpose
-------
Pure calculation functions for the progression economy: the level curve and
its inverse, multiplier composition, level progress, effective experience
and idle accrual.

Design Notes
------------
All formulas:
- Accept parameters explicitly (no config access, no I/O)
- Truncate with math.floor, never round
- Are deterministic and testable

Usage
-----
    from studyforge.modules.shared.formulas import experience_for_level

    threshold = experience_for_level(10)  # 3162
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping

from studyforge.modules.shared.catalog import UPGRADES, MultiplierEffect, UpgradeDefinition
from studyforge.modules.shared.constants import (
    BASE_MULTIPLIER,
    MAX_IDLE_SECONDS,
    MIN_LEVEL,
    STREAK_BOOSTER_BONUS,
    STREAK_BOOSTER_THRESHOLD,
    STREAK_BOOSTER_UPGRADE_ID,
    XP_BASE,
    XP_EXPONENT,
)


@dataclass(frozen=True)
class XPMultipliers:
    """Breakdown of the additive experience multiplier."""

    base: float
    upgrade_bonus: float
    streak_bonus: float
    total: float


def experience_for_level(level: int) -> int:
    """
    Cumulative experience at which `level` is reached.

    Example:
        >>> experience_for_level(1)
        100
        >>> experience_for_level(2)
        282
        >>> experience_for_level(10)
        3162
    """
    return math.floor(XP_BASE * level**XP_EXPONENT)


def level_from_experience(total_experience: int) -> int:
    """
    Greatest level n >= 1 with experience_for_level(n) <= total_experience.

    Uses binary search over a bound derived from the closed-form inverse so
    that floating-point error in the inverse never decides the answer.

    Example:
        >>> level_from_experience(99)
        1
        >>> level_from_experience(282)
        2
        >>> level_from_experience(281)
        1
    """
    if total_experience < experience_for_level(MIN_LEVEL):
        return MIN_LEVEL

    low = MIN_LEVEL
    high = math.ceil((total_experience / XP_BASE) ** (1 / XP_EXPONENT)) + 1

    while low < high:
        mid = (low + high) // 2
        if experience_for_level(mid) <= total_experience:
            low = mid + 1
        else:
            high = mid

    return low - 1


def compute_multipliers(
    owned_upgrades: Mapping[str, bool],
    streak: int,
    *,
    catalog: Iterable[UpgradeDefinition] = UPGRADES,
    booster_threshold: int = STREAK_BOOSTER_THRESHOLD,
) -> XPMultipliers:
    """
    Compose the experience multiplier additively.

    Two owned upgrades of +10% and +20% yield +30%, not +32%.

    Example:
        >>> compute_multipliers({"note_mastery_1": True, "streak_booster": True}, 5).total
        2.1
    """
    upgrade_bonus = 0.0
    for upgrade in catalog:
        if owned_upgrades.get(upgrade.id) and isinstance(upgrade.effect, MultiplierEffect):
            upgrade_bonus += upgrade.effect.value

    streak_bonus = 0.0
    if owned_upgrades.get(STREAK_BOOSTER_UPGRADE_ID) and streak >= booster_threshold:
        streak_bonus = STREAK_BOOSTER_BONUS

    return XPMultipliers(
        base=BASE_MULTIPLIER,
        upgrade_bonus=upgrade_bonus,
        streak_bonus=streak_bonus,
        total=BASE_MULTIPLIER + upgrade_bonus + streak_bonus,
    )


def calculate_effective_experience(base_amount: int, multiplier: float) -> int:
    """
    Example:
        >>> calculate_effective_experience(100, 2.1)
        210
    """
    return max(0, math.floor(base_amount * multiplier))


def calculate_level_progress(total_experience: int, level: int, next_threshold: int) -> float:
    """Fraction of the way from `level` to the next one, clamped to [0, 1]."""
    current_threshold = experience_for_level(level)
    span = next_threshold - current_threshold
    if span <= 0:
        return 0.0
    progress = (total_experience - current_threshold) / span
    return min(1.0, max(0.0, progress))


def calculate_idle_experience(
    elapsed_seconds: int,
    rate_per_second: float,
    cap_seconds: int = MAX_IDLE_SECONDS,
) -> int:
    """
    Whole experience accrued over `elapsed_seconds`, capped.

    Example:
        >>> calculate_idle_experience(100_000, 0.5)
        43200
    """
    if elapsed_seconds <= 0 or rate_per_second <= 0:
        return 0
    return math.floor(min(elapsed_seconds, cap_seconds) * rate_per_second)
