"""
Static StudyForge catalogs: upgrades and daily mission templates.

The numbers here (costs, effect values, targets, rewards) are rendered
verbatim by the UI and relied on by other components. They are not tunable.

Upgrade effects are a closed set of variants. Code that applies an effect
dispatches with isinstance and raises on anything it does not know.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from studyforge.modules.shared.constants import (
    AUTO_COLLECT_UPGRADE_ID,
    EARN_XP_MISSION_ID,
    STREAK_BOOSTER_UPGRADE_ID,
)


# ============================================================================
# UPGRADE EFFECTS
# ============================================================================


@dataclass(frozen=True)
class MultiplierEffect:
    """Additive bonus to the experience multiplier (0.1 == +10%)."""

    value: float


@dataclass(frozen=True)
class PassiveRateEffect:
    """Passive experience generated per second."""

    value: float


@dataclass(frozen=True)
class ThemeUnlockEffect:
    theme_id: str


@dataclass(frozen=True)
class AutoCollectEffect:
    """Idle experience is credited on reconciliation instead of queued."""


UpgradeEffect = Union[MultiplierEffect, PassiveRateEffect, ThemeUnlockEffect, AutoCollectEffect]


@dataclass(frozen=True)
class UpgradeDefinition:
    id: str
    name: str
    description: str
    cost: int
    effect: UpgradeEffect
    requires: Tuple[str, ...] = ()


@dataclass(frozen=True)
class MissionTemplate:
    id: str
    title: str
    description: str
    target: int
    reward: int


# ============================================================================
# CATALOGS
# ============================================================================

UPGRADES: Tuple[UpgradeDefinition, ...] = (
    UpgradeDefinition(
        id="note_mastery_1",
        name="Note Mastery I",
        description="Gain 10% more XP from all sources",
        cost=100,
        effect=MultiplierEffect(0.1),
    ),
    UpgradeDefinition(
        id="note_mastery_2",
        name="Note Mastery II",
        description="Gain an additional 15% more XP from all sources",
        cost=500,
        effect=MultiplierEffect(0.15),
        requires=("note_mastery_1",),
    ),
    UpgradeDefinition(
        id="flashcard_grinder_1",
        name="Flashcard Grinder I",
        description="Gain 20% more XP from all sources",
        cost=300,
        effect=MultiplierEffect(0.2),
    ),
    UpgradeDefinition(
        id="review_efficiency_1",
        name="Review Efficiency I",
        description="Gain 12% more XP from all sources",
        cost=250,
        effect=MultiplierEffect(0.12),
    ),
    UpgradeDefinition(
        id="small_furnace",
        name="Small Furnace",
        description="Generate 0.5 passive XP per second",
        cost=200,
        effect=PassiveRateEffect(0.5),
    ),
    UpgradeDefinition(
        id="bigger_furnace",
        name="Bigger Furnace",
        description="Generate an additional 1.5 passive XP per second",
        cost=800,
        effect=PassiveRateEffect(1.5),
        requires=("small_furnace",),
    ),
    # Conditional: its bonus comes from the streak rule in compute_multipliers.
    UpgradeDefinition(
        id=STREAK_BOOSTER_UPGRADE_ID,
        name="Streak Booster",
        description="Double XP gains when streak is 3+ days",
        cost=400,
        effect=MultiplierEffect(0.0),
    ),
    UpgradeDefinition(
        id="mindforge_theme_pack",
        name="Mindforge Theme Pack",
        description="Unlock exclusive dark theme for the forge",
        cost=600,
        effect=ThemeUnlockEffect("mindforge_dark"),
    ),
    UpgradeDefinition(
        id=AUTO_COLLECT_UPGRADE_ID,
        name="Auto-Collect",
        description="Automatically collect idle XP (up to 24 hours)",
        cost=1000,
        effect=AutoCollectEffect(),
    ),
)

MISSION_POOL: Tuple[MissionTemplate, ...] = (
    MissionTemplate("create_notes", "Note Creator", "Create 3 notes", 3, 50),
    MissionTemplate("generate_flashcards", "Flashcard Master", "Generate 2 flashcard sets", 2, 60),
    MissionTemplate("review_flashcards", "Study Session", "Review 20 flashcards", 20, 40),
    MissionTemplate(EARN_XP_MISSION_ID, "XP Hunter", "Earn 100 XP from any source", 100, 30),
    MissionTemplate("daily_login", "Daily Commitment", "Log in and interact with the app", 1, 25),
    MissionTemplate("study_streak", "Consistency Champion", "Maintain your study streak", 1, 35),
)

_UPGRADES_BY_ID: Dict[str, UpgradeDefinition] = {u.id: u for u in UPGRADES}
_MISSIONS_BY_ID: Dict[str, MissionTemplate] = {m.id: m for m in MISSION_POOL}


def get_upgrade(upgrade_id: str) -> Optional[UpgradeDefinition]:
    """Catalog lookup; None for unknown ids."""
    return _UPGRADES_BY_ID.get(upgrade_id)


def get_mission_template(mission_id: str) -> Optional[MissionTemplate]:
    return _MISSIONS_BY_ID.get(mission_id)
