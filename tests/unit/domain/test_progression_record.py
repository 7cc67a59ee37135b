"""
Unit Tests for the Progression Domain Model
============================================

Test Coverage
-------------
- Default record and level derivation
- Experience credit, level-up log entries and LevelUp events
- Spending, idle queue and streak rules
- Missions, settings, the capped activity log and snapshots

Testing Strategy
----------------
- Pure domain tests (no store, no bus)
- AAA pattern (Arrange, Act, Assert)
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from studyforge.domain.models.base import DomainValidationError
from studyforge.domain.models.events import LevelUp
from studyforge.domain.models.progression import (
    ActivityKind,
    ActivityLogEntry,
    ForgeSettings,
    Mission,
    ProgressionRecord,
)

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


# ============================================================================
# CREATION & LEVEL
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestRecordCreation:
    def test_default_record(self):
        # Arrange & Act
        record = ProgressionRecord.create_default(NOW)

        # Assert
        assert record.total_experience == 0
        assert record.available_experience == 0
        assert record.level == 1
        assert record.experience_for_next_level == 282
        assert record.level_progress == 0.0
        assert record.owned_themes == ["default"]
        assert record.owned_upgrades == {}
        assert record.settings == ForgeSettings()
        assert record.missions_seeded_on == NOW.date()
        assert record.last_streak_date is None

    def test_level_is_derived_from_total_experience(self):
        record = ProgressionRecord(
            total_experience=600,
            last_active_at=NOW,
            missions_seeded_on=NOW.date(),
        )

        assert record.level == 3
        assert record.experience_for_next_level == 800

    def test_default_theme_always_owned(self):
        record = ProgressionRecord(
            last_active_at=NOW,
            missions_seeded_on=NOW.date(),
            owned_themes=["mindforge_dark", "default", "mindforge_dark"],
        )

        assert record.owned_themes == ["default", "mindforge_dark"]

    def test_rejects_negative_balances(self):
        with pytest.raises(DomainValidationError):
            ProgressionRecord(
                available_experience=-1,
                last_active_at=NOW,
                missions_seeded_on=NOW.date(),
            )

    def test_refresh_level_reports_stale_cache(self):
        record = ProgressionRecord.create_default(NOW)
        record.total_experience = 300

        assert record.refresh_level() is True
        assert record.level == 2
        assert record.refresh_level() is False


# ============================================================================
# EXPERIENCE
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestCreditExperience:
    def test_credit_without_level_up(self):
        # Arrange
        record = ProgressionRecord.create_default(NOW)

        # Act
        new_level = record.credit_experience(50, NOW)

        # Assert
        assert new_level is None
        assert record.total_experience == 50
        assert record.available_experience == 50
        assert record.activity_log == []
        assert record.get_pending_events() == []

    def test_credit_crossing_threshold_levels_up(self):
        # Arrange
        record = ProgressionRecord(
            total_experience=250,
            available_experience=250,
            last_active_at=NOW,
            missions_seeded_on=NOW.date(),
        )

        # Act
        new_level = record.credit_experience(40, NOW)

        # Assert
        assert new_level == 2
        assert record.activity_log[0].kind is ActivityKind.LEVEL_UP
        assert record.activity_log[0].message == "Leveled up to 2!"
        assert record.activity_log[0].level == 2
        assert record.get_pending_events() == [LevelUp(new_level=2, total_experience=290)]

    def test_multi_level_jump_records_one_level_up(self):
        record = ProgressionRecord.create_default(NOW)

        record.credit_experience(3162, NOW)

        assert record.level == 10
        assert record.get_pending_events() == [LevelUp(new_level=10, total_experience=3162)]

    def test_spend_reduces_available_only(self):
        record = ProgressionRecord(
            total_experience=500,
            available_experience=500,
            last_active_at=NOW,
            missions_seeded_on=NOW.date(),
        )

        record.spend_experience(200)

        assert record.available_experience == 300
        assert record.total_experience == 500
        assert record.level == 2

    def test_spend_more_than_available_fails(self):
        record = ProgressionRecord(
            total_experience=100,
            available_experience=100,
            last_active_at=NOW,
            missions_seeded_on=NOW.date(),
        )

        with pytest.raises(DomainValidationError):
            record.spend_experience(101)
        assert record.available_experience == 100

    def test_idle_queue(self):
        record = ProgressionRecord.create_default(NOW)
        record.queue_idle_experience(30)
        record.queue_idle_experience(12)

        assert record.take_pending_idle_experience() == 42
        assert record.pending_idle_experience == 0.0


# ============================================================================
# STREAK
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestStreak:
    def test_first_activity_starts_streak(self):
        record = ProgressionRecord.create_default(NOW)

        assert record.update_streak(date(2025, 3, 10)) is True
        assert record.daily_streak == 1
        assert record.last_streak_date == date(2025, 3, 10)

    def test_same_day_is_unchanged(self):
        record = ProgressionRecord.create_default(NOW)
        record.update_streak(date(2025, 3, 10))

        assert record.update_streak(date(2025, 3, 10)) is False
        assert record.daily_streak == 1

    def test_consecutive_days_extend(self):
        record = ProgressionRecord.create_default(NOW)
        for offset in range(4):
            record.update_streak(date(2025, 3, 10) + timedelta(days=offset))

        assert record.daily_streak == 4
        assert record.last_streak_date == date(2025, 3, 13)

    def test_gap_resets_to_one(self):
        record = ProgressionRecord.create_default(NOW)
        record.update_streak(date(2025, 3, 10))
        record.update_streak(date(2025, 3, 11))

        record.update_streak(date(2025, 3, 14))

        assert record.daily_streak == 1
        assert record.last_streak_date == date(2025, 3, 14)


# ============================================================================
# MISSIONS
# ============================================================================


def _mission(mission_id="create_notes", target=3, reward=50, progress=0, claimed=False):
    return Mission(
        id=mission_id,
        title="Note Creator",
        description="Create 3 notes",
        target=target,
        reward=reward,
        progress=progress,
        claimed=claimed,
    )


@pytest.mark.unit
@pytest.mark.domain
class TestMissions:
    def test_advance_caps_at_target(self):
        mission = _mission(target=3)

        advanced = mission.advance(5)

        assert advanced.progress == 3
        assert advanced.is_complete
        assert mission.progress == 0

    def test_mission_rejects_progress_over_target(self):
        with pytest.raises(DomainValidationError):
            _mission(target=3, progress=4)

    def test_advance_mission_skips_claimed(self):
        record = ProgressionRecord.create_default(
            NOW, [_mission(progress=3, claimed=True)]
        )

        assert record.advance_mission("create_notes", 1) is None

    def test_advance_unknown_mission(self):
        record = ProgressionRecord.create_default(NOW, [_mission()])

        assert record.advance_mission("daily_login", 1) is None
        assert record.active_missions[0].progress == 0

    def test_mark_claimed(self):
        record = ProgressionRecord.create_default(NOW, [_mission(progress=3)])

        claimed = record.mark_mission_claimed("create_notes")

        assert claimed.claimed
        assert record.find_mission("create_notes").claimed

    def test_replace_missions(self):
        record = ProgressionRecord.create_default(NOW, [_mission(progress=2)])

        record.replace_missions([_mission("daily_login", target=1, reward=25)], date(2025, 3, 11))

        assert [m.id for m in record.active_missions] == ["daily_login"]
        assert record.missions_seeded_on == date(2025, 3, 11)


# ============================================================================
# SETTINGS, LOG & SNAPSHOT
# ============================================================================


@pytest.mark.unit
@pytest.mark.domain
class TestSettings:
    def test_partial_merge(self):
        settings = ForgeSettings().merged({"theme": "mindforge_dark", "sound_enabled": False})

        assert settings == ForgeSettings(
            theme="mindforge_dark",
            auto_collect=False,
            sound_enabled=False,
            notifications_enabled=True,
        )

    def test_unknown_key_rejected(self):
        with pytest.raises(DomainValidationError) as exc_info:
            ForgeSettings().merged({"volume": 11})

        assert exc_info.value.field == "volume"

    def test_wrong_type_rejected(self):
        with pytest.raises(DomainValidationError):
            ForgeSettings().merged({"sound_enabled": "yes"})

    def test_int_is_not_bool(self):
        with pytest.raises(DomainValidationError):
            ForgeSettings().merged({"auto_collect": 1})


@pytest.mark.unit
@pytest.mark.domain
class TestActivityLogAndSnapshot:
    def test_log_is_newest_first_and_capped(self):
        record = ProgressionRecord.create_default(NOW)

        for index in range(12):
            record.record_activity(
                ActivityLogEntry(NOW, ActivityKind.XP_EARNED, f"entry {index}", experience=index)
            )

        assert len(record.activity_log) == 10
        assert record.activity_log[0].message == "entry 11"
        assert record.activity_log[-1].message == "entry 2"

    def test_snapshot_does_not_alias_record(self):
        # Arrange
        record = ProgressionRecord.create_default(NOW, [_mission()])
        record.grant_upgrade("note_mastery_1")
        snapshot = record.to_snapshot()

        # Act
        record.grant_upgrade("small_furnace")
        record.unlock_theme("mindforge_dark")
        record.advance_mission("create_notes", 1)

        # Assert
        assert dict(snapshot.owned_upgrades) == {"note_mastery_1": True}
        assert snapshot.owned_themes == ("default",)
        assert snapshot.active_missions[0].progress == 0
        with pytest.raises(TypeError):
            snapshot.owned_upgrades["small_furnace"] = True  # type: ignore[index]

    def test_clone_is_deep_and_drops_events(self):
        record = ProgressionRecord.create_default(NOW)
        record.credit_experience(300, NOW)

        draft = record.clone()
        draft.grant_upgrade("note_mastery_1")

        assert draft.get_pending_events() == []
        assert record.owned_upgrades == {}
        assert record.get_pending_events() == [LevelUp(new_level=2, total_experience=300)]
