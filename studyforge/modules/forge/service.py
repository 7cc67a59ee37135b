"""
StudyForge Service - Progression Transaction Engine
===================================================

Purpose
-------
The single owner of the live ProgressionRecord. Every mutating operation
is an all-or-nothing transaction against it.

Domain
------
- Initialize: load or create the record, fold in idle time, reseed missions
- Award experience (streak, additive multipliers, level-up, mission progress)
- Purchase upgrades (catalog, prerequisites, cost, effect application)
- Claim completed missions (multiplier-exempt rewards)
- Update settings
- Collect idle experience
- Publish state transitions on the EventBus

Transaction Model
-----------------
1. Ensure the engine is initialized (operations self-initialize)
2. Take the transaction lock; no two transactions interleave
3. Mutate a deep copy of the live record (the draft)
4. Persist the draft; a failed write raises PersistenceError and the live
   record is left untouched
5. Swap the draft in as the live record and release the lock
6. Publish the draft's domain events, in order, before returning

Handlers therefore observe committed state and may call back into the
service. Precondition failures (unknown id, already owned, missing
prerequisite, insufficient experience, unclaimable mission) are raised as
domain exceptions inside the transaction and translated to False / 0 here.
Argument errors raise ValidationError to the caller.

Known limitation: the store is assumed to have a single writer. Two
processes sharing one database are not coordinated.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, List, Mapping, Optional, TypeVar

from studyforge.core.exceptions import PersistenceError
from studyforge.core.logging.logger import LogContext, get_logger
from studyforge.domain.models.base import DomainValidationError
from studyforge.domain.models.events import (
    ExperienceAwarded,
    MissionCompleted,
    SettingsChanged,
    UpgradePurchased,
)
from studyforge.domain.models.progression import (
    ActivityKind,
    ActivityLogEntry,
    ForgeSettings,
    Mission,
    ProgressionRecord,
    ProgressionSnapshot,
)
from studyforge.modules.forge.accrual import IdleAccrualEngine
from studyforge.modules.forge.missions import MissionScheduler
from studyforge.modules.shared.base_service import BaseService
from studyforge.modules.shared.catalog import (
    AutoCollectEffect,
    MultiplierEffect,
    PassiveRateEffect,
    ThemeUnlockEffect,
    UpgradeDefinition,
    UpgradeEffect,
    get_upgrade,
)
from studyforge.modules.shared.constants import (
    ACTIVITY_LOG_LIMIT,
    MAX_IDLE_SECONDS,
    STREAK_BOOSTER_THRESHOLD,
)
from studyforge.modules.shared.exceptions import (
    AlreadyOwnedError,
    InsufficientExperienceError,
    MissionNotClaimableError,
    NotFoundError,
    PrerequisiteNotMetError,
    StudyForgeDomainException,
    ValidationError,
)
from studyforge.modules.shared.formulas import (
    XPMultipliers,
    calculate_effective_experience,
    compute_multipliers,
)

if TYPE_CHECKING:
    from logging import Logger

    from studyforge.core.config.manager import ConfigManager
    from studyforge.core.event.bus import EventBus
    from studyforge.core.event.types import CallbackType, Unsubscribe
    from studyforge.modules.forge.store import ProgressionStore

T = TypeVar("T")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StudyForgeService(BaseService):
    """
    Progression engine over a single persisted record.

    Public Methods
    --------------
    - initialize() -> Load or create the record; idempotent
    - get_snapshot() -> Immutable copy of the live record (None before init)
    - award_experience() -> Credit experience through the multiplier
    - purchase_upgrade() -> Buy a catalog upgrade
    - claim_mission() -> Collect a completed mission's reward
    - update_settings() -> Shallow-merge settings
    - collect_idle_experience() -> Convert idle accrual into experience
    - seed_daily_missions() -> Draw a fresh set of daily missions
    - subscribe() -> Register an event handler
    """

    def __init__(
        self,
        store: ProgressionStore,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Optional[Logger] = None,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger or get_logger(__name__))

        self._store = store
        self._clock = clock or utc_now

        self._log_limit = self._capped_setting("forge.activity_log.max_entries", ACTIVITY_LOG_LIMIT)
        self._booster_threshold = config_manager.get_int(
            "forge.streak.booster_threshold", STREAK_BOOSTER_THRESHOLD
        )
        self._accrual = IdleAccrualEngine(
            max_idle_seconds=self._capped_setting("forge.idle.max_seconds", MAX_IDLE_SECONDS),
            log_limit=self._log_limit,
        )
        self._missions = MissionScheduler(rng)

        self._record: Optional[ProgressionRecord] = None
        self._init_lock = asyncio.Lock()
        self._transaction_lock = asyncio.Lock()

    def _capped_setting(self, key: str, ceiling: int) -> int:
        """
        Configured limit for `key`, never above `ceiling`.

        Zero or negative values fall back to `ceiling`; larger values are
        lowered to it.
        """
        configured = self._config.get_int(key, ceiling)
        if configured <= 0:
            self.log.warning(
                "Config limit must be positive; using default",
                extra={"config_key": key, "value": configured, "default_value": ceiling},
            )
            return ceiling
        if configured > ceiling:
            self.log.warning(
                "Config limit above maximum; capping",
                extra={"config_key": key, "value": configured, "default_value": ceiling},
            )
            return ceiling
        return configured

    @property
    def is_initialized(self) -> bool:
        return self._record is not None

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def initialize(self) -> ProgressionSnapshot:
        """
        Load or create the record, reconcile idle time and reseed missions.

        Runs once per service instance; later calls return the current
        snapshot. Concurrent callers wait for the first to finish.

        Raises:
            PersistenceError: If the store cannot be read or written
        """
        if self._record is not None:
            return self._record.to_snapshot()

        async with self._init_lock:
            if self._record is not None:
                return self._record.to_snapshot()

            async with LogContext(component="forge", operation="initialize"):
                now = self._now()
                loaded = await self._store.load()

                if loaded is None:
                    draft = ProgressionRecord.create_default(now, self._missions.seed())
                    self.log.info("Created new progression record")
                else:
                    draft = loaded

                credited = self._accrual.reconcile(draft, now)
                reseeded = self._missions.reseed_if_needed(draft, now.date())

                await self._store.save(draft)
                self._record = draft
                events = draft.clear_domain_events()

                self.log_operation(
                    "initialize",
                    new_record=loaded is None,
                    level=draft.level,
                    total_experience=draft.total_experience,
                    idle_credited=credited,
                    missions_reseeded=reseeded,
                )

        await self.emit_events(events)
        return draft.to_snapshot()

    async def _run_transaction(
        self,
        operation: str,
        mutate: Callable[[ProgressionRecord, datetime], T],
    ) -> T:
        await self.initialize()

        async with self._transaction_lock:
            assert self._record is not None
            now = self._now()
            draft = self._record.clone()

            result = mutate(draft, now)

            try:
                await self._store.save(draft)
            except PersistenceError as exc:
                self.log_error(operation, exc)
                raise
            self._record = draft
            events = draft.clear_domain_events()

        self.log.debug(
            "Transaction committed",
            extra={"operation": operation, "event_count": len(events)},
        )
        await self.emit_events(events)
        return result

    # ========================================================================
    # READS
    # ========================================================================

    def get_snapshot(self) -> Optional[ProgressionSnapshot]:
        """Immutable copy of the live record, or None before initialization."""
        if self._record is None:
            return None
        return self._record.to_snapshot()

    def get_multipliers(self) -> Optional[XPMultipliers]:
        """Current multiplier breakdown, or None before initialization."""
        if self._record is None:
            return None
        return compute_multipliers(
            self._record.owned_upgrades,
            self._record.daily_streak,
            booster_threshold=self._booster_threshold,
        )

    @staticmethod
    def get_upgrade(upgrade_id: str) -> Optional[UpgradeDefinition]:
        return get_upgrade(upgrade_id)

    def can_purchase_upgrade(self, upgrade_id: str) -> bool:
        """Whether `purchase_upgrade(upgrade_id)` would succeed right now."""
        if self._record is None:
            return False
        try:
            self.check_purchase(self._record, upgrade_id)
        except StudyForgeDomainException:
            return False
        return True

    def subscribe(self, handler: CallbackType) -> Unsubscribe:
        """Register `handler` for every progression event."""
        return self._events.subscribe(handler)

    def seed_daily_missions(self, rng: Optional[random.Random] = None) -> List[Mission]:
        """Three distinct missions drawn uniformly from the pool."""
        return self._missions.seed(rng)

    # ========================================================================
    # AWARD EXPERIENCE
    # ========================================================================

    async def award_experience(
        self,
        base_amount: int,
        reason: str,
        mission_id: Optional[str] = None,
    ) -> int:
        """
        Credit experience through the current multiplier.

        Returns:
            The effective amount credited

        Raises:
            ValidationError: If base_amount is not a positive int, or
                reason / mission_id are not strings
            PersistenceError: If the record cannot be saved
        """
        self.validate_positive_int(base_amount, "base_amount")
        if not isinstance(reason, str):
            raise ValidationError("reason", f"reason must be a string, got {reason!r}")
        if mission_id is not None:
            self.validate_identifier(mission_id, "mission_id")

        def mutate(draft: ProgressionRecord, now: datetime) -> int:
            draft.update_streak(now.date())

            multipliers = compute_multipliers(
                draft.owned_upgrades,
                draft.daily_streak,
                booster_threshold=self._booster_threshold,
            )
            effective = calculate_effective_experience(base_amount, multipliers.total)

            draft.credit_experience(effective, now, log_limit=self._log_limit)
            draft.record_activity(
                ActivityLogEntry(
                    timestamp=now,
                    kind=ActivityKind.XP_EARNED,
                    message=f"{reason} (+{effective} XP)",
                    experience=effective,
                ),
                limit=self._log_limit,
            )
            MissionScheduler.record_award(draft, effective, mission_id)
            draft.touch(now)

            draft.add_domain_event(
                ExperienceAwarded(requested=base_amount, effective=effective, reason=reason)
            )
            return effective

        async with LogContext(component="forge", operation="award_experience"):
            effective = await self._run_transaction("award_experience", mutate)
            self.log_operation(
                "award_experience",
                base_amount=base_amount,
                effective=effective,
                reason=reason,
                mission_id=mission_id,
            )
        return effective

    # ========================================================================
    # UPGRADES
    # ========================================================================

    @staticmethod
    def check_purchase(record: ProgressionRecord, upgrade_id: str) -> UpgradeDefinition:
        """
        Resolve `upgrade_id` and verify it can be bought with `record`.

        Raises:
            NotFoundError: Unknown upgrade
            AlreadyOwnedError: Upgrade already owned
            PrerequisiteNotMetError: A required upgrade is not owned
            InsufficientExperienceError: Available experience below cost
        """
        upgrade = get_upgrade(upgrade_id)
        if upgrade is None:
            raise NotFoundError("Upgrade", upgrade_id)
        if record.owns_upgrade(upgrade.id):
            raise AlreadyOwnedError(upgrade.id)
        for required in upgrade.requires:
            if not record.owns_upgrade(required):
                raise PrerequisiteNotMetError(upgrade.id, required)
        if record.available_experience < upgrade.cost:
            raise InsufficientExperienceError(upgrade.cost, record.available_experience)
        return upgrade

    @staticmethod
    def apply_upgrade_effect(record: ProgressionRecord, effect: UpgradeEffect) -> None:
        """
        Apply the immediate part of an effect. Multiplier and auto-collect
        effects are read from owned upgrades when needed.
        """
        if isinstance(effect, PassiveRateEffect):
            record.add_passive_rate(effect.value)
        elif isinstance(effect, ThemeUnlockEffect):
            record.unlock_theme(effect.theme_id)
        elif isinstance(effect, (MultiplierEffect, AutoCollectEffect)):
            return
        else:
            raise TypeError(f"Unknown upgrade effect: {effect!r}")

    async def purchase_upgrade(self, upgrade_id: str) -> bool:
        """
        Buy an upgrade from the catalog.

        Returns:
            True on success; False (and no state change) when the upgrade is
            unknown, owned, missing a prerequisite or unaffordable

        Raises:
            ValidationError: If upgrade_id is not a non-empty string
            PersistenceError: If the record cannot be saved
        """
        self.validate_identifier(upgrade_id, "upgrade_id")

        def mutate(draft: ProgressionRecord, now: datetime) -> UpgradeDefinition:
            upgrade = self.check_purchase(draft, upgrade_id)

            draft.spend_experience(upgrade.cost)
            draft.grant_upgrade(upgrade.id)
            self.apply_upgrade_effect(draft, upgrade.effect)
            draft.record_activity(
                ActivityLogEntry(
                    timestamp=now,
                    kind=ActivityKind.UPGRADE_PURCHASED,
                    message=f"Purchased {upgrade.name}",
                ),
                limit=self._log_limit,
            )
            draft.touch(now)

            draft.add_domain_event(UpgradePurchased(upgrade_id=upgrade.id, name=upgrade.name))
            return upgrade

        async with LogContext(component="forge", operation="purchase_upgrade"):
            try:
                upgrade = await self._run_transaction("purchase_upgrade", mutate)
            except StudyForgeDomainException as exc:
                self.log.warning(
                    "Upgrade purchase rejected",
                    extra={"upgrade_id": upgrade_id, "error": exc.to_dict()},
                )
                return False

            self.log_operation(
                "purchase_upgrade",
                upgrade_id=upgrade.id,
                cost=upgrade.cost,
            )
        return True

    # ========================================================================
    # MISSIONS
    # ========================================================================

    async def claim_mission(self, mission_id: str) -> int:
        """
        Collect a completed mission's reward. Rewards skip the multiplier.

        Returns:
            The reward credited; 0 (and no state change) when the mission is
            not active, already claimed or incomplete

        Raises:
            ValidationError: If mission_id is not a non-empty string
            PersistenceError: If the record cannot be saved
        """
        self.validate_identifier(mission_id, "mission_id")

        def mutate(draft: ProgressionRecord, now: datetime) -> int:
            mission = draft.find_mission(mission_id)
            if mission is None:
                raise NotFoundError("Mission", mission_id)
            if mission.claimed:
                raise MissionNotClaimableError(mission_id, "claimed")
            if not mission.is_complete:
                raise MissionNotClaimableError(mission_id, "incomplete")

            draft.mark_mission_claimed(mission_id)
            draft.credit_experience(mission.reward, now, log_limit=self._log_limit)
            draft.record_activity(
                ActivityLogEntry(
                    timestamp=now,
                    kind=ActivityKind.MISSION_COMPLETED,
                    message=f"Completed mission: {mission.title} (+{mission.reward} XP)",
                    experience=mission.reward,
                ),
                limit=self._log_limit,
            )
            draft.touch(now)

            draft.add_domain_event(MissionCompleted(mission_id=mission_id, reward=mission.reward))
            return mission.reward

        async with LogContext(component="forge", operation="claim_mission"):
            try:
                reward = await self._run_transaction("claim_mission", mutate)
            except StudyForgeDomainException as exc:
                self.log.warning(
                    "Mission claim rejected",
                    extra={"mission_id": mission_id, "error": exc.to_dict()},
                )
                return 0

            self.log_operation("claim_mission", mission_id=mission_id, reward=reward)
        return reward

    # ========================================================================
    # SETTINGS
    # ========================================================================

    async def update_settings(self, partial: Mapping[str, Any]) -> ForgeSettings:
        """
        Shallow-merge `partial` into the settings.

        Raises:
            ValidationError: On a non-mapping argument, unknown keys or values
                of the wrong type
            PersistenceError: If the record cannot be saved
        """
        if not isinstance(partial, Mapping):
            raise ValidationError("settings", f"settings must be a mapping, got {partial!r}")

        def mutate(draft: ProgressionRecord, now: datetime) -> ForgeSettings:
            try:
                settings = draft.apply_settings(partial)
            except DomainValidationError as exc:
                raise ValidationError(exc.field or "settings", str(exc)) from exc
            draft.touch(now)
            draft.add_domain_event(SettingsChanged(settings=settings))
            return settings

        async with LogContext(component="forge", operation="update_settings"):
            settings = await self._run_transaction("update_settings", mutate)
            self.log_operation("update_settings", changed_keys=sorted(partial))
        return settings

    # ========================================================================
    # IDLE EXPERIENCE
    # ========================================================================

    async def collect_idle_experience(self) -> int:
        """
        Fold elapsed time in, then empty the idle queue into real experience.

        Returns:
            Total experience credited by this call
        """

        def mutate(draft: ProgressionRecord, now: datetime) -> int:
            credited = self._accrual.reconcile(draft, now)
            return credited + self._accrual.collect_pending(draft, now)

        async with LogContext(component="forge", operation="collect_idle_experience"):
            collected = await self._run_transaction("collect_idle_experience", mutate)
            self.log_operation("collect_idle_experience", collected=collected)
        return collected
