"""
Application Context (Kernel) - StudyForge Infrastructure Orchestration
======================================================================

Purpose
-------
Central composition root that initializes and shuts down the StudyForge
subsystems in dependency order.

Responsibilities
----------------
- Configure structured logging
- Initialize ConfigManager
- Create the EventBus
- Initialize DatabaseService and the SQL record store
- Create and initialize StudyForgeService
- Coordinate graceful shutdown in reverse order
- Provide structured lifecycle logging with timing
- Aggregate a health report

Non-Responsibilities
--------------------
- Progression rules (delegated to StudyForgeService)
- Persistence mapping (delegated to SqlProgressionStore)

Initialization Order (Critical):
    1. Logging
    2. ConfigManager
    3. EventBus
    4. DatabaseService + SqlProgressionStore
    5. StudyForgeService (loads or creates the record)

Shutdown Order (Reverse):
    1. EventBus.clear()
    2. DatabaseService.shutdown()
    3. Logging queue listener

Usage
-----
    context = ForgeContext()
    await context.initialize()
    await context.forge.award_experience(50, "Study session")
    await context.shutdown()
"""

from __future__ import annotations

import random
import time
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from studyforge.core.config.config import Config
from studyforge.core.config.manager import ConfigManager
from studyforge.core.database.service import DatabaseService
from studyforge.core.event.bus import EventBus
from studyforge.core.logging.logger import (
    get_logger,
    get_logging_health,
    setup_logging,
    shutdown_logging,
)
from studyforge.modules.forge.service import Clock, StudyForgeService
from studyforge.modules.forge.store import SqlProgressionStore

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNHEALTHY = "UNHEALTHY"


class ForgeContext:
    """
    Kernel for StudyForge wiring.

    Args:
        database_url: Overrides Config.DATABASE_URL
        config_overrides: Highest-precedence ConfigManager values
        clock: Time source for the engine (UTC)
        rng: Random source for mission selection
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        config_overrides: Optional[Mapping[str, Any]] = None,
        *,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        configure_logging: bool = True,
    ) -> None:
        self._database_url = database_url
        self._config_overrides = config_overrides
        self._clock = clock
        self._rng = rng
        self._configure_logging = configure_logging

        self._config_manager: Optional[ConfigManager] = None
        self._event_bus: Optional[EventBus] = None
        self._database: Optional[DatabaseService] = None
        self._forge: Optional[StudyForgeService] = None
        self._initialized = False

        logger.debug("ForgeContext created")

    # ========================================================================
    # INITIALIZATION
    # ========================================================================

    async def initialize(self) -> None:
        """
        Initialize all components in dependency order.

        Raises:
            RuntimeError: If already initialized or initialization fails
        """
        if self._initialized:
            raise RuntimeError("ForgeContext already initialized")

        if self._configure_logging:
            setup_logging()

        logger.info("=" * 70)
        logger.info("FORGE CONTEXT INITIALIZATION")
        logger.info("=" * 70)

        start_time = time.perf_counter()

        try:
            Config.ensure_directories()

            # Step 1: ConfigManager
            step_start = time.perf_counter()
            self._config_manager = ConfigManager(overrides=self._config_overrides)
            self._config_manager.initialize()
            logger.info(
                "✓ ConfigManager initialized (%.2fms)",
                (time.perf_counter() - step_start) * 1000,
            )

            # Step 2: EventBus
            self._event_bus = EventBus(self._config_manager)

            # Step 3: Database
            step_start = time.perf_counter()
            self._database = DatabaseService(self._database_url)
            await self._database.initialize()
            logger.info(
                "✓ DatabaseService initialized (%.2fms)",
                (time.perf_counter() - step_start) * 1000,
            )

            # Step 4: Forge engine
            step_start = time.perf_counter()
            self._forge = StudyForgeService(
                SqlProgressionStore(self._database),
                self._config_manager,
                self._event_bus,
                get_logger("studyforge.modules.forge.service"),
                clock=self._clock,
                rng=self._rng,
            )
            await self._forge.initialize()
            logger.info(
                "✓ StudyForgeService initialized (%.2fms)",
                (time.perf_counter() - step_start) * 1000,
            )

            self._initialized = True
            logger.info("=" * 70)
            logger.info("✓ Forge context initialized successfully")
            logger.info("  Total time: %.2fms", (time.perf_counter() - start_time) * 1000)
            logger.info("=" * 70)

        except Exception as exc:
            logger.critical(
                "Forge context initialization failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            await self._emergency_shutdown()
            raise RuntimeError("Failed to initialize forge context") from exc

    # ========================================================================
    # GRACEFUL SHUTDOWN
    # ========================================================================

    async def shutdown(self) -> None:
        """Shut down all components in reverse dependency order."""
        if not self._initialized:
            logger.warning("ForgeContext not initialized, nothing to shut down")
            return

        logger.info("=" * 70)
        logger.info("FORGE CONTEXT SHUTDOWN")
        logger.info("=" * 70)

        if self._event_bus is not None:
            self._event_bus.clear()
            logger.info("✓ EventBus cleared")

        if self._database is not None:
            try:
                await self._database.shutdown()
                logger.info("✓ DatabaseService shut down")
            except Exception as exc:
                logger.error(
                    "Error shutting down database",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )

        self._initialized = False
        self._forge = None
        logger.info("✓ Forge context shutdown complete")

        if self._configure_logging:
            shutdown_logging()

    async def _emergency_shutdown(self) -> None:
        """Best-effort cleanup when initialization fails partway through."""
        logger.warning("Performing emergency shutdown")

        if self._database is not None:
            try:
                await self._database.shutdown()
            except Exception as exc:
                logger.debug(
                    "Database shutdown failed during emergency shutdown",
                    extra={"error": str(exc)},
                )

        self._forge = None

    # ========================================================================
    # HEALTH
    # ========================================================================

    async def health_check(self) -> Dict[str, Any]:
        """
        Aggregate component health. Never raises.

        The database is critical (UNHEALTHY when down); a degraded logging
        pipeline or an uninitialized engine only degrades the report.
        """
        components: Dict[str, Dict[str, Any]] = {}

        database_ok = self._database is not None and await self._database.health_check()
        components["database"] = {
            "status": (HealthStatus.HEALTHY if database_ok else HealthStatus.UNHEALTHY).value,
            "metrics": self._database.metrics.get_summary() if self._database else {},
        }

        logging_health = get_logging_health()
        logging_ok = logging_health.listener_errors == 0 and logging_health.records_dropped == 0
        components["logging"] = {
            "status": (HealthStatus.HEALTHY if logging_ok else HealthStatus.DEGRADED).value,
            "initialized": logging_health.initialized,
            "records_dropped": logging_health.records_dropped,
        }

        forge_ok = self._forge is not None and self._forge.is_initialized
        components["forge"] = {
            "status": (HealthStatus.HEALTHY if forge_ok else HealthStatus.DEGRADED).value,
        }

        components["event_bus"] = {
            "status": HealthStatus.HEALTHY.value,
            "metrics": self._event_bus.get_metrics_summary() if self._event_bus else {},
        }

        statuses = {component["status"] for component in components.values()}
        if HealthStatus.UNHEALTHY.value in statuses:
            overall = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED.value in statuses:
            overall = HealthStatus.DEGRADED
        else:
            overall = HealthStatus.HEALTHY

        return {"status": overall.value, "components": components}

    # ========================================================================
    # PROPERTIES
    # ========================================================================

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def forge(self) -> StudyForgeService:
        if self._forge is None:
            raise RuntimeError("ForgeContext not initialized")
        return self._forge

    @property
    def event_bus(self) -> EventBus:
        if self._event_bus is None:
            raise RuntimeError("ForgeContext not initialized")
        return self._event_bus

    @property
    def config_manager(self) -> ConfigManager:
        if self._config_manager is None:
            raise RuntimeError("ForgeContext not initialized")
        return self._config_manager

    @property
    def database(self) -> DatabaseService:
        if self._database is None:
            raise RuntimeError("ForgeContext not initialized")
        return self._database
