"""
Core infrastructure layer for StudyForge.

Purpose
-------
A single import surface for the infrastructure subsystems:

- Configuration (Config, ConfigManager)
- Database subsystem (DatabaseService)
- Event bus (EventBus)
- Logging (structured logging, logger factory)
- Infrastructure exceptions

Design Decisions
----------------
- Thin: no logic, no configuration, no I/O beyond what the submodules do
  on import.
- The composition root lives in `studyforge.core.infra` and is not
  re-exported here; it depends on the feature modules.
"""

from __future__ import annotations

from studyforge.core.config import Config
from studyforge.core.config.manager import ConfigManager
from studyforge.core.database.service import DatabaseService
from studyforge.core.event import EventBus
from studyforge.core.exceptions import (
    ConfigurationError,
    DatabaseInitializationError,
    DatabaseNotInitializedError,
    PersistenceError,
    StudyForgeInfrastructureException,
)
from studyforge.core.logging import get_logger, setup_logging

__all__ = [
    # Configuration
    "Config",
    "ConfigManager",
    # Database
    "DatabaseService",
    # Events
    "EventBus",
    # Logging
    "setup_logging",
    "get_logger",
    # Infrastructure Exceptions
    "StudyForgeInfrastructureException",
    "ConfigurationError",
    "PersistenceError",
    "DatabaseInitializationError",
    "DatabaseNotInitializedError",
]
