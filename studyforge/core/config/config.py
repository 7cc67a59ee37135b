"""
Static configuration management for StudyForge.

Purpose
-------
Process-level settings read once from the environment (and a `.env` file)
at import time: deployment environment, logging switches, directories and
the database connection. Bad values never abort startup; they fall back to
the default and are recorded in the load report.

Non-Responsibilities
--------------------
- Progression tunables (ConfigManager and the packaged YAML defaults)
- Runtime changes (call `Config.load()` again to re-read the environment)

Environment Variables
---------------------
All optional:
- ENVIRONMENT: development | testing | staging | production (default: development)
- DEBUG: Debug mode flag (default: False)
- LOG_LEVEL: Logging level name (default: INFO)
- LOG_JSON: Force JSON console logs on or off (default: production only)
- LOG_COLORS: Colored console logs in development (default: True)
- LOG_TO_FILE: Enable the daily rotating JSON log file (default: False)
- LOGS_DIR / DATA_DIR: Log and database directories (default: <project>/logs, <project>/data)
- DATABASE_URL: Async SQLAlchemy URL (default: SQLite file in DATA_DIR through aiosqlite)
- DATABASE_ECHO: Echo SQL statements (default: False)
- DATABASE_POOL_SIZE / DATABASE_MAX_OVERFLOW: Pool sizing for server databases
- CONFIG_DIR: Directory of YAML files merged over the packaged tunables
"""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from dotenv import load_dotenv

load_dotenv()

T = TypeVar("T")

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        >>> Environment.from_string("PRODUCTION") is Environment.PRODUCTION
        True
        >>> Environment.from_string("qa") is Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            # Runs before setup_logging(); goes to the root logger as-is.
            logging.warning("Unknown ENVIRONMENT %r; using development", value)
            return cls.DEVELOPMENT


@dataclass
class ConfigLoadReport:
    """Where each setting came from during the last `Config.load()`."""

    from_environment: List[str] = field(default_factory=list)
    from_defaults: List[str] = field(default_factory=list)
    rejected: Dict[str, str] = field(default_factory=dict)

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.from_environment) + len(self.from_defaults),
            "from_environment": len(self.from_environment),
            "from_defaults": len(self.from_defaults),
            "validation_errors": len(self.rejected),
            "defaults_used": list(self.from_defaults),
        }


def _parse_bool(raw: str) -> bool:
    word = raw.strip().lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    raise ValueError("expected one of true/false, yes/no, on/off, 1/0")


def _bounded_int(low: int, high: int) -> Callable[[str], int]:
    def parse(raw: str) -> int:
        value = int(raw)
        if not low <= value <= high:
            raise ValueError(f"must be between {low} and {high}")
        return value

    return parse


class Config:
    """
    Static settings for StudyForge, populated by `load()`.

    Usage
    -----
    >>> engine_url = Config.DATABASE_URL
    >>> if Config.is_testing():
    ...     ...
    """

    _report: ConfigLoadReport = ConfigLoadReport()

    ENVIRONMENT: str = Environment.DEVELOPMENT.value
    DEBUG: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_TO_FILE: bool = False

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    DATA_DIR: Path = PROJECT_ROOT / "data"
    CONFIG_DIR: Optional[Path] = None

    DATABASE_URL: str = ""
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10

    @classmethod
    def _read(cls, key: str, default: T, parse: Callable[[str], T]) -> T:
        """
        Environment value for `key` parsed with `parse`, or `default` when the
        variable is unset, empty or rejected by the parser.
        """
        raw = os.getenv(key)
        if raw is None or raw == "":
            cls._report.from_defaults.append(key)
            return default

        try:
            value = parse(raw)
        except ValueError as exc:
            reason = f"{key}={raw!r} rejected ({exc}); using {default!r}"
            logging.warning(reason)
            cls._report.rejected[key] = reason
            cls._report.from_defaults.append(key)
            return default

        cls._report.from_environment.append(key)
        return value

    @classmethod
    def load(cls) -> None:
        """Re-read every setting from the environment."""
        cls._report = ConfigLoadReport()

        cls.ENVIRONMENT = Environment.from_string(
            cls._read("ENVIRONMENT", Environment.DEVELOPMENT.value, str)
        ).value
        cls.DEBUG = cls._read("DEBUG", False, _parse_bool)

        cls.LOG_LEVEL = cls._read("LOG_LEVEL", "INFO", str).upper()
        cls.LOG_JSON = cls._read("LOG_JSON", None, _parse_bool)
        cls.LOG_COLORS = cls._read("LOG_COLORS", True, _parse_bool)
        cls.LOG_TO_FILE = cls._read("LOG_TO_FILE", False, _parse_bool)

        def as_path(raw: str) -> Path:
            return Path(raw).expanduser()

        cls.LOGS_DIR = cls._read("LOGS_DIR", cls.PROJECT_ROOT / "logs", as_path)
        cls.DATA_DIR = cls._read("DATA_DIR", cls.PROJECT_ROOT / "data", as_path)
        cls.CONFIG_DIR = cls._read("CONFIG_DIR", None, as_path)

        cls.DATABASE_URL = cls._read(
            "DATABASE_URL", f"sqlite+aiosqlite:///{cls.DATA_DIR / 'studyforge.db'}", str
        )
        cls.DATABASE_ECHO = cls._read("DATABASE_ECHO", False, _parse_bool)
        cls.DATABASE_POOL_SIZE = cls._read("DATABASE_POOL_SIZE", 5, _bounded_int(1, 200))
        cls.DATABASE_MAX_OVERFLOW = cls._read("DATABASE_MAX_OVERFLOW", 10, _bounded_int(0, 200))

    @classmethod
    def ensure_directories(cls) -> None:
        """Create LOGS_DIR, and DATA_DIR when the database file lives there."""
        cls.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        if cls.DATABASE_URL.startswith("sqlite") and str(cls.DATA_DIR) in cls.DATABASE_URL:
            cls.DATA_DIR.mkdir(parents=True, exist_ok=True)

    @classmethod
    def is_production(cls) -> bool:
        return cls.ENVIRONMENT == Environment.PRODUCTION.value

    @classmethod
    def is_testing(cls) -> bool:
        return cls.ENVIRONMENT == Environment.TESTING.value

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """Non-secret settings for startup logs."""
        return {
            "environment": cls.ENVIRONMENT,
            "debug": cls.DEBUG,
            "log_level": cls.LOG_LEVEL,
            "database_scheme": cls.DATABASE_URL.split(":", 1)[0],
            "config_dir": str(cls.CONFIG_DIR) if cls.CONFIG_DIR else None,
            "load_metrics": cls._report.get_summary(),
        }


Config.load()
