"""
ConfigManager: YAML-backed tunable configuration for StudyForge.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable engine values.
- Back configuration with packaged YAML defaults, an optional directory of
  operator YAML files, and programmatic overrides (highest precedence).
- Track lightweight read metrics for observability.

Key Design Decisions
--------------------
- Packaged `defaults/*.yaml` is the single source of **defaults**.
- `Config.CONFIG_DIR` (if set) is deep-merged on top, then `overrides`.
- Instances are independent; the application context owns exactly one.
- Missing PyYAML files or malformed YAML never abort startup: the engine's
  constants remain the last-resort fallback.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional

import yaml

from studyforge.core.config.config import Config
from studyforge.core.logging.logger import get_logger

logger = get_logger(__name__)

DEFAULTS_DIR = Path(__file__).resolve().parent / "defaults"

_MISSING = object()


@dataclass(slots=True)
class ConfigMetrics:
    gets: int = 0
    hits: int = 0
    misses: int = 0
    yaml_files_loaded: int = 0
    yaml_errors: int = 0


class ConfigManager:
    """
    Tunable configuration with dot-notation access.

    Examples
    --------
    >>> manager = ConfigManager(overrides={"forge": {"idle": {"max_seconds": 60}}})
    >>> manager.initialize()
    >>> manager.get_int("forge.idle.max_seconds", 86400)
    60
    """

    def __init__(
        self,
        config_dir: Optional[Path] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        *,
        include_packaged_defaults: bool = True,
    ) -> None:
        self._config_dir = config_dir if config_dir is not None else Config.CONFIG_DIR
        self._overrides: Dict[str, Any] = copy.deepcopy(dict(overrides or {}))
        self._include_packaged_defaults = include_packaged_defaults
        self._cache: Dict[str, Any] = {}
        self._initialized = False
        self._metrics = ConfigMetrics()

    # =========================================================================
    # LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(target: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
        """Recursively merge `source` into `target` in place."""
        for key, value in source.items():
            existing = target.get(key)
            if isinstance(existing, MutableMapping) and isinstance(value, Mapping):
                ConfigManager._deep_merge_dict(existing, value)
            else:
                target[key] = copy.deepcopy(value)

    def _load_yaml_dir(self, config_dir: Path) -> None:
        """Deep-merge every YAML file under `config_dir` into the cache."""
        if not config_dir.exists():
            logger.warning(
                "Config directory not found; skipping",
                extra={"config_dir": str(config_dir)},
            )
            return

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        for yaml_file in yaml_files:
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                self._metrics.yaml_errors += 1
                logger.warning(
                    "Failed to load YAML config",
                    extra={
                        "file": str(yaml_file),
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                continue

            if isinstance(data, dict):
                self._deep_merge_dict(self._cache, data)
                self._metrics.yaml_files_loaded += 1
                logger.debug("Loaded YAML config", extra={"file": str(yaml_file)})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": str(yaml_file), "root_type": type(data).__name__},
                )

    def initialize(self) -> None:
        """Load defaults, operator YAML and overrides (idempotent)."""
        if self._initialized:
            return

        self._cache = {}
        if self._include_packaged_defaults:
            self._load_yaml_dir(DEFAULTS_DIR)
        if self._config_dir is not None:
            self._load_yaml_dir(Path(self._config_dir))
        self._deep_merge_dict(self._cache, self._overrides)

        self._initialized = True
        logger.info(
            "ConfigManager initialized",
            extra={
                "yaml_file_count": self._metrics.yaml_files_loaded,
                "top_level_keys": sorted(self._cache.keys()),
                "override_count": len(self._overrides),
            },
        )

    # =========================================================================
    # READS
    # =========================================================================

    def _resolve(self, key: str) -> Any:
        node: Any = self._cache
        for part in key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Lazily initializes from defaults when accessed before initialize().
        """
        if not self._initialized:
            logger.warning("ConfigManager accessed before explicit initialization")
            self.initialize()

        self._metrics.gets += 1
        value = self._resolve(key)
        if value is _MISSING:
            self._metrics.misses += 1
            return default

        self._metrics.hits += 1
        return copy.deepcopy(value)

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning(
                "Config value is not numeric; using default",
                extra={"config_key": key, "value": repr(value), "default_value": default},
            )
            return default
        return int(value)

    def get_bool(self, key: str, default: bool) -> bool:
        value = self.get(key, default)
        if not isinstance(value, bool):
            logger.warning(
                "Config value is not boolean; using default",
                extra={"config_key": key, "value": repr(value), "default_value": default},
            )
            return default
        return value

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "gets": self._metrics.gets,
            "hits": self._metrics.hits,
            "misses": self._metrics.misses,
            "yaml_files_loaded": self._metrics.yaml_files_loaded,
            "yaml_errors": self._metrics.yaml_errors,
        }
