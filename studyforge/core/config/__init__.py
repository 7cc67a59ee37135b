"""
StudyForge configuration.

- `Config`: static, environment-driven settings (python-dotenv).
- `ConfigManager` (in `studyforge.core.config.manager`): dot-notation access
  to YAML tunables. Not re-exported here because the manager logs through
  `studyforge.core.logging`, which itself reads `Config`.
"""

from studyforge.core.config.config import Config, Environment

__all__ = [
    "Config",
    "Environment",
]
