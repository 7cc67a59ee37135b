"""
Infrastructure orchestration for StudyForge.

- ForgeContext: composition root wiring config, logging, events, database
  and the forge engine
- HealthStatus: HEALTHY / DEGRADED / UNHEALTHY
"""

from .application_context import ForgeContext, HealthStatus

__all__ = ["ForgeContext", "HealthStatus"]
