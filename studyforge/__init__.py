"""
StudyForge: a gamified study-progression engine.

Experience, levels, additive multipliers, purchasable upgrades with
prerequisites, daily missions, streaks and idle accrual over a single
durable record. Application code normally goes through
`studyforge.core.infra.ForgeContext`, which wires configuration, logging,
the event bus, the database and the StudyForgeService together.
"""

__version__ = "1.0.0"
