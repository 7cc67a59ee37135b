"""
Forge Module - Progression Engine
=================================

Services
--------
- StudyForgeService: Transactional owner of the progression record
- IdleAccrualEngine: Folds time away into passive experience
- MissionScheduler: Daily mission selection and progress
- ProgressionStore / SqlProgressionStore: Durable record storage
"""

from .accrual import IdleAccrualEngine
from .missions import MissionScheduler
from .service import StudyForgeService
from .store import ProgressionStore, SqlProgressionStore

__all__ = [
    "StudyForgeService",
    "IdleAccrualEngine",
    "MissionScheduler",
    "ProgressionStore",
    "SqlProgressionStore",
]
