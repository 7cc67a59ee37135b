"""
Database Models Package
=======================

SQLAlchemy ORM models for StudyForge. Schema only, no business logic.
Importing this package registers every table on `Base.metadata`.
"""

from studyforge.core.database.base import Base

from .progression import ProgressionRow

__all__ = [
    "Base",
    "ProgressionRow",
]
