"""
StudyForge Test Suite
=====================

Test Organization
-----------------
- tests/unit/          : Fast unit tests (in-memory store, no database)
- tests/integration/   : Tests against a real SQLite database via aiosqlite

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test progression rules
- Integration tests: Exercise the SQLAlchemy store and DatabaseService
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
