"""Feature modules for StudyForge (shared foundations and the forge engine)."""
