"""StudyForge persistence schema."""
