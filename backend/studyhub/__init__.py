"""StudyHub backend package."""
