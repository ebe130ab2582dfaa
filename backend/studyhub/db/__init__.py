"""Database models, metadata and session factory."""
