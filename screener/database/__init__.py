"""Persistence layer: settings, database manager, models and repositories."""
