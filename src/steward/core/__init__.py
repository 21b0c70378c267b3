"""Core primitives: errors, logging, settings, ORM and the migration engine."""
