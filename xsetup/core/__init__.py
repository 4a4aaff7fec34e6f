"""Core: configuration, models, observability, persistence and services."""
