"""Utilities: configuration and logging."""
