"""Shared helpers: error taxonomy and logging utilities."""
