"""Shared helpers: safe background tasks and port selection."""
