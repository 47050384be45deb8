"""Shared helpers: logging and blocking HTTP."""
