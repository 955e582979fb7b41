"""Shared helpers: logging, errors, settings, validation and caching."""
