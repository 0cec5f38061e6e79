"""Utility modules for logging and secret sanitization."""
