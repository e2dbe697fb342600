"""Utility functions for tidy organizer."""

from .format import format_bytes, format_duration, parse_bytes

__all__ = ["format_bytes", "parse_bytes", "format_duration"]
