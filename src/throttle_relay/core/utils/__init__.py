"""Utility functions and helpers."""

from throttle_relay.core.utils.utils import format_size, format_rate

__all__ = ["format_size", "format_rate"]
