"""Formatting helpers for the settings table."""

from typing import Final

UNIT_STEP: Final = 1024
SIZE_UNITS: Final = ("B", "KB", "MB")


def format_size(size: float) -> str:
    """Format a byte count with a binary unit, e.g. ``"1.5 KB"``.

    Anything of a gigabyte or more is shown in GB.
    """
    for unit in SIZE_UNITS:
        if size < UNIT_STEP:
            return f"{size:.1f} {unit}"
        size /= UNIT_STEP
    return f"{size:.1f} GB"


def format_rate(chunk_size: int, delay_ms: int) -> str:
    """Describe the ceiling a throttled direction can sustain.

    Args:
        chunk_size: Bytes written per throttled chunk
        delay_ms: Pause after each chunk in milliseconds

    Returns:
        str: e.g. ``"10.0 KB/s"``, or ``"unlimited"`` when there is no pause
    """
    if delay_ms <= 0:
        return "unlimited"
    return f"{format_size(chunk_size * 1000 / delay_ms)}/s"
