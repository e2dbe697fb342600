"""Human-readable formatting helpers."""

import re

_UNITS = ['B', 'KB', 'MB', 'GB', 'TB']
_MULTIPLIERS = {unit: 1024 ** i for i, unit in enumerate(_UNITS)}
_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([KMGT]?B)?\s*$", re.IGNORECASE)


def format_bytes(size_bytes: int) -> str:
    """Format a byte count using binary units, e.g. ``1536 -> "1.50 KB"``."""
    if size_bytes <= 0:
        return "0 B"
    if size_bytes < 1024:
        return f"{int(size_bytes)} B"
    size = float(size_bytes)
    for unit in _UNITS[1:]:
        size /= 1024.0
        if size < 1024.0 or unit == _UNITS[-1]:
            return f"{size:.2f} {unit}"


def parse_bytes(size_string: str) -> int:
    """Parse ``"1.5 KB"`` style strings back to bytes; unparseable input is 0."""
    match = _SIZE_RE.match(size_string or "")
    if not match:
        return 0
    value = float(match.group(1))
    unit = (match.group(2) or "B").upper()
    return round(value * _MULTIPLIERS[unit])


def format_duration(milliseconds: float) -> str:
    """Format a duration given in milliseconds."""
    if milliseconds < 1000:
        return f"{int(milliseconds)}ms"
    seconds = milliseconds / 1000.0
    if seconds < 60:
        return f"{seconds:.1f}s"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    if hours > 0:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    return f"{minutes}m {secs:02d}s"
