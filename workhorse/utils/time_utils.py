"""Time helpers. All timestamps in the core are timezone-aware UTC."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_ms(start: float, end: float) -> int:
    """Milliseconds between two time.monotonic() readings."""
    return max(0, int(round((end - start) * 1000)))
