from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


# ---------------- Time helpers ----------------

def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(dt: datetime) -> str:
    """
    Render a timestamp as RFC 3339 with microseconds, e.g.
    '2025-09-24T13:02:11.123456+00:00'. Naive datetimes are taken as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat(timespec="microseconds")


# ---------------- Formatting helpers ----------------

def fmt_ms(v: Optional[float]) -> str:
    return f"{v:.1f}" if v is not None else "-"


def round_ms(v: float) -> float:
    # microsecond resolution is plenty for log records
    return round(v, 3)
