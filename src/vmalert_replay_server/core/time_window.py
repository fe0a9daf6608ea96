"""Time-window helpers.

vmalert expects RFC 3339 timestamps for ``-replay.timeFrom``/``-replay.timeTo``.
Callers that accept looser input (CLI, MCP tool) convert here; the HTTP
endpoint forwards whatever the browser sent.
"""

from __future__ import annotations

from datetime import UTC, datetime


def parse_iso_dt(s: str) -> datetime:
    """Parse ISO8601 datetime. If tz is missing, assume UTC."""
    dt = datetime.fromisoformat(s.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_rfc3339(dt: datetime) -> str:
    """Render a UTC timestamp with millisecond precision and a ``Z`` suffix."""
    dt = dt.astimezone(UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def to_rfc3339(s: str) -> str:
    return format_rfc3339(parse_iso_dt(s))


def normalize_window(start: str, end: str) -> tuple[str, str]:
    """Convert both bounds to RFC 3339 and check ordering."""
    start_dt = parse_iso_dt(start)
    end_dt = parse_iso_dt(end)
    if start_dt >= end_dt:
        raise ValueError("start time must be before end time")
    return format_rfc3339(start_dt), format_rfc3339(end_dt)
