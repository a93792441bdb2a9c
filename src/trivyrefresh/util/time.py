from __future__ import annotations

from datetime import UTC, datetime

from dateutil import parser as dtparser


def now_utc() -> datetime:
    return datetime.now(UTC)


def parse_rfc3339(value: str) -> datetime:
    # isoparse truncates fractions past microseconds, which covers Go's RFC3339Nano output
    dt = dtparser.isoparse(value.strip())
    if dt.tzinfo is None:
        raise ValueError(f"timestamp {value!r} has no UTC offset")
    return dt


def format_rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat().replace("+00:00", "Z")
