"""
Time helpers.

Timestamps are stored as UTC-naive datetimes (SQLite has no timezone
support) and rendered to clients as ISO-8601 with a trailing "Z".
Promotion windows and "now" are compared in that same naive-UTC space.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2026-03-01T10:00:00Z", "...+02:00" or a bare local-less value (taken
    as UTC) -> UTC-naive datetime. Blank -> None; garbage raises ValueError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second precision, "Z" suffix. None passes through."""
    if dt is None:
        return None
    stamp = as_naive_utc(dt).replace(microsecond=0)
    return stamp.isoformat() + "Z"


def email_stamp(dt: Optional[datetime]) -> str:
    return as_naive_utc(dt or utcnow()).strftime("%Y-%m-%d %H:%M UTC")


def within_window(now: datetime, starts_at: Optional[datetime], ends_at: Optional[datetime]) -> bool:
    """Inclusive on both ends; a missing bound never matches."""
    if starts_at is None or ends_at is None:
        return False
    return as_naive_utc(starts_at) <= as_naive_utc(now) <= as_naive_utc(ends_at)
