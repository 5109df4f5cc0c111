"""Datetime helpers – UTC normalisation and Indonesian formatting."""

from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

HARI = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]
BULAN = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def assume_local(value: datetime, tz: str) -> datetime:
    """Naive times typed by a person are wall-clock time in ``tz``."""
    if value.tzinfo is None:
        return value.replace(tzinfo=ZoneInfo(tz))
    return value


def _local(value: datetime, tz: Optional[str]) -> datetime:
    value = as_utc(value)
    return value.astimezone(ZoneInfo(tz)) if tz else value


def format_long_datetime(value: datetime, tz: Optional[str] = None) -> str:
    """e.g. ``Sabtu, 12 Oktober 2024 pukul 19.00``."""
    local = _local(value, tz)
    return (
        f"{HARI[local.weekday()]}, {local.day} {BULAN[local.month - 1]} {local.year} "
        f"pukul {local:%H.%M}"
    )


def format_long_date(value: datetime, tz: Optional[str] = None) -> str:
    """e.g. ``Sabtu, 12 Oktober 2024``."""
    local = _local(value, tz)
    return f"{HARI[local.weekday()]}, {local.day} {BULAN[local.month - 1]} {local.year}"


def format_day_month(value: datetime, tz: Optional[str] = None) -> str:
    """e.g. ``Sabtu, 12 Oktober``."""
    local = _local(value, tz)
    return f"{HARI[local.weekday()]}, {local.day} {BULAN[local.month - 1]}"


def format_short_date(value: datetime, tz: Optional[str] = None) -> str:
    """e.g. ``12/10/2024``."""
    local = _local(value, tz)
    return f"{local.day}/{local.month}/{local.year}"


def format_time(value: datetime, tz: Optional[str] = None) -> str:
    """e.g. ``19.00``."""
    return f"{_local(value, tz):%H.%M}"
