# Overview: UTC timestamps and the Sunday-first weekday labels used by sales reports.

from __future__ import annotations

from datetime import date, datetime, timezone


# Index 0 is Sunday, matching the weekly sales charts
DAY_NAMES = ("Dimanche", "Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi", "Samedi")
SHORT_DAY_NAMES = tuple(name[:3] for name in DAY_NAMES)


def utcnow() -> datetime:
    """Naive UTC now; every stored timestamp uses this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: str | None) -> datetime | None:
    """
    Parse a client-supplied date or datetime into naive UTC.

    Accepts "2026-10-12", "2026-10-12T18:30", a trailing "Z" or an explicit
    offset. Blank input gives None; anything else unparseable raises
    ValueError.
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    if text[-1] in "zZ":
        text = f"{text[:-1]}+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(moment: datetime | None) -> str | None:
    """Second-precision ISO-8601 with a "Z" suffix; naive input is taken as UTC."""
    if moment is None:
        return None
    stamp = _as_naive_utc(moment).replace(microsecond=0)
    return f"{stamp.isoformat()}Z"


def weekday_index(moment: date) -> int:
    """0 = Sunday ... 6 = Saturday."""
    return moment.isoweekday() % 7


def day_name(index: int, *, short: bool = False) -> str:
    return (SHORT_DAY_NAMES if short else DAY_NAMES)[index]
