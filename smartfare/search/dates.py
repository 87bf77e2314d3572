from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone

import pandas as pd

from ..errors import InvalidDate
from .models import CanonicalDateFilter

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DAY_FIRST_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")
_HAS_DIGIT = re.compile(r"\d")


def _strict_date(value: str) -> date | None:
    iso = _ISO_RE.match(value)
    if iso:
        year, month, day = iso.groups()
    else:
        day_first = _DAY_FIRST_RE.match(value)
        if not day_first:
            return None
        day, month, year = day_first.groups()
    try:
        return date(int(year), int(month), int(day))
    except ValueError:
        return None


def _generic_date(value: str) -> date | None:
    """Best-effort parse for anything outside the two accepted formats."""
    # pandas resolves words like "now" or "today" against the server clock
    if not _HAS_DIGIT.search(value):
        return None
    parsed = pd.to_datetime(value, errors="coerce", dayfirst=True)
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


def day_window(day: date) -> CanonicalDateFilter:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return CanonicalDateFilter(
        date_prefix=day.isoformat(),
        start_instant=start,
        end_instant=start + timedelta(days=1),
    )


def normalize_date(value: str | None, lenient: bool = False) -> CanonicalDateFilter:
    """
    Resolve a user-supplied date into a half-open UTC day window.

    ``YYYY-MM-DD`` and ``DD/MM/YYYY`` are always accepted. With ``lenient``
    any other string goes through a generic parser first. Raises
    ``InvalidDate`` when no calendar day can be derived.
    """
    raw = (value or "").strip()
    if not raw:
        raise InvalidDate(value)

    day = _strict_date(raw)
    if day is None and lenient:
        day = _generic_date(raw)
    if day is None:
        raise InvalidDate(value)

    return day_window(day)
