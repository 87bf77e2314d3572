"""
Offer mapper.

Stored train documents come from two historical schemas (``origin`` /
``destination`` and ``departure`` / ``arrival``) with loosely-typed values.
Each logical attribute is resolved through an ordered list of candidate
field names; the first present value wins.
"""
from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Any, Mapping

from .models import Availability, Offer, PriceTrend, coerce_price

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "departure": ("origin", "departure"),
    "arrival": ("destination", "arrival"),
    "departure_at": ("departureTime", "departureDate"),
    "arrival_at": ("arrivalTime", "arrivalDate"),
    "price": ("priceEUR", "price"),
    "previous_price": ("previousPriceEUR", "previousPrice"),
    "duration_text": ("duration",),
    "duration_minutes": ("durationMin", "duration"),
    "seats": ("seatsAvailable",),
    "company": ("company",),
    "train_type": ("trainType",),
    "changes": ("changes",),
    "link": ("link",),
}

FEW_SEATS_THRESHOLD = 10

_DATETIME_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2})")
_DATE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})$")
_TIME_RE = re.compile(r"^(\d{2}:\d{2})")


def resolve(record: Mapping[str, Any], attribute: str, default: Any = None) -> Any:
    for field in FIELD_ALIASES[attribute]:
        value = record.get(field)
        if value is not None and value != "":
            return value
    return default


def extract_datetime_parts(value: Any) -> tuple[str, str]:
    """Split an ISO string or datetime into ``(YYYY-MM-DD, HH:MM)``."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime("%Y-%m-%d"), value.strftime("%H:%M")
    if isinstance(value, str):
        match = _DATETIME_RE.match(value)
        if match:
            return match.group(1), match.group(2)
        match = _DATE_RE.match(value)
        if match:
            return match.group(1), ""
    return "", ""


def _split_fields(record: Mapping[str, Any], combined: str, date_field: str) -> tuple[str, str]:
    day, clock = extract_datetime_parts(resolve(record, combined))
    if not day:
        day, _ = extract_datetime_parts(record.get(date_field))
    if not clock:
        # Split-field documents keep a bare "HH:MM" in the time field
        raw_time = record.get(FIELD_ALIASES[combined][0])
        if isinstance(raw_time, str):
            match = _TIME_RE.match(raw_time)
            if match:
                clock = match.group(1)
    return day, clock


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def format_duration(minutes: Any = None, text: Any = None) -> str:
    if isinstance(text, str) and text.strip():
        return text
    if _is_number(minutes):
        total = int(minutes)
        return f"{total // 60}h {total % 60}min"
    return ""


def map_availability(seats: Any) -> Availability:
    if not _is_number(seats):
        return Availability.available
    if seats <= 0:
        return Availability.sold_out
    if seats <= FEW_SEATS_THRESHOLD:
        return Availability.few_seats
    return Availability.available


def _parse_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def price_trend(current: Any, previous: Any) -> PriceTrend | None:
    now = _parse_number(current)
    before = _parse_number(previous)
    if now is None or before is None:
        return None
    if now > before:
        return PriceTrend.rising
    if now < before:
        return PriceTrend.falling
    return PriceTrend.stable


def map_record(record: Mapping[str, Any]) -> Offer:
    """Build a normalized ``Offer`` from one stored train document."""
    departure_date, departure_time = _split_fields(record, "departure_at", "departureDate")
    _, arrival_time = _split_fields(record, "arrival_at", "arrivalDate")

    raw_price = resolve(record, "price")
    raw_previous = resolve(record, "previous_price")
    previous = _parse_number(raw_previous)

    link = resolve(record, "link")

    return Offer(
        company=str(resolve(record, "company", "")),
        departure_date=departure_date,
        departure_time=departure_time,
        arrival_time=arrival_time,
        duration=format_duration(
            resolve(record, "duration_minutes"),
            resolve(record, "duration_text"),
        ),
        price=coerce_price(raw_price),
        train_type=str(resolve(record, "train_type", "")),
        changes=resolve(record, "changes", 0),
        availability=map_availability(resolve(record, "seats")),
        link=str(link) if link is not None else None,
        departure=str(resolve(record, "departure", "")),
        arrival=str(resolve(record, "arrival", "")),
        previous_price=previous,
        price_trend=price_trend(raw_price, raw_previous),
    )
