from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Availability(str, Enum):
    available = "available"
    few_seats = "few-seats"
    sold_out = "sold-out"


class PriceTrend(str, Enum):
    rising = "rising"
    falling = "falling"
    stable = "stable"


# Labels the provider (and older dashboards) use for seat availability
_AVAILABILITY_LABELS: dict[str, Availability] = {
    "available": Availability.available,
    "disponibile": Availability.available,
    "few-seats": Availability.few_seats,
    "few seats": Availability.few_seats,
    "pochi posti": Availability.few_seats,
    "sold-out": Availability.sold_out,
    "sold out": Availability.sold_out,
    "esaurito": Availability.sold_out,
}


def coerce_price(value: Any) -> float:
    """Return a finite, non-negative price; anything else becomes 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        price = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(price) or price < 0:
        return 0.0
    return price


class SearchQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    origin: str = Field(..., min_length=1, alias="from")
    destination: str = Field(..., min_length=1, alias="to")
    date: str = Field(..., min_length=1)
    passengers: int = 1

    @field_validator("passengers", mode="before")
    @classmethod
    def _coerce_passengers(cls, value: Any) -> int:
        try:
            count = int(value)
        except (TypeError, ValueError):
            return 1
        return count if count >= 1 else 1


class CanonicalDateFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    date_prefix: str
    start_instant: datetime
    end_instant: datetime


class Offer(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    company: str = ""
    departure_date: str = ""
    departure_time: str = ""
    arrival_time: str = ""
    duration: str = ""
    price: float = 0.0
    train_type: str = ""
    changes: int = 0
    availability: Availability = Availability.available
    link: str | None = None
    departure: str = ""
    arrival: str = ""
    previous_price: float | None = None
    price_trend: PriceTrend | None = None

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value: Any) -> float:
        return coerce_price(value)

    @field_validator("changes", mode="before")
    @classmethod
    def _coerce_changes(cls, value: Any) -> int:
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0

    @field_validator("availability", mode="before")
    @classmethod
    def _normalize_availability(cls, value: Any) -> Availability:
        if isinstance(value, Availability):
            return value
        if isinstance(value, str):
            return _AVAILABILITY_LABELS.get(value.strip().lower(), Availability.available)
        return Availability.available

    @field_validator(
        "company", "departure_date", "departure_time", "arrival_time",
        "duration", "train_type", "departure", "arrival",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Recommendation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    best_offer: Offer
    reasoning: str = ""
    alternatives: list[Offer] = Field(default_factory=list)
    price_analysis: str = ""
    suggestion: str = ""

    @field_validator("alternatives", mode="after")
    @classmethod
    def _cap_alternatives(cls, value: list[Offer]) -> list[Offer]:
        return value[:3]


class SearchResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source: str = "live"
    offers: list[Offer]
    recommendation: Recommendation | None = None
    searched_at: datetime


class UserPreferences(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    max_price: float | None = None
    preferred_time: str | None = None
    max_changes: int | None = None
