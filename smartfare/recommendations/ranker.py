from __future__ import annotations

import re

from ..search.models import Availability, Offer, Recommendation

_HOURS_RE = re.compile(r"(\d+)h")

FALLBACK_REASONING = (
    "Heuristic fallback: best value for money weighing price, travel time, "
    "number of changes and seat availability."
)
FALLBACK_SUGGESTION = (
    "Heuristic ranking, not AI-generated. Compare the alternatives against "
    "your own travel preferences."
)


def _duration_hours(duration: str) -> int:
    """Leading ``<N>h`` token of a duration string; minutes are ignored."""
    match = _HOURS_RE.search(duration or "")
    return int(match.group(1)) if match else 0


def score_offer(offer: Offer) -> float:
    score = 100.0
    score -= offer.price * 0.5
    score -= offer.changes * 10
    score -= _duration_hours(offer.duration) * 5
    if offer.availability == Availability.available:
        score += 20
    return score


def _format_euro(amount: float) -> str:
    return f"{amount:.2f}".rstrip("0").rstrip(".") + "€"


def rank_offers(offers: list[Offer]) -> Recommendation:
    """Deterministic best pick plus two alternatives, without external calls."""
    if not offers:
        raise ValueError("rank_offers() needs at least one offer")

    # sorted() is stable, so equal scores keep their input order
    ranked = sorted(offers, key=score_offer, reverse=True)
    prices = [o.price for o in offers]

    return Recommendation(
        best_offer=ranked[0],
        reasoning=FALLBACK_REASONING,
        alternatives=ranked[1:3],
        price_analysis=f"Prices from {_format_euro(min(prices))} to {_format_euro(max(prices))}",
        suggestion=FALLBACK_SUGGESTION,
    )
