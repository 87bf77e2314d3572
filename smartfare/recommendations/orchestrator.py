from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from ..errors import MalformedProviderResponse, RecommendationUnavailable
from ..llm.config import DEFAULT_LLM_CONFIG, LLMConfig
from ..llm.groq_client import generate_with_fallback
from ..llm.parsing import extract_json_block
from ..search.models import Offer, Recommendation, SearchQuery, UserPreferences
from .ranker import rank_offers

logger = logging.getLogger(__name__)

RECOMMENDATION_PROMPT = """\
You are an expert train travel consultant. Analyse these offers and recommend one.

AVAILABLE OFFERS:
{offers}

USER PREFERENCES:
{preferences}

Reply with a JSON object in exactly this format:
{{
  "bestOffer": <the best offer, copied from the list above>,
  "reasoning": "why this is the best choice",
  "alternatives": [<2-3 other valid offers from the list>],
  "priceAnalysis": "price analysis and comparison between the offers",
  "suggestion": "final advice: when to buy, what to consider"
}}

Consider value for money, travel time, number of changes, availability and
the user preferences. Reply ONLY with valid JSON."""

DISCOVERY_PROMPT = """\
Find train tickets in Italy for:

- From: {origin}
- To: {destination}
- Date: {date}
- Passengers: {passengers}

Look for offers from every Italian rail operator: Trenitalia (Frecciarossa,
Frecciargento, Frecciabianca, Intercity, Regionale), Italo, Trenord and other
regional operators. Include both cheap and premium options.

Return a JSON array sorted by departure time, one object per offer:
{{
  "company": "operator name",
  "departureTime": "HH:MM",
  "arrivalTime": "HH:MM",
  "duration": "Xh Ymin",
  "price": <number, euro>,
  "trainType": "Frecciarossa / Italo / Regionale ...",
  "changes": <number of changes>,
  "availability": "available / few-seats / sold-out",
  "link": "purchase URL if known"
}}

Reply ONLY with a valid JSON array."""


def _parse_recommendation(text: str) -> Recommendation:
    data = extract_json_block(text, "{")
    try:
        return Recommendation.model_validate(data)
    except ValidationError as exc:
        raise MalformedProviderResponse("recommendation JSON has the wrong shape") from exc


def _parse_offer_list(text: str) -> list[dict[str, Any]]:
    data = extract_json_block(text, "[")
    return [item for item in data if isinstance(item, dict)]


class RecommendationOrchestrator:
    """AI recommendations with ordered model fallback and a heuristic safety net."""

    def __init__(self, config: LLMConfig = DEFAULT_LLM_CONFIG) -> None:
        self.config = config

    def recommend(
        self,
        offers: list[Offer],
        preferences: UserPreferences | None = None,
    ) -> Recommendation | None:
        """
        Best offer plus alternatives for ``offers``.

        Returns ``None`` when there is nothing to recommend. Provider failures
        are never raised; the heuristic ranker answers instead.
        """
        if not offers:
            return None

        prompt = RECOMMENDATION_PROMPT.format(
            offers=json.dumps(
                [o.model_dump(mode="json", by_alias=True, exclude_none=True) for o in offers],
                indent=2,
                ensure_ascii=False,
            ),
            preferences=(
                preferences.model_dump_json(by_alias=True, exclude_none=True)
                if preferences
                else "No specific preference"
            ),
        )

        try:
            return generate_with_fallback(prompt, _parse_recommendation, self.config)
        except RecommendationUnavailable:
            logger.warning(
                "AI recommendation unavailable, falling back to heuristic ranking",
                exc_info=True,
            )
            return rank_offers(offers)

    def discover_offers(self, query: SearchQuery) -> list[Offer]:
        """Ask the provider to enumerate offers for a route; ``[]`` on failure."""
        prompt = DISCOVERY_PROMPT.format(
            origin=query.origin,
            destination=query.destination,
            date=query.date,
            passengers=query.passengers,
        )

        try:
            items = generate_with_fallback(prompt, _parse_offer_list, self.config)
        except RecommendationUnavailable:
            logger.warning("AI offer discovery failed", exc_info=True)
            return []

        defaults = {
            "departure": query.origin,
            "arrival": query.destination,
            "departureDate": query.date,
        }
        offers: list[Offer] = []
        for item in items:
            provided = {k: v for k, v in item.items() if v not in (None, "")}
            try:
                offers.append(Offer.model_validate({**defaults, **provided}))
            except ValidationError:
                logger.debug("Dropping malformed offer from provider: %r", item)
        return offers


DEFAULT_ORCHESTRATOR = RecommendationOrchestrator()
