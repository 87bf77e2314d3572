from __future__ import annotations

import logging
from datetime import datetime, timezone

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ..errors import StorageUnavailable
from ..recommendations.orchestrator import DEFAULT_ORCHESTRATOR, RecommendationOrchestrator
from .dates import normalize_date
from .filters import ROUTE_COLLATION, build_search_filter
from .mapper import map_record
from .models import Offer, SearchQuery, SearchResponse, UserPreferences

logger = logging.getLogger(__name__)


def find_offers(
    collection: Collection,
    query: SearchQuery,
    lenient: bool = False,
) -> list[Offer]:
    """Normalize the query, look it up and map every matching document."""
    date_filter = normalize_date(query.date, lenient=lenient)
    mongo_filter = build_search_filter(query.origin, query.destination, date_filter)

    try:
        records = list(collection.find(mongo_filter, collation=ROUTE_COLLATION))
    except PyMongoError as exc:
        logger.error("Train lookup failed for %s -> %s: %s", query.origin, query.destination, exc)
        raise StorageUnavailable("Database non raggiungibile") from exc

    logger.info(
        "Trains found for %s -> %s (%s): %d",
        query.origin, query.destination, date_filter.date_prefix, len(records),
    )
    return [map_record(r) for r in records]


def search_trains(
    query: SearchQuery,
    collection: Collection,
    orchestrator: RecommendationOrchestrator = DEFAULT_ORCHESTRATOR,
    lenient: bool = False,
    preferences: UserPreferences | None = None,
) -> SearchResponse:
    offers = find_offers(collection, query, lenient=lenient)
    return SearchResponse(
        offers=offers,
        recommendation=orchestrator.recommend(offers, preferences),
        searched_at=datetime.now(timezone.utc),
    )


def discover_trains(
    query: SearchQuery,
    orchestrator: RecommendationOrchestrator = DEFAULT_ORCHESTRATOR,
    preferences: UserPreferences | None = None,
) -> SearchResponse:
    """Same response shape, with offers enumerated by the AI provider."""
    date_filter = normalize_date(query.date, lenient=True)
    canonical = query.model_copy(update={"date": date_filter.date_prefix})
    offers = orchestrator.discover_offers(canonical)
    return SearchResponse(
        offers=offers,
        recommendation=orchestrator.recommend(offers, preferences),
        searched_at=datetime.now(timezone.utc),
    )
