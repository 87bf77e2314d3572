from __future__ import annotations

import re
from typing import Any

from pymongo.collation import Collation, CollationStrength

from .models import CanonicalDateFilter

# Equality under this collation ignores case but keeps accents distinct
ROUTE_COLLATION = Collation(locale="en", strength=CollationStrength.SECONDARY)

ORIGIN_FIELDS = ("origin", "departure")
DESTINATION_FIELDS = ("destination", "arrival")


def _route_clause(fields: tuple[str, ...], name: str) -> dict[str, Any]:
    # Station names are compared as literals, never as patterns
    return {"$or": [{field: name.strip()} for field in fields]}


def date_prefix_pattern(date_prefix: str) -> str:
    """Match ``YYYY-MM-DD`` alone or followed by a time part."""
    return f"^{re.escape(date_prefix)}(?:$|T)"


def build_search_filter(
    origin: str,
    destination: str,
    date_filter: CanonicalDateFilter,
) -> dict[str, Any]:
    prefix = date_prefix_pattern(date_filter.date_prefix)
    return {
        "$and": [
            _route_clause(ORIGIN_FIELDS, origin),
            _route_clause(DESTINATION_FIELDS, destination),
            {
                "$or": [
                    {
                        "departureTime": {
                            "$gte": date_filter.start_instant,
                            "$lt": date_filter.end_instant,
                        }
                    },
                    {"departureTime": {"$regex": prefix}},
                    {"departureDate": {"$regex": prefix}},
                ]
            },
        ]
    }
