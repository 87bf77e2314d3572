from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from pymongo.collection import Collection

from .mapper import map_record, resolve

MAX_PAGE_SIZE = 100
TOP_ROUTES_LIMIT = 10
SAMPLE_SIZE = 5

# Group on whichever naming convention the document uses
_TOP_ROUTES_PIPELINE: list[dict[str, Any]] = [
    {
        "$group": {
            "_id": {
                "origin": {"$ifNull": ["$origin", "$departure"]},
                "destination": {"$ifNull": ["$destination", "$arrival"]},
            },
            "count": {"$sum": 1},
        }
    },
    {"$sort": {"count": -1}},
    {"$limit": TOP_ROUTES_LIMIT},
]


def _sample(record: dict[str, Any]) -> dict[str, Any]:
    departure_time = resolve(record, "departure_at")
    if isinstance(departure_time, datetime):
        departure_time = departure_time.isoformat()
    return {
        "origin": resolve(record, "departure"),
        "destination": resolve(record, "arrival"),
        "departureTime": departure_time,
        "company": record.get("company"),
        "price": resolve(record, "price"),
    }


def collection_stats(collection: Collection, database_name: str) -> dict[str, Any]:
    total = collection.estimated_document_count()
    top_routes = [
        {"from": r["_id"].get("origin"), "to": r["_id"].get("destination"), "count": r["count"]}
        for r in collection.aggregate(_TOP_ROUTES_PIPELINE)
    ]
    samples = [_sample(t) for t in collection.find({}).limit(SAMPLE_SIZE)]

    return {
        "database": database_name,
        "collection": collection.name,
        "stats": {
            "totalTrains": total,
            "topRoutes": top_routes,
            "sampleTrains": samples,
        },
    }


def clamp_pagination(page: Any, limit: Any) -> tuple[int, int]:
    """Coerce ``page >= 1`` and ``1 <= limit <= 100``; junk falls back to defaults."""
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = 20
    return max(1, page), min(MAX_PAGE_SIZE, max(1, limit))


def list_trains(collection: Collection, page: Any = 1, limit: Any = 20) -> dict[str, Any]:
    page, limit = clamp_pagination(page, limit)
    total = collection.count_documents({})
    cursor = collection.find({}).sort("_id", 1).skip((page - 1) * limit).limit(limit)
    trains = [map_record(t).model_dump(mode="json", by_alias=True) for t in cursor]

    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if total else 0,
        "trains": trains,
    }
