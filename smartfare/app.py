from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from .config import DEFAULT_SERVER_CONFIG
from .errors import MissingParameter, SmartfareError, StorageUnavailable
from .recommendations.orchestrator import DEFAULT_ORCHESTRATOR, RecommendationOrchestrator
from .search.models import SearchQuery, SearchResponse, UserPreferences
from .search.service import discover_trains, search_trains
from .search.stats import collection_stats, list_trains
from .storage.config import DEFAULT_STORAGE_CONFIG
from .storage.database import (
    connect_database,
    disconnect_database,
    get_collection,
    is_database_connected,
)

logger = logging.getLogger(__name__)

REQUIRED_SEARCH_FIELDS = ["from", "to", "date"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DEFAULT_STORAGE_CONFIG.configured:
        connect_database(DEFAULT_STORAGE_CONFIG)
    else:
        logger.warning("MONGODB_URI not set, POST /api/search will use AI offer discovery")
    yield
    disconnect_database()


app = FastAPI(title="SmartFare Train Search API", version="1.0.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(DEFAULT_SERVER_CONFIG.cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)


class SearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    origin: str | None = Field(default=None, alias="from")
    destination: str | None = Field(default=None, alias="to")
    date: str | None = None
    passengers: Any = 1
    preferences: UserPreferences | None = None


# ── Dependencies ─────────────────────────────────────────────────────────


def get_trains_collection() -> Collection:
    return get_collection(DEFAULT_STORAGE_CONFIG.collection)


def get_optional_collection() -> Collection | None:
    if not is_database_connected():
        return None
    return get_collection(DEFAULT_STORAGE_CONFIG.collection)


def get_orchestrator() -> RecommendationOrchestrator:
    return DEFAULT_ORCHESTRATOR


# ── Error handlers ───────────────────────────────────────────────────────


@app.exception_handler(SmartfareError)
def smartfare_error_handler(request: Request, exc: SmartfareError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc.__cause__)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(PyMongoError)
def storage_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    error = StorageUnavailable("Database non raggiungibile")
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Richiesta non valida", "message": "Parametri non validi"},
    )


@app.exception_handler(Exception)
def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ── Endpoints ────────────────────────────────────────────────────────────


@app.get("/")
def root() -> dict[str, str]:
    return {"service": app.title, "version": app.version}


@app.get("/api/health", response_model=SearchResponse)
def health(
    origin: str | None = Query(default=None, alias="from"),
    destination: str | None = Query(default=None, alias="to"),
    date: str | None = Query(default=None),
    collection: Collection = Depends(get_trains_collection),
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
) -> SearchResponse:
    query = SearchQuery(
        origin=origin or DEFAULT_SERVER_CONFIG.health_from,
        destination=destination or DEFAULT_SERVER_CONFIG.health_to,
        date=date or DEFAULT_SERVER_CONFIG.health_date,
    )
    logger.info("Health search: %s -> %s (%s)", query.origin, query.destination, query.date)
    return search_trains(query, collection, orchestrator)


@app.get("/api/health/db-stats")
def db_stats(collection: Collection = Depends(get_trains_collection)) -> dict:
    return collection_stats(collection, DEFAULT_STORAGE_CONFIG.database)


@app.get("/api/health/trains")
def trains(
    page: str | None = None,
    limit: str | None = None,
    collection: Collection = Depends(get_trains_collection),
) -> dict:
    return list_trains(collection, page, limit)


@app.post("/api/search", response_model=SearchResponse)
def search(
    body: SearchRequest,
    collection: Collection | None = Depends(get_optional_collection),
    orchestrator: RecommendationOrchestrator = Depends(get_orchestrator),
) -> SearchResponse:
    values = {"from": body.origin, "to": body.destination, "date": body.date}
    if any(not (v and v.strip()) for v in values.values()):
        raise MissingParameter(REQUIRED_SEARCH_FIELDS)

    query = SearchQuery(
        origin=body.origin.strip(),
        destination=body.destination.strip(),
        date=body.date.strip(),
        passengers=body.passengers,
    )
    logger.info("Search: %s -> %s (%s)", query.origin, query.destination, query.date)

    if collection is None:
        return discover_trains(query, orchestrator, preferences=body.preferences)
    return search_trains(
        query, collection, orchestrator, lenient=True, preferences=body.preferences,
    )
