from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from smartfare.app import app, get_optional_collection, get_orchestrator, get_trains_collection
from smartfare.errors import InvalidDate, StorageUnavailable
from smartfare.llm.config import LLMConfig
from smartfare.recommendations.orchestrator import RecommendationOrchestrator
from smartfare.recommendations.ranker import rank_offers
from smartfare.search.dates import normalize_date
from smartfare.search.filters import ROUTE_COLLATION
from smartfare.search.models import Availability, SearchQuery
from smartfare.search.service import discover_trains, search_trains

client = TestClient(app)

HEURISTIC_ONLY = RecommendationOrchestrator(LLMConfig(api_key="", models=("model-a",)))
FAILING_AI = RecommendationOrchestrator(
    LLMConfig(api_key="test-key", models=("model-a", "model-b"), enabled=True)
)

TORINO_MILANO = {
    "origin": "Torino",
    "destination": "Milano",
    "departureTime": "2026-03-01T08:15:00.000Z",
    "arrivalTime": "2026-03-01T09:20:00.000Z",
    "durationMin": 65,
    "priceEUR": 45,
    "seatsAvailable": 3,
    "company": "Trenitalia",
    "trainType": "Frecciarossa",
    "changes": 0,
}

TORINO_MILANO_REGIONAL = {
    "departure": "Torino",
    "arrival": "Milano",
    "departureDate": "2026-03-01",
    "departureTime": "06:40",
    "duration": "1h 55min",
    "price": 12.5,
    "company": "Trenitalia",
    "trainType": "Regionale",
    "changes": 1,
}


def _collection(*records):
    collection = MagicMock()
    collection.find.return_value = list(records)
    return collection


@pytest.fixture
def collection():
    coll = _collection(TORINO_MILANO)
    app.dependency_overrides[get_trains_collection] = lambda: coll
    app.dependency_overrides[get_optional_collection] = lambda: coll
    app.dependency_overrides[get_orchestrator] = lambda: HEURISTIC_ONLY
    yield coll
    app.dependency_overrides.clear()


@pytest.fixture
def no_database():
    app.dependency_overrides[get_optional_collection] = lambda: None
    app.dependency_overrides[get_orchestrator] = lambda: HEURISTIC_ONLY
    yield
    app.dependency_overrides.clear()


# ── Query service ────────────────────────────────────────────────────────


class TestQueryService:
    QUERY = SearchQuery(origin="Torino", destination="Milano", date="2026-03-01")

    def test_single_matching_record(self):
        response = search_trains(self.QUERY, _collection(TORINO_MILANO), HEURISTIC_ONLY)

        assert len(response.offers) == 1
        offer = response.offers[0]
        assert offer.price == 45
        assert offer.availability == Availability.few_seats
        assert response.source == "live"
        assert response.recommendation.best_offer == offer

    def test_lookup_uses_filter_and_collation(self):
        coll = _collection()
        search_trains(self.QUERY, coll, HEURISTIC_ONLY)

        args, kwargs = coll.find.call_args
        assert kwargs["collation"] is ROUTE_COLLATION
        assert args[0]["$and"][0]["$or"][0] == {"origin": "Torino"}

    def test_both_schemas_are_mapped(self):
        response = search_trains(
            self.QUERY, _collection(TORINO_MILANO, TORINO_MILANO_REGIONAL), HEURISTIC_ONLY
        )
        assert [o.train_type for o in response.offers] == ["Frecciarossa", "Regionale"]
        assert response.offers[1].departure == "Torino"
        assert response.offers[1].departure_time == "06:40"

    def test_day_first_date_builds_same_filter(self):
        iso, day_first = _collection(), _collection()
        search_trains(self.QUERY, iso, HEURISTIC_ONLY)
        search_trains(self.QUERY.model_copy(update={"date": "01/03/2026"}), day_first, HEURISTIC_ONLY)
        assert iso.find.call_args == day_first.find.call_args

    def test_invalid_date_never_touches_storage(self):
        coll = _collection()
        with pytest.raises(InvalidDate):
            search_trains(self.QUERY.model_copy(update={"date": "2026/03/01"}), coll, HEURISTIC_ONLY)
        coll.find.assert_not_called()

    def test_empty_result_has_no_recommendation(self):
        response = search_trains(self.QUERY, _collection(), HEURISTIC_ONLY)
        assert response.offers == []
        assert response.recommendation is None

    def test_storage_failure_is_wrapped(self):
        coll = MagicMock()
        coll.find.side_effect = ServerSelectionTimeoutError("no servers")
        with pytest.raises(StorageUnavailable):
            search_trains(self.QUERY, coll, HEURISTIC_ONLY)

    @patch("smartfare.llm.groq_client.Groq")
    def test_ai_failure_falls_back_to_ranker(self, mock_groq_cls):
        mock_groq_cls.return_value.chat.completions.create.side_effect = Exception("quota exceeded")

        response = search_trains(
            self.QUERY, _collection(TORINO_MILANO, TORINO_MILANO_REGIONAL), FAILING_AI
        )

        assert response.recommendation == rank_offers(response.offers)
        assert "heuristic" in response.recommendation.reasoning.lower()
        assert mock_groq_cls.return_value.chat.completions.create.call_count == 2

    @pytest.mark.parametrize(
        "price, previous, trend",
        [(80, 60, "rising"), (60, 80, "falling"), (70, 70, "stable")],
    )
    def test_price_trend_is_reported(self, price, previous, trend):
        record = {**TORINO_MILANO, "priceEUR": None, "price": price, "previousPrice": previous}
        response = search_trains(self.QUERY, _collection(record), HEURISTIC_ONLY)
        assert response.offers[0].price_trend.value == trend

    def test_discovery_uses_canonical_date(self):
        orchestrator = MagicMock()
        orchestrator.discover_offers.return_value = []
        orchestrator.recommend.return_value = None

        response = discover_trains(self.QUERY.model_copy(update={"date": "01/03/2026"}), orchestrator)

        query = orchestrator.discover_offers.call_args.args[0]
        assert query.date == normalize_date("2026-03-01").date_prefix
        assert response.offers == []
        assert response.recommendation is None


# ── GET /api/health ──────────────────────────────────────────────────────


def test_health_search_returns_offers(collection):
    resp = client.get("/api/health", params={"from": "Torino", "to": "Milano", "date": "2026-03-01"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["source"] == "live"
    assert "searchedAt" in body
    assert len(body["offers"]) == 1
    offer = body["offers"][0]
    assert offer["price"] == 45
    assert offer["availability"] == "few-seats"
    assert offer["departureTime"] == "08:15"
    assert offer["trainType"] == "Frecciarossa"
    assert body["recommendation"]["bestOffer"]["company"] == "Trenitalia"


def test_health_search_uses_default_route(collection):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    collection.find.assert_called_once()


def test_health_rejects_invalid_date(collection):
    resp = client.get("/api/health", params={"date": "2026-13-45"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Data non valida", "expected": "YYYY-MM-DD oppure DD/MM/YYYY"}
    collection.find.assert_not_called()


def test_health_storage_failure_is_safe_500(collection):
    collection.find.side_effect = PyMongoError("connection reset by peer at 10.0.0.7")

    resp = client.get("/api/health")

    assert resp.status_code == 500
    body = resp.json()
    assert body["error"] == "Errore durante la ricerca"
    assert "10.0.0.7" not in resp.text


def test_health_without_database_connection():
    resp = client.get("/api/health")
    assert resp.status_code == 500
    assert resp.json()["error"] == "Errore durante la ricerca"


# ── POST /api/search ─────────────────────────────────────────────────────


def test_search_missing_field_is_rejected(collection):
    resp = client.post("/api/search", json={"from": "Torino", "date": "2026-03-01"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Parametri mancanti", "required": ["from", "to", "date"]}
    collection.find.assert_not_called()


@pytest.mark.parametrize("body", [{}, {"from": " ", "to": "Milano", "date": "2026-03-01"}])
def test_search_blank_fields_are_rejected(collection, body):
    resp = client.post("/api/search", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"] == "Parametri mancanti"


def test_search_non_object_body_is_400(collection):
    resp = client.post("/api/search", json=["Torino", "Milano"])
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_search_queries_database(collection):
    resp = client.post(
        "/api/search",
        json={"from": "torino", "to": "MILANO", "date": "01/03/2026", "passengers": "2"},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["offers"][0]["price"] == 45
    assert body["recommendation"]["bestOffer"]["availability"] == "few-seats"
    route_clause = collection.find.call_args.args[0]["$and"][0]
    assert route_clause["$or"][0] == {"origin": "torino"}


def test_search_accepts_generic_date_format(collection):
    resp = client.post(
        "/api/search",
        json={"from": "Torino", "to": "Milano", "date": "2026-03-01T08:00:00"},
    )
    assert resp.status_code == 200
    collection.find.assert_called_once()


def test_search_rejects_unparseable_date(collection):
    resp = client.post("/api/search", json={"from": "Torino", "to": "Milano", "date": "someday"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Data non valida"
    collection.find.assert_not_called()


def test_search_without_database_uses_ai_discovery(no_database):
    resp = client.post("/api/search", json={"from": "Torino", "to": "Milano", "date": "2026-03-01"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["offers"] == []
    assert body["recommendation"] is None


def test_root_banner():
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["service"] == "SmartFare Train Search API"


def test_search_rejects_clock_relative_date(collection):
    resp = client.post("/api/search", json={"from": "Torino", "to": "Milano", "date": "today"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Data non valida"
    collection.find.assert_not_called()
