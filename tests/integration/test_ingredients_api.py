"""
Integration tests for the Ingredients API.

Tests:
- Canonical list with search and limits
- Free-text normalization across matching tiers
- Normalization error codes and status mapping
- Admin-only normalization statistics
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models import NormalizationEvent, User
from app.services.ai_service import ServiceUnavailableError
from tests.factories import create_ingredient


@pytest.fixture
def catalog(db: Session):
    return {
        name: create_ingredient(db, name, aliases=aliases)
        for name, aliases in {
            "Tomatoes": ["marinara"],
            "Cheddar Cheese": [],
            "Bread": ["sourdough"],
            "Oat Milk": [],
            "100% Juice": [],
        }.items()
    }


class TestListIngredients:
    """Tests for GET /ingredients."""

    def test_public_and_sorted(self, client: TestClient, catalog):
        response = client.get("/ingredients")

        assert response.status_code == 200
        body = response.json()
        assert body["source"] == "canonical"
        names = [i["name"] for i in body["data"]]
        assert names == sorted(names)
        assert set(body["data"][0]) == {"id", "name"}

    def test_search_substring_case_insensitive(self, client: TestClient, catalog):
        body = client.get("/ingredients", params={"search": "MILK"}).json()

        assert [i["name"] for i in body["data"]] == ["Oat Milk"]

    def test_search_wildcards_are_literal(self, client: TestClient, catalog):
        body = client.get("/ingredients", params={"search": "%"}).json()

        assert [i["name"] for i in body["data"]] == ["100% Juice"]

    def test_limit(self, client: TestClient, catalog):
        body = client.get("/ingredients", params={"limit": 2}).json()

        assert len(body["data"]) == 2

    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 501}, {"search": ""}])
    def test_invalid_params(self, client: TestClient, params):
        response = client.get("/ingredients", params=params)

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "validation_error"


class TestNormalize:
    """Tests for POST /ingredients/normalize."""

    def test_requires_auth(self, client: TestClient):
        response = client.post("/ingredients/normalize", json={"raw_text": "tomatoes"})

        assert response.status_code == 401

    def test_deterministic_match(self, auth_client: TestClient, catalog):
        response = auth_client.post("/ingredients/normalize", json={"raw_text": "  marinara "})

        assert response.status_code == 200
        body = response.json()
        assert body["raw_text"] == "marinara"
        assert body["data"] == [
            {
                "ingredient_id": catalog["Tomatoes"].id,
                "name": "Tomatoes",
                "match_confidence": 1.0,
                "match_method": "deterministic",
            }
        ]

    def test_fuzzy_match(self, auth_client: TestClient, catalog):
        body = auth_client.post("/ingredients/normalize", json={"raw_text": "cheddar"}).json()

        assert body["data"][0]["name"] == "Cheddar Cheese"
        assert body["data"][0]["match_method"] == "fuzzy"
        assert 0.5 <= body["data"][0]["match_confidence"] < 1.0

    def test_llm_match(self, ai_client: TestClient, mock_claude_service, catalog):
        mock_claude_service.set_match_ingredients_response(
            [{"token": "baguette", "ingredient": "Bread", "confidence": 0.85}]
        )

        body = ai_client.post("/ingredients/normalize", json={"raw_text": "baguette"}).json()

        assert body["data"][0]["name"] == "Bread"
        assert body["data"][0]["match_method"] == "llm"
        assert len(mock_claude_service.calls["match_ingredients"]) == 1

    def test_llm_outage_gives_422(self, ai_client: TestClient, mock_claude_service, catalog):
        mock_claude_service.set_error(ServiceUnavailableError("down"))

        response = ai_client.post("/ingredients/normalize", json={"raw_text": "baguette"})

        assert response.status_code == 422
        assert response.json()["error"]["details"] == {"code": "INSUFFICIENT_CONFIDENCE"}

    def test_no_match_without_llm(self, auth_client: TestClient, catalog):
        response = auth_client.post("/ingredients/normalize", json={"raw_text": "quinoa"})

        assert response.status_code == 422
        assert response.json()["error"]["type"] == "business_logic_error"

    @pytest.mark.parametrize("raw_text", ["", "   ", "x" * 101, "12345", "2 cups of"])
    def test_bad_input_gives_400(self, auth_client: TestClient, catalog, raw_text):
        response = auth_client.post("/ingredients/normalize", json={"raw_text": raw_text})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "validation_error"
        assert error["details"][0]["field"] == "raw_text"

    def test_missing_body_field(self, auth_client: TestClient):
        response = auth_client.post("/ingredients/normalize", json={})

        assert response.status_code == 400

    def test_each_call_recorded(
        self, auth_client: TestClient, test_user: User, db: Session, catalog
    ):
        auth_client.post("/ingredients/normalize", json={"raw_text": "2 slices of bread"})
        auth_client.post("/ingredients/normalize", json={"raw_text": "quinoa"})

        events = db.query(NormalizationEvent).order_by(NormalizationEvent.id).all()
        assert [(e.pattern, e.method, e.match_count, e.error_code) for e in events] == [
            ("NUM slices STOP bread", "deterministic", 1, None),
            ("quinoa", "none", 0, "INSUFFICIENT_CONFIDENCE"),
        ]
        assert all(e.user_id == test_user.id for e in events)
        assert all(e.processing_time_ms >= 0 for e in events)


class TestNormalizationStats:
    """Tests for GET /ingredients/stats."""

    def test_requires_auth(self, client: TestClient):
        response = client.get("/ingredients/stats")

        assert response.status_code == 401
        assert response.json()["error"]["type"] == "authorization_error"

    def test_requires_admin(self, auth_client: TestClient):
        response = auth_client.get("/ingredients/stats")

        assert response.status_code == 403
        assert response.json()["error"]["type"] == "authorization_error"

    def test_empty(self, admin_client: TestClient):
        response = admin_client.get("/ingredients/stats")

        assert response.status_code == 200
        assert response.headers["cache-control"] == "private, max-age=60"
        data = response.json()["data"]
        assert data["window_hours"] == 24
        assert data["performance"]["total_requests"] == 0
        assert data["health"]["status"] == "healthy"
        assert data["failure_patterns"] == []

    def test_reflects_normalize_calls(self, admin_client: TestClient, catalog):
        for raw_text in ("tomatoes", "sourdough", "cheddar", "quinoa"):
            admin_client.post("/ingredients/normalize", json={"raw_text": raw_text})

        data = admin_client.get("/ingredients/stats").json()["data"]

        performance = data["performance"]
        assert performance["total_requests"] == 4
        assert performance["failure_rate"] == 0.25
        assert performance["method_distribution"] == {
            "deterministic": 2,
            "fuzzy": 1,
            "none": 1,
        }
        assert data["usage"]["unique_users"] == 1
        assert data["health"]["status"] == "degraded"
        assert data["failure_patterns"] == [
            {"pattern": "quinoa", "count": 1, "percentage": 25.0}
        ]

    @pytest.mark.parametrize("window_hours", [0, -1, 24 * 30 + 1])
    def test_invalid_window(self, admin_client: TestClient, window_hours):
        response = admin_client.get("/ingredients/stats", params={"window_hours": window_hours})

        assert response.status_code == 400
