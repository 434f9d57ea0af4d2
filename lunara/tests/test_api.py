"""End-to-end tests through the FastAPI app with in-memory collaborators."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from lunara.config import Settings
from lunara.errors import UpstreamUnavailableError
from lunara.main import create_app
from lunara.services.store import Store
from lunara.tests.conftest import (
    AUTH_A,
    AUTH_B,
    FakeGenerator,
    FakeVerifier,
    build_memory_store,
    store_calls,
)

UTC_TODAY = datetime.now(timezone.utc).date()
TODAY = UTC_TODAY.isoformat()


def create_cycle(client: TestClient, headers=AUTH_A, **fields) -> dict:
    body = {"start_date": TODAY, "cycle_length": 28, "period_duration": 5, **fields}
    response = client.post("/api/health-data/cycles", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestEnvelope:
    def test_success_shape(self, client: TestClient) -> None:
        body = client.get("/api/health-data/cycles", headers=AUTH_A).json()
        assert body["success"] is True
        assert body["message"] == "Cycles retrieved successfully"
        assert body["data"] == {"cycles": [], "count": 0, "user_id": "user-a"}
        assert "timestamp" in body
        assert "error" not in body

    def test_error_shape(self, client: TestClient) -> None:
        response = client.get("/api/health-data/cycles/unknown", headers=AUTH_A)
        body = response.json()
        assert response.status_code == 404
        assert body["success"] is False
        assert body["error"] == "Cycle not found"
        assert body["statusCode"] == 404
        assert body["data"] is None

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/api/nope", headers=AUTH_A)
        assert response.status_code == 404
        assert response.json()["error"] == "Route /api/nope not found"

    def test_security_headers(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["Cache-Control"] == "no-store"


class TestAuthentication:
    def test_missing_bearer_is_401_without_store_access(
        self, client: TestClient, store: Store
    ) -> None:
        response = client.get("/api/health-data/cycles")
        assert response.status_code == 401
        assert response.json()["success"] is False
        assert store_calls(store) == []

    def test_invalid_token_is_401(self, client: TestClient, store: Store) -> None:
        response = client.post(
            "/api/health-data/cycles",
            json={"start_date": TODAY},
            headers={"Authorization": "Bearer forged"},
        )
        assert response.status_code == 401
        assert store_calls(store) == []

    def test_public_routes(self, client: TestClient) -> None:
        assert client.get("/health").status_code == 200
        assert client.get("/").json()["data"]["endpoints"]["ai"] == "/api/ai"
        assert client.get("/api").status_code == 200

    def test_health_without_database(self, client: TestClient) -> None:
        body = client.get("/health").json()
        assert body["status"] == "healthy"
        assert body["database"] == "not configured"


class TestCycles:
    def test_create_today_is_menstrual(self, client: TestClient) -> None:
        cycle = create_cycle(client)
        assert cycle["current_phase"] == "menstrual"
        assert cycle["user_id"] == "user-a"

    def test_other_user_forbidden(self, client: TestClient) -> None:
        cycle = create_cycle(client)
        response = client.get(f"/api/health-data/cycles/{cycle['id']}", headers=AUTH_B)
        assert response.status_code == 403
        assert response.json()["error"] == "Access denied to this cycle"

    def test_other_user_cannot_update_or_delete(self, client: TestClient) -> None:
        cycle = create_cycle(client)
        url = f"/api/health-data/cycles/{cycle['id']}"

        assert client.put(url, json={"cycle_length": 30}, headers=AUTH_B).status_code == 403
        assert client.delete(url, headers=AUTH_B).status_code == 403

        unchanged = client.get(url, headers=AUTH_A).json()["data"]
        assert unchanged["cycle_length"] == 28

    def test_client_owner_ignored(self, client: TestClient) -> None:
        cycle = create_cycle(client, user_id="user-b", id="chosen")
        assert cycle["user_id"] == "user-a"
        assert cycle["id"] != "chosen"

    def test_phase_recomputed_on_read(self, client: TestClient) -> None:
        start = (UTC_TODAY - timedelta(days=14)).isoformat()
        cycle = create_cycle(client, start_date=start)
        assert cycle["current_phase"] == "ovulation"

    def test_update_and_delete(self, client: TestClient) -> None:
        cycle = create_cycle(client)
        url = f"/api/health-data/cycles/{cycle['id']}"

        updated = client.put(url, json={"cycle_length": 30, "notes": "ok"}, headers=AUTH_A)
        assert updated.status_code == 200
        assert updated.json()["data"]["cycle_length"] == 30

        assert client.delete(url, headers=AUTH_A).status_code == 200
        assert client.get(url, headers=AUTH_A).status_code == 404

    def test_null_for_required_field_is_ignored(self, client: TestClient) -> None:
        cycle = create_cycle(client)
        url = f"/api/health-data/cycles/{cycle['id']}"
        response = client.put(url, json={"start_date": None, "notes": None}, headers=AUTH_A)
        assert response.status_code == 200
        assert response.json()["data"]["start_date"] == TODAY

    def test_empty_update_rejected(self, client: TestClient) -> None:
        cycle = create_cycle(client)
        response = client.put(
            f"/api/health-data/cycles/{cycle['id']}", json={}, headers=AUTH_A
        )
        assert response.status_code == 400

    def test_validation_error_is_400(self, client: TestClient) -> None:
        response = client.post(
            "/api/health-data/cycles",
            json={"start_date": TODAY, "cycle_length": 50},
            headers=AUTH_A,
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("Validation error: cycle_length")

    def test_list_is_scoped(self, client: TestClient) -> None:
        create_cycle(client)
        create_cycle(client, headers=AUTH_B)
        body = client.get("/api/health-data/cycles", headers=AUTH_B).json()
        assert body["data"]["count"] == 1
        assert body["data"]["cycles"][0]["user_id"] == "user-b"


class TestLogs:
    def test_nutrition_totals_items_and_filters_by_date(self, client: TestClient) -> None:
        body = {
            "log_date": TODAY,
            "meal_type": "Lunch",
            "food_items": [{"name": "salad", "calories": 250}, {"name": "bread", "calories": 150}],
        }
        created = client.post("/api/health-data/nutrition", json=body, headers=AUTH_A)
        assert created.status_code == 201
        assert created.json()["data"]["calories"] == 400
        assert created.json()["data"]["meal_type"] == "lunch"

        today = client.get(f"/api/health-data/nutrition?date={TODAY}", headers=AUTH_A)
        assert today.json()["data"]["count"] == 1
        other = client.get("/api/health-data/nutrition?date=2020-01-01", headers=AUTH_A)
        assert other.json()["data"]["count"] == 0

    def test_fitness_patch(self, client: TestClient) -> None:
        created = client.post(
            "/api/health-data/fitness",
            json={"activity_type": "running", "duration_minutes": 30, "intensity": "moderate"},
            headers=AUTH_A,
        ).json()["data"]
        assert created["logged_at"] is not None

        url = f"/api/health-data/fitness/{created['id']}"
        patched = client.patch(url, json={"intensity_level": 4}, headers=AUTH_A).json()["data"]
        assert patched["intensity_level"] == 4
        assert patched["intensity"] == "moderate"
        assert client.patch(url, json={"duration_minutes": 5}, headers=AUTH_B).status_code == 403

    def test_fitness_duration_bounds(self, client: TestClient) -> None:
        response = client.post(
            "/api/health-data/fitness",
            json={"activity_type": "running", "duration_minutes": 0},
            headers=AUTH_A,
        )
        assert response.status_code == 400

    def test_mental_health_round(self, client: TestClient) -> None:
        created = client.post(
            "/api/health-data/mental-health",
            json={"mood_rating": 7, "stress_level": 3},
            headers=AUTH_A,
        )
        assert created.status_code == 201
        log_id = created.json()["data"]["id"]
        url = f"/api/health-data/mental-health/{log_id}"

        assert client.get(url, headers=AUTH_B).status_code == 403
        assert client.delete(url, headers=AUTH_A).status_code == 200

    def test_mood_rating_required(self, client: TestClient) -> None:
        response = client.post(
            "/api/health-data/mental-health", json={"stress_level": 3}, headers=AUTH_A
        )
        assert response.status_code == 400


class TestSummaryAndStats:
    def test_summary(self, client: TestClient) -> None:
        create_cycle(client)
        client.post(
            "/api/health-data/mental-health", json={"mood_rating": 8}, headers=AUTH_A
        )
        data = client.get("/api/health-data/summary", headers=AUTH_A).json()["data"]
        assert data["latest_cycle"]["current_phase"] == "menstrual"
        assert len(data["recent_mental_health"]) == 1
        assert data["recent_fitness"] == []

    def test_stats_defaults_when_empty(self, client: TestClient) -> None:
        data = client.get("/api/health-data/stats", headers=AUTH_A).json()["data"]
        assert data["cycles"]["average_cycle_length"] == 28
        assert data["cycles"]["average_period_duration"] == 5
        assert data["mental_health"]["average_mood"] == 5
        assert data["fitness"]["total_minutes"] == 0


class TestInsights:
    def test_generate_and_manage(self, client: TestClient) -> None:
        create_cycle(client)
        response = client.post(
            "/api/ai/generate-insight", json={"type": "nutrition_advice"}, headers=AUTH_A
        )
        assert response.status_code == 201
        insight = response.json()["data"]
        assert insight["title"] == "Nutrition Recommendations"
        assert insight["content"] == "Advice for the menstrual phase."
        assert insight["is_read"] is False
        assert insight["is_expired"] is False

        read_url = f"/api/ai/insights/{insight['id']}/read"
        assert client.patch(read_url, headers=AUTH_B).status_code == 403
        marked = client.patch(read_url, headers=AUTH_A).json()["data"]
        assert marked["is_read"] is True
        assert marked["read_at"] is not None

        delete_url = f"/api/ai/insights/{insight['id']}"
        assert client.delete(delete_url, headers=AUTH_B).status_code == 403
        assert client.delete(delete_url, headers=AUTH_A).status_code == 200
        assert client.get("/api/ai/insights", headers=AUTH_A).json()["data"]["count"] == 0

    def test_unknown_type_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/generate-insight", json={"type": "horoscope"}, headers=AUTH_A
        )
        assert response.status_code == 400

    def test_multiple_filters_invalid_types(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/generate-multiple-insights",
            json={"types": ["mood_analysis", "horoscope", "fitness_suggestion"]},
            headers=AUTH_A,
        )
        assert response.status_code == 201
        assert response.json()["data"]["count"] == 2

    def test_multiple_without_valid_types(self, client: TestClient) -> None:
        response = client.post(
            "/api/ai/generate-multiple-insights",
            json={"types": ["horoscope"]},
            headers=AUTH_A,
        )
        assert response.status_code == 400

    def test_generation_failure_is_500(self, settings: Settings) -> None:
        app = create_app(
            settings,
            verifier=FakeVerifier(),
            store=build_memory_store(),
            generator=FakeGenerator(fail=True),
        )
        with TestClient(app) as client:
            response = client.post("/api/ai/generate-insight", json={}, headers=AUTH_A)
        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_quick_tip_generated(self, client: TestClient) -> None:
        data = client.get("/api/ai/quick-tip?topic=sleep", headers=AUTH_A).json()["data"]
        assert data["source"] == "ai_generated"
        assert data["tip"] == "A fresh tip about sleep."

    def test_quick_tip_falls_back(self, settings: Settings) -> None:
        app = create_app(
            settings,
            verifier=FakeVerifier(),
            store=build_memory_store(),
            generator=FakeGenerator(available=False),
        )
        with TestClient(app) as client:
            data = client.get("/api/ai/quick-tip?topic=nutrition", headers=AUTH_A).json()["data"]
        assert data["source"] == "fallback"
        assert data["topic"] == "nutrition"

    def test_insight_types(self, client: TestClient) -> None:
        data = client.get("/api/ai/insight-types", headers=AUTH_A).json()["data"]
        assert {t["value"] for t in data} == {
            "general_health",
            "cycle_prediction",
            "nutrition_advice",
            "fitness_suggestion",
            "mood_analysis",
        }


class TestUsers:
    def test_profile_merge(self, client: TestClient) -> None:
        client.put(
            "/api/users/profile",
            json={"display_name": "Alice", "user_id": "user-b", "is_admin": True},
            headers=AUTH_A,
        )
        client.put("/api/users/profile", json={"language": "it"}, headers=AUTH_A)

        data = client.get("/api/users/profile", headers=AUTH_A).json()["data"]
        assert data["uid"] == "user-a"
        assert data["email"] == "alice@example.com"
        assert data["profile"]["display_name"] == "Alice"
        assert data["profile"]["language"] == "it"
        assert "is_admin" not in data["profile"]
        assert "user_id" not in data["profile"]

        assert client.get("/api/users/profile", headers=AUTH_B).json()["data"]["profile"] is None

    def test_settings_defaults_and_update(self, client: TestClient) -> None:
        defaults = client.get("/api/users/settings", headers=AUTH_A).json()["data"]
        assert defaults["preferences"]["theme"] == "light"
        assert defaults["privacy"]["data_sharing"] is False

        client.put(
            "/api/users/settings",
            json={"preferences": {"theme": "dark"}},
            headers=AUTH_A,
        )
        updated = client.get("/api/users/settings", headers=AUTH_A).json()["data"]
        assert updated["preferences"]["theme"] == "dark"
        assert updated["preferences"]["units"] == "metric"
        assert updated["notifications"]["period_reminders"] is True

    def test_partial_settings_updates_accumulate(self, client: TestClient) -> None:
        client.put(
            "/api/users/settings",
            json={"notifications": {"ovulation_reminders": False}},
            headers=AUTH_A,
        )
        client.put(
            "/api/users/settings",
            json={"notifications": {"period_reminders": False}},
            headers=AUTH_A,
        )

        notifications = client.get("/api/users/settings", headers=AUTH_A).json()["data"][
            "notifications"
        ]
        assert notifications == {
            "period_reminders": False,
            "ovulation_reminders": False,
            "medication_reminders": True,
            "health_insights": True,
        }

    def test_empty_settings_update_rejected(self, client: TestClient) -> None:
        response = client.put(
            "/api/users/settings", json={"notifications": {}}, headers=AUTH_A
        )
        assert response.status_code == 400

    def test_dashboard_counts(self, client: TestClient) -> None:
        create_cycle(client)
        create_cycle(client)
        create_cycle(client, headers=AUTH_B)
        data = client.get("/api/users/dashboard", headers=AUTH_A).json()["data"]
        assert data["statistics"]["total_cycles"] == 2
        assert data["user"]["uid"] == "user-a"
        assert data["latest_cycle"]["current_phase"] == "menstrual"

    def test_data_summary_export(self, client: TestClient) -> None:
        create_cycle(client)
        data = client.get("/api/users/data-summary", headers=AUTH_A).json()["data"]
        assert data["summary"]["total_cycles"] == 1
        assert data["data"]["cycles"][0]["current_phase"] == "menstrual"

    def test_account_deletion_requires_matching_email(self, client: TestClient) -> None:
        create_cycle(client)
        response = client.request(
            "DELETE",
            "/api/users/account",
            json={"confirm_email": "someone@example.com"},
            headers=AUTH_A,
        )
        assert response.status_code == 400
        assert client.get("/api/health-data/cycles", headers=AUTH_A).json()["data"]["count"] == 1

    def test_account_deletion_purges_only_caller(self, client: TestClient) -> None:
        create_cycle(client)
        create_cycle(client, headers=AUTH_B)
        client.put("/api/users/profile", json={"language": "en"}, headers=AUTH_A)

        response = client.request(
            "DELETE",
            "/api/users/account",
            json={"confirm_email": "alice@example.com"},
            headers=AUTH_A,
        )
        assert response.status_code == 200
        assert client.get("/api/health-data/cycles", headers=AUTH_A).json()["data"]["count"] == 0
        assert client.get("/api/health-data/cycles", headers=AUTH_B).json()["data"]["count"] == 1
        assert client.get("/api/users/profile", headers=AUTH_A).json()["data"]["profile"] is None

    def test_failed_account_deletion_keeps_data(self, client: TestClient, store: Store) -> None:
        create_cycle(client)
        client.put("/api/users/profile", json={"language": "en"}, headers=AUTH_A)

        async def broken_delete_many(owner):
            raise UpstreamUnavailableError("Database service unavailable")

        store.insights.delete_many = broken_delete_many
        response = client.request(
            "DELETE",
            "/api/users/account",
            json={"confirm_email": "alice@example.com"},
            headers=AUTH_A,
        )
        assert response.status_code == 500
        assert response.json()["success"] is False
        assert client.get("/api/health-data/cycles", headers=AUTH_A).json()["data"]["count"] == 1
        assert client.get("/api/users/profile", headers=AUTH_A).json()["data"]["profile"] == {
            "language": "en"
        }
