"""
Tests for the gamification API endpoints.

Requests run through FastAPI's TestClient with the service dependency
overridden, so no external store is needed.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from gamification_engine.common.config import AppConfig, GamificationConfig
from gamification_engine.common.exceptions import ConcurrencyConflictError, StoreUnavailableError
from gamification_engine.common.gamification.controllers import RETRY_MESSAGE, router
from gamification_engine.common.gamification.repository import InMemoryUserStateStore
from gamification_engine.common.gamification.service import GamificationService, get_gamification_service
from gamification_engine.main import create_app

USER_ID = "api-user"


@pytest.fixture
def service():
    service = GamificationService(
        InMemoryUserStateStore(),
        settings=GamificationConfig(retry_backoff_seconds=0)
    )
    asyncio.run(service.register_user(USER_ID))
    return service


def build_client(service) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_gamification_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def client(service):
    with build_client(service) as client:
        yield client


class TestAwardXPEndpoint:
    """Test POST /gamification/award-xp."""

    def test_award(self, client):
        response = client.post(
            "/gamification/award-xp",
            json={"user_id": USER_ID, "xp_amount": 510, "reason": "quiz"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["new_total_xp"] == 510
        assert data["new_level"] == 5
        assert data["level_up"] is True
        assert data["newly_awarded_badges"] == ["level-5"]

    def test_negative_amount(self, client):
        response = client.post("/gamification/award-xp", json={"user_id": USER_ID, "xp_amount": -5})
        assert response.status_code == 400

    def test_fractional_amount_fails_validation(self, client):
        response = client.post("/gamification/award-xp", json={"user_id": USER_ID, "xp_amount": 1.5})
        assert response.status_code == 422

    @pytest.mark.parametrize("amount", [True, "10"])
    def test_non_integer_json_rejected(self, client, service, amount):
        response = client.post("/gamification/award-xp", json={"user_id": USER_ID, "xp_amount": amount})

        assert response.status_code == 422
        stats = asyncio.run(service.get_user_gamification_stats(USER_ID))
        assert stats.total_xp == 0

    def test_unknown_user(self, client):
        response = client.post("/gamification/award-xp", json={"user_id": "ghost", "xp_amount": 5})
        assert response.status_code == 404

    @pytest.mark.parametrize("error", [
        ConcurrencyConflictError(USER_ID, 3, 5),
        StoreUnavailableError("write", ConnectionError("down")),
    ])
    def test_retryable_failures(self, error):
        failing = MagicMock()
        failing.award_xp = AsyncMock(side_effect=error)

        with build_client(failing) as client:
            response = client.post("/gamification/award-xp", json={"user_id": USER_ID, "xp_amount": 5})

        assert response.status_code == 503
        assert response.json()["detail"] == RETRY_MESSAGE


class TestStatsEndpoint:
    """Test GET /gamification/stats/{user_id}."""

    def test_stats(self, client):
        client.post("/gamification/award-xp", json={"user_id": USER_ID, "xp_amount": 428})

        response = client.get(f"/gamification/stats/{USER_ID}")

        assert response.status_code == 200
        data = response.json()
        assert data["total_xp"] == 428
        assert data["level"] == 4
        assert data["badges"] == []
        assert data["achievements"] == ["novice"]
        assert data["current_achievement"] == "novice"
        assert data["level_progress"]["xp_needed_for_next"] == 78

    def test_stats_unknown_user(self, client):
        assert client.get("/gamification/stats/ghost").status_code == 404


class TestBadgeEndpoints:
    """Test badge grant and removal."""

    def test_grant_and_remove(self, client):
        granted = client.post(f"/gamification/badges/{USER_ID}", json={"badge_id": "level-25"})
        assert granted.status_code == 200
        assert granted.json()["badges"] == ["level-25"]

        removed = client.delete(f"/gamification/badges/{USER_ID}/level-25")
        assert removed.status_code == 200
        assert removed.json()["badges"] == []

    def test_grant_unknown_badge(self, client):
        response = client.post(f"/gamification/badges/{USER_ID}", json={"badge_id": "nope"})
        assert response.status_code == 400

    def test_remove_not_held(self, client):
        response = client.delete(f"/gamification/badges/{USER_ID}/level-5")
        assert response.status_code == 200
        assert response.json()["badges"] == []

    def test_unknown_user(self, client):
        response = client.post("/gamification/badges/ghost", json={"badge_id": "level-5"})
        assert response.status_code == 404


class TestLevelEndpoint:
    """Test GET /gamification/levels/{level}."""

    def test_milestone_level(self, client):
        response = client.get("/gamification/levels/5")

        assert response.status_code == 200
        data = response.json()
        assert data["xp_for_level"] == 506
        assert data["xp_for_next_level"] == 706
        assert data["is_milestone"] is True
        assert data["achievement"]["achievement_id"] == "novice"

    def test_invalid_level(self, client):
        assert client.get("/gamification/levels/0").status_code == 400


class TestApplication:
    """Test the assembled application."""

    def test_lifespan_wires_service(self):
        app = create_app(AppConfig())

        with TestClient(app) as client:
            assert client.get("/").json()["name"] == "Gamification Engine"
            response = client.get("/api/gamification/levels/2")

        assert response.status_code == 200
        assert response.json()["xp_for_level"] == 150
