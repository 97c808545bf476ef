from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.core.auth import get_current_user
from app.db import schemas
from app.db.database import get_db
from app.db.models import User
from app.main import app
from app.services import clip_service, moderation_service, trending


async def _no_db():
    yield None


@pytest.fixture
def client():
    # No context manager: the lifespan (init_db) would need a live database
    app.dependency_overrides[get_db] = _no_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def _signed_in(role):
    async def current_user():
        return User(id=f"{role.lower()}-1", role=role, trust_score=0)
    return current_user


def test_success_envelope_with_offset_pagination(client, monkeypatch):
    async def fake_trending(db, limit, offset, window_days):
        return [], 0

    monkeypatch.setattr(trending, "get_trending_clips", fake_trending)

    response = client.get("/api/v1/clips/trending", params={"limit": 6})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "data": [],
        "pagination": {"total": 0, "limit": 6, "offset": 0, "hasMore": False},
    }


def test_missing_clip_is_not_found(client, monkeypatch):
    async def no_clip(db, slug):
        return None

    monkeypatch.setattr(clip_service, "get_clip_by_slug", no_clip)

    response = client.get("/api/v1/clips/does-not-exist")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"


def test_unknown_route_uses_error_envelope(client):
    response = client.get("/api/v1/nothing-here")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_invalid_query_is_validation_error(client):
    response = client.get("/api/v1/clips/trending", params={"limit": 500})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "limit" in error["details"]["fieldErrors"]


def test_anonymous_favorite_is_unauthorized(client):
    response = client.post("/api/v1/clips/some-clip/favorite")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_regular_user_cannot_open_moderation(client):
    app.dependency_overrides[get_current_user] = _signed_in("USER")

    response = client.get("/api/v1/moderation/stats")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_moderator_decision_is_wrapped(client, monkeypatch):
    app.dependency_overrides[get_current_user] = _signed_in("MODERATOR")

    async def fake_moderate(db, clip_id, moderator, action, reason=None):
        return schemas.ModerationResult(
            id=clip_id,
            slug="opm-boros",
            submissionStatus="APPROVED",
            moderatedBy=moderator.id,
            moderatedAt=datetime(2024, 6, 1, tzinfo=timezone.utc),
            submitterTrustScore=15,
        )

    monkeypatch.setattr(moderation_service, "moderate_clip", fake_moderate)

    response = client.post("/api/v1/moderation/clips/clip-1", json={"action": "approve"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["submissionStatus"] == "APPROVED"
    assert data["submitterTrustScore"] == 15


def test_unexpected_failure_hides_internals(client, monkeypatch):
    async def broken(db, slug):
        raise RuntimeError("connection string with password")

    monkeypatch.setattr(clip_service, "get_clip_by_slug", broken)

    response = client.get("/api/v1/clips/opm-boros")

    assert response.status_code == 500
    body = response.json()
    assert body["error"]["code"] == "INTERNAL_ERROR"
    assert "password" not in response.text


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"


def test_malformed_body_from_regular_user_is_forbidden(client):
    app.dependency_overrides[get_current_user] = _signed_in("USER")

    response = client.post(
        "/api/v1/moderation/clips/clip-1",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_malformed_body_from_anonymous_caller_is_unauthorized(client):
    for path in ("/api/v1/moderation/clips/clip-1", "/api/v1/user/collections"):
        response = client.post(
            path, content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 401, path
        assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_malformed_body_from_moderator_is_a_form_error(client):
    app.dependency_overrides[get_current_user] = _signed_in("MODERATOR")

    response = client.post(
        "/api/v1/moderation/clips/clip-1",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    details = response.json()["error"]["details"]
    assert details["formErrors"]
    assert details["fieldErrors"] == {}


def test_wrong_body_shape_reports_the_field(client):
    app.dependency_overrides[get_current_user] = _signed_in("MODERATOR")

    response = client.post("/api/v1/moderation/clips/clip-1", json={"action": "maybe"})

    assert response.status_code == 400
    assert "action" in response.json()["error"]["details"]["fieldErrors"]


def test_blank_search_is_validation_error(client):
    response = client.get("/api/v1/search", params={"q": "   "})

    assert response.status_code == 400
    assert response.json()["error"]["details"]["fieldErrors"] == {
        "q": ["Search query cannot be blank"]
    }
