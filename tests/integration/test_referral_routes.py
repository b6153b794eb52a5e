"""
Integration tests for referral bookkeeping endpoints.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from app.db.helpers import DatabaseError
from app.features.attribution.domain import ReferralRecord
from app.features.attribution.services import ReferralService
from app.main import app
from app.routes.referral import get_referral_service

client = TestClient(app)

APPLY_BODY = {
    "referral_code": "ABC123",
    "referrer_user_id": "user-a",
    "referred_user_id": "user-b",
}


def _referral(now, **overrides) -> ReferralRecord:
    values = {
        "id": "ref-1",
        "referrer_user_id": "user-a",
        "referred_user_id": "user-b",
        "referral_code": "ABC123",
        "bonus_applied": True,
        "created_at": now,
    }
    values.update(overrides)
    return ReferralRecord(**values)


@pytest.fixture
def repository():
    return AsyncMock()


@pytest.fixture(autouse=True)
def service_override(repository):
    app.dependency_overrides[get_referral_service] = lambda: ReferralService(repository=repository)
    yield
    app.dependency_overrides.clear()


def test_apply_referral_records_once(repository, now):
    repository.create_referral.return_value = _referral(now)

    response = client.post("/api/referral/apply", json=APPLY_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["referrer_bonus"] == 100
    assert data["referred_bonus"] == 50
    assert "Update bonus points" in data["message"]


def test_self_referral_returns_400(repository):
    response = client.post(
        "/api/referral/apply", json={**APPLY_BODY, "referred_user_id": "user-a"}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot refer yourself"
    repository.create_referral.assert_not_awaited()


def test_duplicate_referral_returns_409(repository):
    repository.create_referral.return_value = None

    response = client.post("/api/referral/apply", json=APPLY_BODY)

    assert response.status_code == 409
    assert response.json()["detail"] == "Referral already applied"


def test_missing_fields_return_422():
    response = client.post("/api/referral/apply", json={"referral_code": "ABC123"})

    assert response.status_code == 422


def test_database_failure_returns_503(repository):
    repository.create_referral.side_effect = DatabaseError("Query failed", operation="fetch_one")

    response = client.post("/api/referral/apply", json=APPLY_BODY)

    assert response.status_code == 503


def test_stats_lists_referrals_made_and_received(repository, now):
    repository.list_by_referrer.return_value = [
        _referral(now, id="ref-1"),
        _referral(now, id="ref-2", referred_user_id="user-c"),
    ]
    repository.find_referred_by.return_value = _referral(
        now, id="ref-0", referrer_user_id="user-z", referred_user_id="user-a"
    )

    response = client.get("/api/referral/stats/user-a")

    assert response.status_code == 200
    data = response.json()
    assert data["total_referrals"] == 2
    assert [item["id"] for item in data["referrals"]] == ["ref-1", "ref-2"]
    assert data["referred_by"]["referrer_user_id"] == "user-z"


def test_stats_for_unknown_user_are_empty(repository):
    repository.list_by_referrer.return_value = []
    repository.find_referred_by.return_value = None

    response = client.get("/api/referral/stats/nobody")

    assert response.json() == {"total_referrals": 0, "referrals": [], "referred_by": None}
