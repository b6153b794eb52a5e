"""
Tests for ClickRepository SQL construction and row mapping.
"""

import importlib
from datetime import timedelta

import psycopg
import pytest

from app.db.helpers import DatabaseError
from app.features.attribution.repository.click_repository import (
    ClickRepository,
    ClickRepositoryError,
)

# The package re-exports the click_repository instance under the module name
module = importlib.import_module("app.features.attribution.repository.click_repository")


def _row(now, **overrides):
    row = {
        "id": "123e4567-e89b-12d3-a456-426614174000",
        "referral_code": "TESTCODE123",
        "ip_address": "192.168.1.1",
        "user_agent": "Mozilla/5.0 (iPhone)",
        "platform": "ios",
        "os_version": "15.0",
        "device_model": "iPhone",
        "screen_width": 390.0,
        "screen_height": 844.0,
        "language": "en-US",
        "timezone": "America/New_York",
        "matched": False,
        "matched_at": None,
        "created_at": now,
        "expires_at": now + timedelta(hours=48),
    }
    row.update(overrides)
    return row


@pytest.mark.asyncio
async def test_query_candidates_filters_pending_clicks_newest_first(monkeypatch, now):
    captured = {}

    async def fake_fetch_all(query, params=()):
        captured["query"] = query
        captured["params"] = params
        return [_row(now)]

    monkeypatch.setattr(module, "fetch_all", fake_fetch_all)

    clicks = await ClickRepository().query_candidates("ios", now, limit=100)

    assert captured["params"] == ("ios", now, 100)
    assert "matched = FALSE" in captured["query"]
    assert "expires_at > %s" in captured["query"]
    assert "ORDER BY created_at DESC" in captured["query"]
    assert len(clicks) == 1
    assert clicks[0].referral_code == "TESTCODE123"
    assert clicks[0].screen_width == 390.0
    assert clicks[0].matched is False


@pytest.mark.asyncio
async def test_query_candidates_retries_connection_errors(monkeypatch, now):
    attempts = {"count": 0}

    async def flaky_fetch_all(query, params=()):
        attempts["count"] += 1
        if attempts["count"] == 1:
            try:
                raise psycopg.OperationalError("server closed the connection unexpectedly")
            except psycopg.OperationalError as e:
                raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e
        return []

    monkeypatch.setattr(module, "fetch_all", flaky_fetch_all)

    clicks = await ClickRepository().query_candidates("ios", now)

    assert clicks == []
    assert attempts["count"] == 2


@pytest.mark.asyncio
async def test_query_candidates_does_not_retry_query_errors(monkeypatch, now):
    attempts = {"count": 0}

    async def broken_fetch_all(query, params=()):
        attempts["count"] += 1
        try:
            raise psycopg.errors.UndefinedTable('relation "click_records" does not exist')
        except psycopg.Error as e:
            raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e

    monkeypatch.setattr(module, "fetch_all", broken_fetch_all)

    with pytest.raises(DatabaseError):
        await ClickRepository().query_candidates("ios", now)

    assert attempts["count"] == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("rowcount,expected", [(1, True), (0, False)])
async def test_try_consume_is_conditional_update(monkeypatch, now, rowcount, expected):
    captured = {}

    async def fake_execute(query, params=()):
        captured["query"] = query
        captured["params"] = params
        return rowcount

    monkeypatch.setattr(module, "execute_query", fake_execute)

    consumed = await ClickRepository().try_consume("click-1", now)

    assert consumed is expected
    assert captured["params"] == (now, "click-1")
    assert "AND matched = FALSE" in captured["query"]


@pytest.mark.asyncio
async def test_record_click_sets_expiry_from_ttl(monkeypatch, now):
    captured = {}

    async def fake_fetch_one(query, params=()):
        captured["params"] = params
        return _row(now)

    monkeypatch.setattr(module, "fetch_one", fake_fetch_one)

    click = await ClickRepository().record_click(
        referral_code="TESTCODE123",
        ip_address="192.168.1.1",
        platform="ios",
        created_at=now,
        ttl=timedelta(hours=48),
        screen_width=390.0,
    )

    assert click.id == "123e4567-e89b-12d3-a456-426614174000"
    assert captured["params"][-2] == now
    assert captured["params"][-1] == now + timedelta(hours=48)


@pytest.mark.asyncio
async def test_record_click_without_returned_row_raises(monkeypatch, now):
    async def fake_fetch_one(query, params=()):
        return None

    monkeypatch.setattr(module, "fetch_one", fake_fetch_one)

    with pytest.raises(ClickRepositoryError):
        await ClickRepository().record_click(
            referral_code="TESTCODE123",
            ip_address="192.168.1.1",
            platform="ios",
            created_at=now,
            ttl=timedelta(hours=48),
        )


@pytest.mark.asyncio
async def test_delete_expired_before_returns_count(monkeypatch, now):
    async def fake_execute(query, params=()):
        assert "expires_at < %s" in query
        assert params == (now,)
        return 7

    monkeypatch.setattr(module, "execute_query", fake_execute)

    assert await ClickRepository().delete_expired_before(now) == 7
