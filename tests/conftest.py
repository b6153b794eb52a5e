import asyncio
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest

from app.db.helpers import DatabaseError
from app.features.attribution.domain import ClickFingerprint, LaunchFingerprint

NOW = datetime(2024, 1, 2, 12, 0, tzinfo=UTC)


class InMemoryClickStore:
    """ClickStore backed by a dict, with a real compare-and-set on consume."""

    def __init__(self, clicks=()):
        self.clicks: dict[str, ClickFingerprint] = {click.id: click for click in clicks}
        self.query_calls: list[tuple[str, datetime, int]] = []
        self.consume_calls: list[str] = []
        self.fail_query = False
        self.fail_consume = False

    async def query_candidates(self, platform: str, now: datetime, limit: int = 100):
        self.query_calls.append((platform, now, limit))
        if self.fail_query:
            raise DatabaseError("connection refused", operation="fetch_all")

        eligible = [
            click
            for click in self.clicks.values()
            if not click.matched and click.platform == platform and click.expires_at > now
        ]
        eligible.sort(key=lambda click: click.created_at, reverse=True)
        # Yield so concurrent matches can both read before either consumes
        await asyncio.sleep(0)
        return [replace(click) for click in eligible[:limit]]

    async def try_consume(self, click_id: str, now: datetime) -> bool:
        self.consume_calls.append(click_id)
        if self.fail_consume:
            raise DatabaseError("connection reset", operation="execute")

        click = self.clicks.get(click_id)
        if click is None or click.matched:
            return False
        click.matched = True
        click.matched_at = now
        return True


def _build_click(**overrides) -> ClickFingerprint:
    values = {
        "id": "123e4567-e89b-12d3-a456-426614174000",
        "referral_code": "TESTCODE123",
        "ip_address": "192.168.1.1",
        "platform": "ios",
        "os_version": "15.0",
        "device_model": "iPhone13",
        "screen_width": 390.0,
        "screen_height": 844.0,
        "language": "en-US",
        "timezone": "America/New_York",
        "user_agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X)",
        "created_at": NOW - timedelta(minutes=30),
        "expires_at": NOW - timedelta(minutes=30) + timedelta(hours=48),
    }
    values.update(overrides)
    return ClickFingerprint(**values)


def _build_launch(**overrides) -> LaunchFingerprint:
    values = {
        "platform": "ios",
        "ip_address": "192.168.1.1",
        "os_version": "15.0",
        "device_model": "iPhone13",
        "screen_width": 390.0,
        "screen_height": 844.0,
        "language": "en-US",
        "timezone": "America/New_York",
    }
    values.update(overrides)
    return LaunchFingerprint(**values)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def build_click():
    return _build_click


@pytest.fixture
def build_launch():
    return _build_launch


@pytest.fixture
def click_store():
    def _make(*clicks):
        return InMemoryClickStore(clicks)

    return _make
