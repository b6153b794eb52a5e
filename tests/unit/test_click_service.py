from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from app.config import settings
from app.db.helpers import DatabaseError
from app.features.attribution.services.click_service import ClickService

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 15_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/15.0 Mobile/15E148 Safari/604.1"
)
ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android 12; Pixel 6) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/112.0.0.0 Mobile Safari/537.36"
)


@pytest.fixture
def repository(build_click):
    repo = AsyncMock()
    repo.record_click.return_value = build_click(id="click-1")
    return repo


@pytest.fixture
def service(repository, now):
    return ClickService(repository=repository, clock=lambda: now)


@pytest.mark.asyncio
async def test_ios_click_is_recorded_with_ttl(service, repository, now):
    outcome = await service.record_click(
        referral_code="ABC123",
        user_agent=IPHONE_UA,
        ip_address="192.168.1.1",
        screen_width=390,
        screen_height=844,
        language="en-US",
        timezone="America/New_York",
    )

    assert outcome.platform == "ios"
    assert outcome.redirect_url == settings.IOS_APP_STORE_URL
    assert outcome.click_id == "click-1"

    kwargs = repository.record_click.await_args.kwargs
    assert kwargs["referral_code"] == "ABC123"
    assert kwargs["ip_address"] == "192.168.1.1"
    assert kwargs["platform"] == "ios"
    assert kwargs["created_at"] == now
    assert kwargs["ttl"] == timedelta(hours=settings.CLICK_TTL_HOURS)
    assert kwargs["screen_width"] == 390
    assert kwargs["language"] == "en-US"
    assert kwargs["user_agent"] == IPHONE_UA


@pytest.mark.asyncio
async def test_unreadable_screen_and_blank_text_are_stored_as_missing(service, repository):
    await service.record_click(
        referral_code="ABC123",
        user_agent=IPHONE_UA,
        ip_address="192.168.1.1",
        screen_width=0,
        screen_height=None,
        language="  ",
        timezone="",
    )

    kwargs = repository.record_click.await_args.kwargs
    assert kwargs["screen_width"] is None
    assert kwargs["screen_height"] is None
    assert kwargs["language"] is None
    assert kwargs["timezone"] is None


@pytest.mark.asyncio
async def test_android_click_is_redirected_without_storing(service, repository):
    outcome = await service.record_click(
        referral_code="ABC123", user_agent=ANDROID_UA, ip_address="192.168.1.1"
    )

    assert outcome.platform == "android"
    assert "referrer=referral_code%3DABC123" in outcome.redirect_url
    assert outcome.click_id is None
    repository.record_click.assert_not_awaited()


@pytest.mark.asyncio
async def test_desktop_click_goes_to_web_fallback(service, repository):
    outcome = await service.record_click(
        referral_code="ABC123", user_agent="", ip_address="192.168.1.1"
    )

    assert outcome.platform == "desktop"
    assert outcome.redirect_url == settings.WEB_FALLBACK_URL
    repository.record_click.assert_not_awaited()


@pytest.mark.asyncio
async def test_storage_failure_still_redirects(service, repository):
    repository.record_click.side_effect = DatabaseError("Query failed", operation="fetch_one")

    outcome = await service.record_click(
        referral_code="ABC123", user_agent=IPHONE_UA, ip_address="192.168.1.1"
    )

    assert outcome.redirect_url == settings.IOS_APP_STORE_URL
    assert outcome.click_id is None
