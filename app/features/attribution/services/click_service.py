"""
Click recorder - captures the click-time fingerprint for deferred matching.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from app.config import settings
from app.db.helpers import DatabaseError
from app.features.attribution.domain import ClickOutcome
from app.features.attribution.repository import ClickRepository, click_repository
from app.infrastructure.observability.logging import get_logger

from .device_classifier import build_redirect_url, classify_user_agent

logger = get_logger(__name__)


def _optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _optional_dimension(value: float | None) -> float | None:
    # The landing page reports 0 when it could not read the screen
    if value is None or value <= 0:
        return None
    return value


class ClickService:
    """Classifies a click, stores iOS fingerprints and picks the redirect."""

    def __init__(
        self,
        repository: ClickRepository | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._repository = repository or click_repository
        self._clock = clock

    async def record_click(
        self,
        *,
        referral_code: str,
        user_agent: str | None,
        ip_address: str,
        screen_width: float | None = None,
        screen_height: float | None = None,
        language: str | None = None,
        timezone: str | None = None,
    ) -> ClickOutcome:
        """
        Record a referral click and return where to send the browser.

        Only iOS clicks are persisted; Android attribution goes through the
        Play Store install referrer embedded in the redirect URL. A storage
        failure is logged and the redirect still happens.
        """
        device = classify_user_agent(user_agent)
        redirect_url = build_redirect_url(device, referral_code)

        if device.platform != "ios":
            logger.info(
                "Click redirected without fingerprint",
                referral_code=referral_code,
                platform=device.platform,
            )
            return ClickOutcome(platform=device.platform, redirect_url=redirect_url)

        try:
            click = await self._repository.record_click(
                referral_code=referral_code,
                ip_address=ip_address,
                platform="ios",
                created_at=self._clock(),
                ttl=timedelta(hours=settings.CLICK_TTL_HOURS),
                user_agent=user_agent,
                os_version=device.os_version,
                device_model=device.device_model,
                screen_width=_optional_dimension(screen_width),
                screen_height=_optional_dimension(screen_height),
                language=_optional_text(language),
                timezone=_optional_text(timezone),
            )
        except DatabaseError as e:
            logger.error(
                "Failed to record click, redirecting anyway",
                referral_code=referral_code,
                error=str(e),
            )
            return ClickOutcome(platform="ios", redirect_url=redirect_url)

        return ClickOutcome(platform="ios", redirect_url=redirect_url, click_id=click.id)


click_service = ClickService()
