"""
User agent classification for referral clicks.

Maps a raw user agent to {platform, os_version, device_model} and picks the
store URL a click should be redirected to.
"""

from urllib.parse import quote

from user_agents import parse

from app.config import settings
from app.features.attribution.domain import DeviceInfo
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

DESKTOP = DeviceInfo(platform="desktop")


def classify_user_agent(user_agent: str | None) -> DeviceInfo:
    """
    Classify a user agent as ios, android or desktop.

    iOS requires a phone or tablet: Mac OS reported by a mobile device counts
    as iOS, a desktop Mac does not.
    """
    if not user_agent:
        return DESKTOP

    try:
        parsed = parse(user_agent)
    except Exception as e:
        logger.warning("Failed to parse user agent", error=str(e))
        return DESKTOP

    os_family = (parsed.os.family or "").lower()
    os_version = parsed.os.version_string or None
    device_model = parsed.device.model or None

    if ("ios" in os_family or "mac os" in os_family) and (parsed.is_mobile or parsed.is_tablet):
        return DeviceInfo(platform="ios", os_version=os_version, device_model=device_model)

    if "android" in os_family:
        return DeviceInfo(platform="android", os_version=os_version, device_model=device_model)

    return DESKTOP


def build_redirect_url(device: DeviceInfo, referral_code: str) -> str:
    """Store URL for the device; Android carries the code as an install referrer."""
    if device.platform == "ios":
        return settings.IOS_APP_STORE_URL

    if device.platform == "android":
        referrer = quote(f"referral_code={referral_code}", safe="")
        return f"{settings.play_store_url()}&referrer={referrer}"

    return settings.WEB_FALLBACK_URL
