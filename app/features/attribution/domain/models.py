"""
Domain models for deferred deep-link attribution.

Plain dataclasses shared by the matcher, repositories, services and the
API layer. They carry no persistence or HTTP concerns.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

Platform = Literal["ios", "android"]
DevicePlatform = Literal["ios", "android", "desktop"]


@dataclass(slots=True)
class ClickFingerprint:
    """Represents a click_records row awaiting deferred matching."""

    id: str
    referral_code: str
    ip_address: str
    platform: str
    created_at: datetime
    expires_at: datetime
    os_version: str | None = None
    device_model: str | None = None
    screen_width: float | None = None
    screen_height: float | None = None
    language: str | None = None
    timezone: str | None = None
    user_agent: str | None = None
    matched: bool = False
    matched_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class LaunchFingerprint:
    """Attributes reported by the app on first launch. Only platform is required."""

    platform: str
    ip_address: str | None = None
    os_version: str | None = None
    device_model: str | None = None
    screen_width: float | None = None
    screen_height: float | None = None
    language: str | None = None
    timezone: str | None = None


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of a match attempt; optional fields are set only when matched."""

    matched: bool
    referral_code: str | None = None
    confidence: float | None = None
    click_id: str | None = None

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(matched=False)

    @classmethod
    def for_click(cls, click: ClickFingerprint, confidence: float) -> "MatchResult":
        return cls(
            matched=True,
            referral_code=click.referral_code,
            confidence=confidence,
            click_id=click.id,
        )


@dataclass(frozen=True, slots=True)
class DeviceInfo:
    """Structured view of a user agent string."""

    platform: DevicePlatform
    os_version: str | None = None
    device_model: str | None = None


@dataclass(frozen=True, slots=True)
class ClickOutcome:
    """Result of recording a referral click."""

    platform: DevicePlatform
    redirect_url: str
    click_id: str | None = None


@dataclass(slots=True)
class ReferralRecord:
    """Represents a referrals row."""

    id: str
    referrer_user_id: str
    referred_user_id: str
    referral_code: str
    bonus_applied: bool
    created_at: datetime


@dataclass(slots=True)
class ReferralStats:
    """Referrals made by a user and the referral that brought them in."""

    user_id: str
    referrals: list[ReferralRecord]
    referred_by: ReferralRecord | None

    @property
    def total_referrals(self) -> int:
        return len(self.referrals)
