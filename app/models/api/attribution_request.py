# app/models/api/attribution_request.py
from typing import Literal

from pydantic import BaseModel, Field

from app.features.attribution.domain import LaunchFingerprint


class LaunchFingerprintRequest(BaseModel):
    """Request body for POST /api/match, sent by the app on first launch."""

    platform: Literal["ios", "android"]
    ip_address: str | None = Field(
        default=None, description="Defaults to the address the request came from"
    )
    os_version: str | None = None
    device_model: str | None = None
    screen_width: float | None = Field(default=None, ge=0)
    screen_height: float | None = Field(default=None, ge=0)
    language: str | None = None
    timezone: str | None = None

    def to_domain(self, fallback_ip: str | None = None) -> LaunchFingerprint:
        return LaunchFingerprint(
            platform=self.platform,
            ip_address=self.ip_address or fallback_ip,
            os_version=self.os_version,
            device_model=self.device_model,
            screen_width=self.screen_width,
            screen_height=self.screen_height,
            language=self.language,
            timezone=self.timezone,
        )


class ReferralApplyRequest(BaseModel):
    """Request body for POST /api/referral/apply."""

    referral_code: str = Field(..., min_length=1, max_length=64)
    referrer_user_id: str = Field(..., min_length=1)
    referred_user_id: str = Field(..., min_length=1)
