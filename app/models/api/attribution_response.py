# app/models/api/attribution_response.py
from datetime import datetime

from pydantic import BaseModel, Field

from app.features.attribution.domain import MatchResult, ReferralRecord, ReferralStats


class MatchResponse(BaseModel):
    """Response for POST /api/match; optional fields only appear when matched."""

    matched: bool
    referral_code: str | None = None
    confidence: float | None = Field(default=None, ge=0, le=1)
    click_id: str | None = None

    @classmethod
    def from_domain(cls, result: MatchResult) -> "MatchResponse":
        return cls(
            matched=result.matched,
            referral_code=result.referral_code,
            confidence=result.confidence,
            click_id=result.click_id,
        )


class DeviceInfo(BaseModel):
    ip_address: str | None = None
    user_agent: str | None = None


class DeviceInfoResponse(BaseModel):
    """Response for GET /api/device-info"""

    device_info: DeviceInfo


class ReferralItem(BaseModel):
    id: str
    referrer_user_id: str
    referred_user_id: str
    referral_code: str
    bonus_applied: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, record: ReferralRecord) -> "ReferralItem":
        return cls(
            id=record.id,
            referrer_user_id=record.referrer_user_id,
            referred_user_id=record.referred_user_id,
            referral_code=record.referral_code,
            bonus_applied=record.bonus_applied,
            created_at=record.created_at,
        )


class ReferralApplyResponse(BaseModel):
    """Response for POST /api/referral/apply"""

    success: bool
    referrer_bonus: int
    referred_bonus: int
    message: str


class ReferralStatsResponse(BaseModel):
    """Response for GET /api/referral/stats/{user_id}"""

    total_referrals: int
    referrals: list[ReferralItem]
    referred_by: ReferralItem | None = None

    @classmethod
    def from_domain(cls, stats: ReferralStats) -> "ReferralStatsResponse":
        return cls(
            total_referrals=stats.total_referrals,
            referrals=[ReferralItem.from_domain(r) for r in stats.referrals],
            referred_by=ReferralItem.from_domain(stats.referred_by) if stats.referred_by else None,
        )
