"""
Service layer for deferred attribution.
"""

from .click_service import ClickService, click_service
from .device_classifier import build_redirect_url, classify_user_agent
from .referral_service import (
    AppliedReferral,
    DuplicateReferralError,
    ReferralService,
    ReferralServiceError,
    SelfReferralError,
    referral_service,
)

__all__ = [
    "AppliedReferral",
    "ClickService",
    "DuplicateReferralError",
    "ReferralService",
    "ReferralServiceError",
    "SelfReferralError",
    "build_redirect_url",
    "classify_user_agent",
    "click_service",
    "referral_service",
]
