"""
Domain subpackage for deferred attribution.
"""

from .models import (
    ClickFingerprint,
    ClickOutcome,
    DeviceInfo,
    LaunchFingerprint,
    MatchResult,
    ReferralRecord,
    ReferralStats,
)
from .ports import ClickStore

__all__ = [
    "ClickFingerprint",
    "ClickOutcome",
    "ClickStore",
    "DeviceInfo",
    "LaunchFingerprint",
    "MatchResult",
    "ReferralRecord",
    "ReferralStats",
]
