"""
Repository subpackage for deferred attribution.
"""

from .click_repository import ClickRepository, ClickRepositoryError, click_repository
from .referral_repository import ReferralRepository, referral_repository

__all__ = [
    "ClickRepository",
    "ClickRepositoryError",
    "ReferralRepository",
    "click_repository",
    "referral_repository",
]
