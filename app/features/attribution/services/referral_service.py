"""
Referral applier - records which referral brought a user in.

Bonus points are credited by the main application; this service only
guarantees each (referred user, code) pair is applied once.
"""

from dataclasses import dataclass

from app.config import settings
from app.features.attribution.domain import ReferralRecord, ReferralStats
from app.features.attribution.repository import ReferralRepository, referral_repository
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ReferralServiceError(Exception):
    """Custom exception for referral service operations."""

    def __init__(self, message: str, referral_code: str | None = None, recoverable: bool = False):
        super().__init__(message)
        self.referral_code = referral_code
        self.recoverable = recoverable


class SelfReferralError(ReferralServiceError):
    """Referrer and referred user are the same."""


class DuplicateReferralError(ReferralServiceError):
    """The referred user already has this code applied."""


@dataclass(slots=True)
class AppliedReferral:
    referral: ReferralRecord
    referrer_bonus: int
    referred_bonus: int


class ReferralService:
    def __init__(self, repository: ReferralRepository | None = None) -> None:
        self._repository = repository or referral_repository

    async def apply_referral(
        self, referral_code: str, referrer_user_id: str, referred_user_id: str
    ) -> AppliedReferral:
        """
        Record a referral once per (referred user, code).

        Raises:
            SelfReferralError: referrer and referred user are the same
            DuplicateReferralError: the pair was already recorded
        """
        if referrer_user_id == referred_user_id:
            raise SelfReferralError("Cannot refer yourself", referral_code=referral_code)

        referral = await self._repository.create_referral(
            referrer_user_id, referred_user_id, referral_code
        )
        if referral is None:
            logger.info(
                "Referral already applied",
                referral_code=referral_code,
                referred_user_id=referred_user_id,
            )
            raise DuplicateReferralError("Referral already applied", referral_code=referral_code)

        logger.info(
            "Referral applied",
            referral_id=referral.id,
            referral_code=referral_code,
            referrer_user_id=referrer_user_id,
            referred_user_id=referred_user_id,
        )
        return AppliedReferral(
            referral=referral,
            referrer_bonus=settings.REFERRER_BONUS,
            referred_bonus=settings.REFERRED_BONUS,
        )

    async def get_stats(self, user_id: str) -> ReferralStats:
        referrals = await self._repository.list_by_referrer(user_id)
        referred_by = await self._repository.find_referred_by(user_id)
        return ReferralStats(user_id=user_id, referrals=referrals, referred_by=referred_by)


referral_service = ReferralService()
