"""
referral.py
-----------
Purpose:
    Referral bookkeeping endpoints, called by the main application after a
    match has been returned to the app.

    - POST /api/referral/apply: record a referral once per (referred user, code)
    - GET /api/referral/stats/{user_id}: referrals made by and for a user
"""

from fastapi import APIRouter, Depends, HTTPException, status

from app.db.helpers import DatabaseError
from app.features.attribution.services import (
    DuplicateReferralError,
    ReferralService,
    SelfReferralError,
    referral_service,
)
from app.infrastructure.observability.logging import get_logger
from app.models.api.attribution_request import ReferralApplyRequest
from app.models.api.attribution_response import ReferralApplyResponse, ReferralStatsResponse

router = APIRouter(prefix="/api/referral", tags=["referrals"])
logger = get_logger(__name__)


def get_referral_service() -> ReferralService:
    return referral_service


@router.post("/apply", response_model=ReferralApplyResponse)
async def apply_referral(
    body: ReferralApplyRequest,
    service: ReferralService = Depends(get_referral_service),
):
    """
    Record a referral reward.

    Raises:
        400: referrer and referred user are the same
        409: referral already applied
        503: database unavailable
    """
    try:
        applied = await service.apply_referral(
            body.referral_code, body.referrer_user_id, body.referred_user_id
        )
    except SelfReferralError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except DuplicateReferralError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except DatabaseError as e:
        logger.error("Referral apply failed", operation=e.operation, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Referrals temporarily unavailable"
        ) from e

    return ReferralApplyResponse(
        success=True,
        referrer_bonus=applied.referrer_bonus,
        referred_bonus=applied.referred_bonus,
        message="Referral recorded successfully. Update bonus points in your main database.",
    )


@router.get("/stats/{user_id}", response_model=ReferralStatsResponse)
async def referral_stats(
    user_id: str,
    service: ReferralService = Depends(get_referral_service),
):
    try:
        stats = await service.get_stats(user_id)
    except DatabaseError as e:
        logger.error("Referral stats failed", user_id=user_id, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Referrals temporarily unavailable"
        ) from e

    return ReferralStatsResponse.from_domain(stats)
