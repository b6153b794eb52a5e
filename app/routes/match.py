"""
match.py
--------
Purpose:
    Endpoints called by the iOS app on first launch.

    - POST /api/match: attribute the install to a recent referral click
    - GET /api/device-info: echo the IP and user agent the server sees, so the
      app can report the same network address it had at click time
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.features.attribution.matching import (
    AttributionStoreError,
    FingerprintMatcher,
    fingerprint_matcher,
)
from app.infrastructure.observability.logging import get_logger
from app.models.api.attribution_request import LaunchFingerprintRequest
from app.models.api.attribution_response import DeviceInfo, DeviceInfoResponse, MatchResponse

router = APIRouter(prefix="/api", tags=["attribution"])
logger = get_logger(__name__)

RETRY_AFTER_SECONDS = "5"


def get_fingerprint_matcher() -> FingerprintMatcher:
    return fingerprint_matcher


@router.post("/match", response_model=MatchResponse, response_model_exclude_none=True)
async def match_install(
    body: LaunchFingerprintRequest,
    request: Request,
    matcher: FingerprintMatcher = Depends(get_fingerprint_matcher),
):
    """
    Match a first-launch fingerprint against pending referral clicks.

    Returns:
        MatchResponse: matched flag, plus referral_code/confidence/click_id on a match

    Raises:
        422: platform missing or invalid
        503: click store unavailable (safe to retry; nothing was consumed)
    """
    launch = body.to_domain(fallback_ip=getattr(request.state, "ip_address", None))

    try:
        result = await matcher.match(launch)
    except AttributionStoreError as e:
        logger.error("Match request failed", operation=e.operation, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Attribution temporarily unavailable",
            headers={"Retry-After": RETRY_AFTER_SECONDS},
        ) from e

    return MatchResponse.from_domain(result)


@router.get("/device-info", response_model=DeviceInfoResponse)
async def device_info(request: Request):
    """Return the caller's address and user agent as seen by the server."""
    return DeviceInfoResponse(
        device_info=DeviceInfo(
            ip_address=getattr(request.state, "ip_address", None),
            user_agent=request.headers.get("user-agent", ""),
        )
    )
