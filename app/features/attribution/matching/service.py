"""
Fingerprint matcher - attributes a first app launch to a recent referral click.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime

from app.config import settings
from app.db.helpers import DatabaseError
from app.features.attribution.domain import (
    ClickFingerprint,
    ClickStore,
    LaunchFingerprint,
    MatchResult,
)
from app.features.attribution.repository import click_repository
from app.infrastructure.observability.logging import get_logger

from .scoring import (
    FEATURE_RULES,
    FeatureRule,
    ScoredCandidate,
    agreeing_features,
    score_candidate,
    select_best,
)

logger = get_logger(__name__)


class AttributionStoreError(DatabaseError):
    """The click store failed during retrieval or consumption. Safe to retry."""

    def __init__(self, message: str, operation: str):
        super().__init__(message, operation=operation, recoverable=True)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class FingerprintMatcher:
    """
    Read-score-select-consume over pending clicks.

    Consumption is a compare-and-set on the store, so two concurrent launches
    can never claim the same click. When a launch loses that race it moves on
    to the next-best candidate above the floor.
    """

    def __init__(
        self,
        store: ClickStore | None = None,
        *,
        rules: Sequence[FeatureRule] = FEATURE_RULES,
        confidence_floor: float | None = None,
        candidate_limit: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store or click_repository
        self._rules = tuple(rules)
        self._confidence_floor = (
            settings.MATCH_CONFIDENCE_FLOOR if confidence_floor is None else confidence_floor
        )
        self._candidate_limit = candidate_limit or settings.MATCH_CANDIDATE_LIMIT
        self._clock = clock

    async def match(self, launch: LaunchFingerprint) -> MatchResult:
        """
        Find and consume the click that best matches a launch fingerprint.

        Returns:
            MatchResult with the referral code when a click was consumed,
            MatchResult(matched=False) otherwise

        Raises:
            AttributionStoreError: store unavailable during retrieval or consumption
        """
        candidates = await self._load_candidates(launch.platform)
        if not candidates:
            logger.info("No pending clicks to match", platform=launch.platform)
            return MatchResult.no_match()

        remaining = [
            ScoredCandidate(
                click=click,
                score=score_candidate(click, launch, self._rules),
                position=position,
            )
            for position, click in enumerate(candidates)
        ]

        while True:
            best = select_best(remaining, self._confidence_floor)
            if best is None:
                logger.info(
                    "No click above confidence floor",
                    platform=launch.platform,
                    candidate_count=len(candidates),
                    top_score=max((c.score for c in remaining), default=None),
                    confidence_floor=self._confidence_floor,
                )
                return MatchResult.no_match()

            if await self._consume(best.click):
                logger.info(
                    "Fingerprint match found",
                    click_id=best.click.id,
                    referral_code=best.click.referral_code,
                    confidence=best.score,
                    features=agreeing_features(best.click, launch, self._rules),
                    candidate_count=len(candidates),
                )
                return MatchResult.for_click(best.click, best.score)

            logger.warning(
                "Click consumed by a concurrent match, trying next candidate",
                click_id=best.click.id,
                confidence=best.score,
            )
            remaining = [c for c in remaining if c is not best]

    async def _load_candidates(self, platform: str) -> list[ClickFingerprint]:
        try:
            return await self._store.query_candidates(
                platform, self._clock(), limit=self._candidate_limit
            )
        except DatabaseError as e:
            logger.error("Candidate retrieval failed", platform=platform, error=str(e))
            raise AttributionStoreError(
                f"Candidate retrieval failed: {e}", operation="query_candidates"
            ) from e

    async def _consume(self, click: ClickFingerprint) -> bool:
        try:
            return await self._store.try_consume(click.id, self._clock())
        except DatabaseError as e:
            # The conditional update did not commit, so the click stays eligible
            logger.error("Click consumption failed", click_id=click.id, error=str(e))
            raise AttributionStoreError(
                f"Click consumption failed: {e}", operation="try_consume"
            ) from e


fingerprint_matcher = FingerprintMatcher()
