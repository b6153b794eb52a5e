"""
Fingerprint matching package.

Scores pending clicks against a launch fingerprint and consumes the winner.
"""

from .scoring import FEATURE_RULES, FeatureRule, score_candidate, select_best
from .service import AttributionStoreError, FingerprintMatcher, fingerprint_matcher

__all__ = [
    "AttributionStoreError",
    "FEATURE_RULES",
    "FeatureRule",
    "FingerprintMatcher",
    "fingerprint_matcher",
    "score_candidate",
    "select_best",
]
