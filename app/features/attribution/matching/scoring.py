"""
Fingerprint similarity scoring and candidate selection.

Each feature rule contributes its weight when the stored click and the launch
fingerprint agree on it. Every rule's weight is counted in the denominator
whether or not the attribute is present, so missing data lowers the score
instead of being ignored. Scores are normalized to [0, 1].
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from app.features.attribution.domain import ClickFingerprint, LaunchFingerprint

Comparator = Callable[[ClickFingerprint, LaunchFingerprint], bool]

# Screen dimensions differ slightly between the landing page and the native app
SCREEN_TOLERANCE = 10

# Rounding keeps boundary sums (e.g. exactly the floor) stable under float addition
SCORE_PRECISION = 6


def _present(value) -> bool:
    return value is not None and value != ""


def exact_match(attribute: str) -> Comparator:
    """Agree when both sides carry the attribute and the values are equal."""

    def _agrees(click: ClickFingerprint, launch: LaunchFingerprint) -> bool:
        stored = getattr(click, attribute)
        observed = getattr(launch, attribute)
        return _present(stored) and _present(observed) and stored == observed

    return _agrees


def screen_within_tolerance(tolerance: float = SCREEN_TOLERANCE) -> Comparator:
    """Agree when both dimensions are known and each differs by less than `tolerance`."""

    def _agrees(click: ClickFingerprint, launch: LaunchFingerprint) -> bool:
        # A zero dimension means the landing page could not read the screen
        if not click.screen_width or not click.screen_height:
            return False
        if launch.screen_width is None or launch.screen_height is None:
            return False
        return (
            abs(click.screen_width - launch.screen_width) < tolerance
            and abs(click.screen_height - launch.screen_height) < tolerance
        )

    return _agrees


@dataclass(frozen=True, slots=True)
class FeatureRule:
    name: str
    weight: float
    agrees: Comparator

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(f"Feature weight must be non-negative: {self.name}={self.weight}")


FEATURE_RULES: tuple[FeatureRule, ...] = (
    FeatureRule("ip_address", 0.40, exact_match("ip_address")),
    FeatureRule("device_model", 0.20, exact_match("device_model")),
    FeatureRule("os_version", 0.15, exact_match("os_version")),
    FeatureRule("screen_size", 0.10, screen_within_tolerance()),
    FeatureRule("language", 0.075, exact_match("language")),
    FeatureRule("timezone", 0.075, exact_match("timezone")),
)


@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    click: ClickFingerprint
    score: float
    position: int  # index in the newest-first candidate list


def score_candidate(
    click: ClickFingerprint,
    launch: LaunchFingerprint,
    rules: Sequence[FeatureRule] = FEATURE_RULES,
) -> float:
    """Weighted agreement between a stored click and a launch fingerprint, in [0, 1]."""

    total_weight = 0.0
    satisfied_weight = 0.0
    for rule in rules:
        total_weight += rule.weight
        if rule.agrees(click, launch):
            satisfied_weight += rule.weight

    if total_weight <= 0:
        return 0.0

    return round(satisfied_weight / total_weight, SCORE_PRECISION)


def agreeing_features(
    click: ClickFingerprint,
    launch: LaunchFingerprint,
    rules: Sequence[FeatureRule] = FEATURE_RULES,
) -> list[str]:
    """Names of the rules the pair agrees on."""
    return [rule.name for rule in rules if rule.agrees(click, launch)]


def outranks(candidate: ScoredCandidate, incumbent: ScoredCandidate) -> bool:
    """Order by score descending, then by recency (earlier position wins)."""
    if candidate.score != incumbent.score:
        return candidate.score > incumbent.score
    return candidate.position < incumbent.position


def select_best(
    candidates: Iterable[ScoredCandidate], confidence_floor: float
) -> ScoredCandidate | None:
    """
    Single pass over the candidates keeping the top-ranked one at or above the floor.

    Returns None when nothing clears the floor.
    """
    best: ScoredCandidate | None = None
    for candidate in candidates:
        if candidate.score < confidence_floor:
            continue
        if best is None or outranks(candidate, best):
            best = candidate
    return best
