"""
Deferred deep-link attribution feature package.

Keeps every layer of the attribution flow together: domain models, the
fingerprint matcher, repositories and the click/referral services. HTTP
routes live in app.routes and call into this package.
"""

from .domain import LaunchFingerprint, MatchResult  # noqa: F401
from .matching import FingerprintMatcher, fingerprint_matcher  # noqa: F401
from .services import click_service, referral_service  # noqa: F401
