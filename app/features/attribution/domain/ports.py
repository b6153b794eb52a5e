"""
Storage contract used by the fingerprint matcher.

The matcher only needs candidate retrieval and a conditional consume, so any
backend with an atomic row-level update can satisfy it.
"""

from datetime import datetime
from typing import Protocol

from .models import ClickFingerprint


class ClickStore(Protocol):
    """Candidate retrieval and at-most-once consumption of click records."""

    async def query_candidates(
        self, platform: str, now: datetime, limit: int
    ) -> list[ClickFingerprint]:
        """Unmatched, unexpired clicks for the platform, newest first, at most `limit`."""
        ...

    async def try_consume(self, click_id: str, now: datetime) -> bool:
        """Mark the click matched if it is still unmatched. True iff this call did it."""
        ...
