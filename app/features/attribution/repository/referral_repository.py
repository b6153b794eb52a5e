"""
Persistence for applied referrals.
"""

from app.db.helpers import fetch_all, fetch_one, with_db_retry
from app.features.attribution.domain import ReferralRecord
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ReferralRepository:
    """Insert and lookup helpers over the referrals table."""

    REFERRAL_SELECT_COLUMNS = """
        id, referrer_user_id, referred_user_id, referral_code, bonus_applied, created_at
    """

    @staticmethod
    def _row_to_referral(row: dict | None) -> ReferralRecord | None:
        if not row:
            return None

        return ReferralRecord(
            id=str(row["id"]),
            referrer_user_id=row["referrer_user_id"],
            referred_user_id=row["referred_user_id"],
            referral_code=row["referral_code"],
            bonus_applied=bool(row.get("bonus_applied")),
            created_at=row["created_at"],
        )

    async def create_referral(
        self, referrer_user_id: str, referred_user_id: str, referral_code: str
    ) -> ReferralRecord | None:
        """
        Insert a referral unless (referred user, code) already exists.

        Returns None when the pair was already recorded.
        """

        query = f"""
            INSERT INTO referrals (
                referrer_user_id, referred_user_id, referral_code, bonus_applied
            )
            VALUES (%s, %s, %s, TRUE)
            ON CONFLICT (referred_user_id, referral_code) DO NOTHING
            RETURNING {self.REFERRAL_SELECT_COLUMNS}
        """

        row = await fetch_one(query, (referrer_user_id, referred_user_id, referral_code))
        return self._row_to_referral(row)

    @with_db_retry(max_retries=2, base_delay=0.05)
    async def list_by_referrer(self, referrer_user_id: str) -> list[ReferralRecord]:
        query = f"""
            SELECT {self.REFERRAL_SELECT_COLUMNS}
            FROM referrals
            WHERE referrer_user_id = %s
            ORDER BY created_at DESC
        """

        rows = await fetch_all(query, (referrer_user_id,))
        return [self._row_to_referral(row) for row in rows]

    @with_db_retry(max_retries=2, base_delay=0.05)
    async def find_referred_by(self, referred_user_id: str) -> ReferralRecord | None:
        query = f"""
            SELECT {self.REFERRAL_SELECT_COLUMNS}
            FROM referrals
            WHERE referred_user_id = %s
            ORDER BY created_at ASC
            LIMIT 1
        """

        row = await fetch_one(query, (referred_user_id,))
        return self._row_to_referral(row)


referral_repository = ReferralRepository()
