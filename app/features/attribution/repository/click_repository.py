"""
Persistence for referral clicks awaiting deferred matching.

Implements the ClickStore contract on PostgreSQL. Consumption is a single
conditional UPDATE guarded by matched = FALSE, which Postgres applies
atomically per row.
"""

from datetime import datetime, timedelta

from app.db.helpers import DatabaseError, execute_query, fetch_all, fetch_one, with_db_retry
from app.features.attribution.domain import ClickFingerprint
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ClickRepositoryError(DatabaseError):
    """More specific exception for click repository failures."""


class ClickRepository:
    """Read/consume/insert helpers over the click_records table."""

    CLICK_SELECT_COLUMNS = """
        id, referral_code, ip_address, user_agent, platform,
        os_version, device_model, screen_width, screen_height,
        language, timezone, matched, matched_at, created_at, expires_at
    """

    @staticmethod
    def _row_to_click(row: dict) -> ClickFingerprint:
        return ClickFingerprint(
            id=str(row["id"]),
            referral_code=row["referral_code"],
            ip_address=row["ip_address"],
            platform=row["platform"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
            os_version=row.get("os_version"),
            device_model=row.get("device_model"),
            screen_width=row.get("screen_width"),
            screen_height=row.get("screen_height"),
            language=row.get("language"),
            timezone=row.get("timezone"),
            user_agent=row.get("user_agent"),
            matched=bool(row.get("matched")),
            matched_at=row.get("matched_at"),
        )

    @with_db_retry(max_retries=2, base_delay=0.05)
    async def query_candidates(
        self, platform: str, now: datetime, limit: int = 100
    ) -> list[ClickFingerprint]:
        """Unmatched, unexpired clicks for a platform, newest first."""

        query = f"""
            SELECT {self.CLICK_SELECT_COLUMNS}
            FROM click_records
            WHERE matched = FALSE
              AND platform = %s
              AND expires_at > %s
            ORDER BY created_at DESC
            LIMIT %s
        """

        rows = await fetch_all(query, (platform, now, limit))
        return [self._row_to_click(row) for row in rows]

    async def try_consume(self, click_id: str, now: datetime) -> bool:
        """
        Mark a click matched if nobody else has.

        Not retried: a lost reply after a committed update would read as a lost race.
        """

        query = """
            UPDATE click_records
            SET matched = TRUE,
                matched_at = %s
            WHERE id = %s
              AND matched = FALSE
        """

        updated = await execute_query(query, (now, click_id))
        return updated == 1

    async def record_click(
        self,
        *,
        referral_code: str,
        ip_address: str,
        platform: str,
        created_at: datetime,
        ttl: timedelta,
        user_agent: str | None = None,
        os_version: str | None = None,
        device_model: str | None = None,
        screen_width: float | None = None,
        screen_height: float | None = None,
        language: str | None = None,
        timezone: str | None = None,
    ) -> ClickFingerprint:
        """Insert a pending click; expires_at is fixed at created_at + ttl."""

        query = f"""
            INSERT INTO click_records (
                referral_code, ip_address, user_agent, platform,
                os_version, device_model, screen_width, screen_height,
                language, timezone, created_at, expires_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {self.CLICK_SELECT_COLUMNS}
        """

        row = await fetch_one(
            query,
            (
                referral_code,
                ip_address,
                user_agent,
                platform,
                os_version,
                device_model,
                screen_width,
                screen_height,
                language,
                timezone,
                created_at,
                created_at + ttl,
            ),
        )
        if not row:
            raise ClickRepositoryError("Failed to record click", operation="record_click")

        click = self._row_to_click(row)
        logger.info(
            "Click recorded for deferred matching",
            click_id=click.id,
            referral_code=referral_code,
            platform=platform,
        )
        return click

    async def delete_expired_before(self, cutoff: datetime) -> int:
        """Delete clicks that expired before `cutoff`; returns the row count."""

        query = "DELETE FROM click_records WHERE expires_at < %s"
        deleted = await execute_query(query, (cutoff,))
        logger.info("Expired clicks deleted", cutoff=cutoff.isoformat(), count=deleted)
        return deleted


click_repository = ClickRepository()
