"""
Idempotent schema bootstrap for the attribution tables.

Tables:
- click_records: one row per iOS referral click awaiting deferred matching
- referrals: applied referrals, unique per (referred user, code)
"""

from app.db.pool import get_db_transaction
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    # gen_random_uuid() is built in from Postgres 13
    """
    CREATE TABLE IF NOT EXISTS click_records (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        referral_code TEXT NOT NULL,
        ip_address TEXT NOT NULL,
        user_agent TEXT,
        platform TEXT NOT NULL,
        os_version TEXT,
        device_model TEXT,
        screen_width REAL,
        screen_height REAL,
        language TEXT,
        timezone TEXT,
        matched BOOLEAN NOT NULL DEFAULT FALSE,
        matched_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        expires_at TIMESTAMPTZ NOT NULL
    )
    """,
    # Serves the candidate query: unmatched rows per platform, newest first
    """
    CREATE INDEX IF NOT EXISTS idx_click_records_pending
        ON click_records (platform, created_at DESC)
        WHERE matched = FALSE
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_click_records_expires_at
        ON click_records (expires_at)
    """,
    """
    CREATE TABLE IF NOT EXISTS referrals (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        referrer_user_id TEXT NOT NULL,
        referred_user_id TEXT NOT NULL,
        referral_code TEXT NOT NULL,
        bonus_applied BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT uq_referrals_referred_code UNIQUE (referred_user_id, referral_code)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_referrals_referrer
        ON referrals (referrer_user_id)
    """,
)


async def ensure_schema() -> None:
    """Create tables and indexes if they do not exist."""

    async with await get_db_transaction() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)

    logger.info("Database schema ensured", statement_count=len(SCHEMA_STATEMENTS))
