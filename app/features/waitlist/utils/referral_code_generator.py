import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.waitlist.models.waitlist import WaitlistUser

# No 0/O or 1/I
REFERRAL_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_PREFIX = "LF-"
REFERRAL_CODE_LENGTH = 6


def generate_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    return REFERRAL_CODE_PREFIX + "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length)
    )


def normalize_referral_code(code: str | None) -> str:
    return (code or "").strip().upper()


async def generate_unique_referral_code(db: AsyncSession) -> str:
    """
    Generate a code not yet present in the table.

    This is only a pre-check; the unique index on `referral_code` is what
    actually prevents duplicates, so callers must still handle IntegrityError.
    """
    referral_code = generate_referral_code()
    while True:
        result = await db.execute(
            select(WaitlistUser.id).where(WaitlistUser.referral_code == referral_code)
        )
        if result.scalar_one_or_none() is None:
            return referral_code
        referral_code = generate_referral_code()
