from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.waitlist.models.waitlist import Referral, WaitlistUser
from app.features.waitlist.services.verification import issue_verification_token
from app.features.waitlist.utils.email_address import is_disposable_email, normalize_email
from app.features.waitlist.utils.referral_code_generator import (
    generate_unique_referral_code,
    normalize_referral_code,
)
from app.platform.db.base import utcnow
from app.platform.exceptions import ConflictError, ValidationError
from app.platform.logger import get_logger

logger = get_logger(__name__)

MAX_INSERT_ATTEMPTS = 5
LEADERBOARD_SIZE = 10


@dataclass
class SignupResult:
    user: WaitlistUser
    verification_token: str


@dataclass
class ResendResult:
    # "unknown", "dashboard" or "verification"
    outcome: str
    user: Optional[WaitlistUser] = None
    verification_token: Optional[str] = None


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[WaitlistUser]:
    result = await db.execute(select(WaitlistUser).where(WaitlistUser.email == email))
    return result.scalar_one_or_none()


async def get_user_by_code(db: AsyncSession, referral_code: str) -> Optional[WaitlistUser]:
    result = await db.execute(
        select(WaitlistUser).where(WaitlistUser.referral_code == normalize_referral_code(referral_code))
    )
    return result.scalar_one_or_none()


async def get_verified_user_by_code(db: AsyncSession, referral_code: str) -> Optional[WaitlistUser]:
    result = await db.execute(
        select(WaitlistUser).where(
            WaitlistUser.referral_code == normalize_referral_code(referral_code),
            WaitlistUser.email_verified.is_(True),
        )
    )
    return result.scalar_one_or_none()


async def update_user(db: AsyncSession, user_id: str, **values) -> int:
    """
    Apply `values` to one user and stamp `updated_at`.

    Does not commit. Returns the number of rows touched.
    """
    values.setdefault("updated_at", utcnow())
    result = await db.execute(
        update(WaitlistUser)
        .where(WaitlistUser.id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _already_registered(user: WaitlistUser) -> ConflictError:
    return ConflictError(
        "Email already registered",
        data={
            "already_registered": True,
            "email_verified": bool(user.email_verified),
            "referral_code": user.referral_code if user.email_verified else None,
        },
    )


async def signup(
    db: AsyncSession,
    email: str,
    referral_code: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> SignupResult:
    """
    Register `email` as an unverified waitlist user.

    A referral code only counts when it belongs to a verified user; anything
    else is ignored rather than rejected.
    """
    email = normalize_email(email)
    if is_disposable_email(email):
        raise ValidationError("Please use a non-disposable email address")

    existing = await get_user_by_email(db, email)
    if existing:
        raise _already_registered(existing)

    referrer = None
    if normalize_referral_code(referral_code):
        referrer = await get_verified_user_by_code(db, referral_code)
        if referrer is None:
            logger.info(f"Ignoring unknown referral code {referral_code!r} for {email}")

    # plain values: a rollback on collision expires `referrer`
    referred_by_id = referrer.id if referrer else None
    referred_by_code = referrer.referral_code if referrer else None
    token, expires = issue_verification_token()

    for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
        user = WaitlistUser(
            email=email,
            email_verified=False,
            verification_token=token,
            verification_token_expires=expires,
            referral_code=await generate_unique_referral_code(db),
            referred_by_id=referred_by_id,
            referred_by_code=referred_by_code,
            referral_count=0,
            current_tier=0,
            ip_address=ip_address,
            convertkit_synced=False,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await get_user_by_email(db, email)
            if existing:
                raise _already_registered(existing)
            logger.warning(f"Referral code collision on signup for {email} (attempt {attempt})")
            continue

        await db.refresh(user)
        logger.info(f"New waitlist signup {email} with code {user.referral_code}")
        return SignupResult(user=user, verification_token=token)

    raise RuntimeError(f"Could not allocate a unique referral code after {MAX_INSERT_ATTEMPTS} attempts")


async def resend_link(db: AsyncSession, email: str) -> ResendResult:
    """
    Work out which link to re-send. Unverified users get a fresh token, which
    invalidates the previous one.
    """
    user = await get_user_by_email(db, normalize_email(email))
    if user is None:
        return ResendResult(outcome="unknown")

    if user.email_verified:
        return ResendResult(outcome="dashboard", user=user)

    token, expires = issue_verification_token()
    await update_user(db, user.id, verification_token=token, verification_token_expires=expires)
    await db.commit()
    await db.refresh(user)
    return ResendResult(outcome="verification", user=user, verification_token=token)


async def validate_referral_code(db: AsyncSession, referral_code: str) -> dict:
    code = normalize_referral_code(referral_code)
    user = await get_verified_user_by_code(db, code) if code else None
    return {"valid": user is not None, "referral_code": code}


async def get_stats(db: AsyncSession) -> dict:
    total_users = await db.scalar(
        select(func.count(WaitlistUser.id)).where(WaitlistUser.email_verified.is_(True))
    )
    total_referrals = await db.scalar(select(func.count(Referral.id)))

    result = await db.execute(
        select(WaitlistUser.referral_code, WaitlistUser.referral_count, WaitlistUser.current_tier)
        .where(WaitlistUser.email_verified.is_(True), WaitlistUser.referral_count > 0)
        .order_by(WaitlistUser.referral_count.desc(), WaitlistUser.created_at.asc())
        .limit(LEADERBOARD_SIZE)
    )

    return {
        "total_users": total_users or 0,
        "total_referrals": total_referrals or 0,
        "leaderboard": [
            {
                "rank": index,
                "referral_code": row.referral_code,
                "referral_count": row.referral_count,
                "tier": row.current_tier,
            }
            for index, row in enumerate(result.all(), start=1)
        ],
    }
