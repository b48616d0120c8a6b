import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.waitlist.models.waitlist import Referral, WaitlistUser
from app.features.waitlist.services.events import ReferralCredited, TierUpgraded, UserVerified
from app.features.waitlist.utils.tiers import recompute_tier
from app.platform.config import settings
from app.platform.db.base import utcnow
from app.platform.exceptions import InvalidTokenError, ValidationError
from app.platform.logger import get_logger

logger = get_logger(__name__)

TOKEN_BYTES = 32  # 256 bits


@dataclass
class VerificationResult:
    user: WaitlistUser
    already_verified: bool = False
    events: List[object] = field(default_factory=list)


def issue_verification_token(now: Optional[datetime] = None) -> Tuple[str, datetime]:
    now = now or utcnow()
    return (
        secrets.token_hex(TOKEN_BYTES),
        now + timedelta(hours=settings.VERIFICATION_TOKEN_TTL_HOURS),
    )


async def _credit_referrer(db: AsyncSession, user: WaitlistUser, now: datetime) -> List[object]:
    """
    Add one referral to `user`'s referrer, raise its tier if needed and record
    the referral edge. Runs inside the caller's transaction.
    """
    # Increment in SQL so concurrent verifications for the same referrer don't lose updates
    credited = await db.execute(
        update(WaitlistUser)
        .where(WaitlistUser.id == user.referred_by_id)
        .values(referral_count=WaitlistUser.referral_count + 1, updated_at=now)
        .returning(
            WaitlistUser.id,
            WaitlistUser.email,
            WaitlistUser.referral_code,
            WaitlistUser.referral_count,
            WaitlistUser.current_tier,
            WaitlistUser.tier1_unlocked_at,
            WaitlistUser.tier2_unlocked_at,
            WaitlistUser.tier3_unlocked_at,
            WaitlistUser.tier4_unlocked_at,
        )
        .execution_options(synchronize_session=False)
    )
    referrer = credited.one_or_none()
    if referrer is None:
        logger.warning(f"Referrer {user.referred_by_id} of {user.email} no longer exists")
        return []

    events: List[object] = [
        ReferralCredited(email=referrer.email, referral_count=referrer.referral_count)
    ]

    tiers = recompute_tier(
        referrer.referral_count,
        referrer.current_tier,
        {
            1: referrer.tier1_unlocked_at,
            2: referrer.tier2_unlocked_at,
            3: referrer.tier3_unlocked_at,
            4: referrer.tier4_unlocked_at,
        },
        now=now,
    )
    if tiers.changed:
        unlock_values = {
            f"tier{tier}_unlocked_at": func.coalesce(getattr(WaitlistUser, f"tier{tier}_unlocked_at"), now)
            for tier in range(1, tiers.new_tier + 1)
        }
        # Only ever raise the tier, and only once per tier
        raised = await db.execute(
            update(WaitlistUser)
            .where(WaitlistUser.id == referrer.id, WaitlistUser.current_tier < tiers.new_tier)
            .values(current_tier=tiers.new_tier, updated_at=now, **unlock_values)
            .execution_options(synchronize_session=False)
        )
        if raised.rowcount == 1:
            logger.info(f"{referrer.email} unlocked tier {tiers.new_tier}")
            events.append(TierUpgraded(email=referrer.email, tier=tiers.new_tier))

    db.add(Referral(referrer_id=referrer.id, referred_id=user.id, referral_code=referrer.referral_code))
    await db.flush()
    return events


async def _reload(db: AsyncSession, user_id: str) -> WaitlistUser:
    result = await db.execute(
        select(WaitlistUser).where(WaitlistUser.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def verify_email(db: AsyncSession, token: Optional[str], now: Optional[datetime] = None) -> VerificationResult:
    """
    Consume a verification token.

    The first successful call marks the user verified, clears the token and
    credits the referrer. Any call that loses the race to a concurrent one
    reports `already_verified` and changes nothing.
    """
    token = (token or "").strip()
    if not token:
        raise ValidationError("Verification token is required")

    now = now or utcnow()
    result = await db.execute(
        select(WaitlistUser).where(
            WaitlistUser.verification_token == token,
            WaitlistUser.verification_token_expires > now,
        )
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise InvalidTokenError()
    # rollback() below expires `user`
    user_id, email = user.id, user.email

    if user.email_verified:
        return VerificationResult(user=user, already_verified=True)

    claimed = await db.execute(
        update(WaitlistUser)
        .where(
            WaitlistUser.id == user_id,
            WaitlistUser.email_verified.is_(False),
            WaitlistUser.verification_token == token,
        )
        .values(
            email_verified=True,
            verification_token=None,
            verification_token_expires=None,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        await db.rollback()
        return VerificationResult(user=await _reload(db, user_id), already_verified=True)

    events: List[object] = []
    try:
        if user.referred_by_id:
            events = await _credit_referrer(db, user, now)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Referral for {email} was already recorded, treating as verified")
        return VerificationResult(user=await _reload(db, user_id), already_verified=True)

    user = await _reload(db, user_id)
    logger.info(f"Verified waitlist email {user.email}")

    events.insert(
        0,
        UserVerified(
            user_id=user.id,
            email=user.email,
            referral_code=user.referral_code,
            referred_by_code=user.referred_by_code,
        ),
    )
    return VerificationResult(user=user, events=events)
