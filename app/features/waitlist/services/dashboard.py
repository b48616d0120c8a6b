from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.waitlist.models.waitlist import Referral, WaitlistUser
from app.features.waitlist.schemas.waitlist import DashboardView, TierRewardsOut
from app.features.waitlist.services.waitlist import get_user_by_code
from app.features.waitlist.utils.email_address import mask_email
from app.features.waitlist.utils.tiers import TIER_THRESHOLDS, compute_progress, unlocked_tiers
from app.platform.config import RewardLinks, settings
from app.platform.exceptions import ForbiddenError, NotFoundError


def referral_link(referral_code: str, base_url: Optional[str] = None) -> str:
    return f"{(base_url or settings.BASE_URL).rstrip('/')}/waitlist?ref={referral_code}"


def tier_rewards(rewards: RewardLinks) -> Dict[int, TierRewardsOut]:
    catalog = {
        0: ("Base Rewards", [
            ("The Cold Email Bible", rewards.cold_email_bible),
            ("Email Generator", rewards.email_generator),
            ("10 Proven Niches + AI Prompt", rewards.niches_prompt),
            ("Exclusive Partner Discounts", rewards.partner_discounts),
        ]),
        1: ("Tier 1", [("Subject Line & CTA Masterclass", rewards.tier_1)]),
        2: ("Tier 2", [("Offer Creation System + Custom GPT", rewards.tier_2)]),
        3: ("Tier 3", [("Dream 100 System + 1:1 Strategy Call", rewards.tier_3)]),
        4: ("Tier 4", [("Complete Agency Roadmap", rewards.tier_4)]),
    }
    return {
        tier: TierRewardsOut(
            name=name,
            referrals_required=TIER_THRESHOLDS.get(tier, 0),
            rewards=[{"name": reward, "link": link} for reward, link in items],
        )
        for tier, (name, items) in catalog.items()
    }


def build_dashboard(
    user: WaitlistUser,
    referrals: Iterable[Tuple[Optional[str], datetime]],
    rewards: RewardLinks,
    base_url: Optional[str] = None,
) -> DashboardView:
    """Read-only dashboard for a verified user. `referrals` is (email, date), newest first."""
    progress = compute_progress(user.current_tier, user.referral_count)

    return DashboardView(
        email=mask_email(user.email),
        referral_code=user.referral_code,
        referral_link=referral_link(user.referral_code, base_url),
        current_tier=user.current_tier,
        referral_count=user.referral_count,
        next_tier=progress.next_tier,
        referrals_to_next_tier=progress.referrals_to_next_tier,
        progress=progress.progress,
        tier_rewards=tier_rewards(rewards),
        unlocked_tiers=unlocked_tiers(user.current_tier),
        referral_list=[
            {"email": mask_email(email) if email else "Unknown", "date": date}
            for email, date in referrals
        ],
        joined_at=user.created_at,
    )


async def list_referrals(db: AsyncSession, referrer_id: str, limit: int):
    result = await db.execute(
        select(WaitlistUser.email, Referral.created_at)
        .select_from(Referral)
        .outerjoin(WaitlistUser, WaitlistUser.id == Referral.referred_id)
        .where(Referral.referrer_id == referrer_id)
        .order_by(Referral.created_at.desc())
        .limit(limit)
    )
    return [(row.email, row.created_at) for row in result.all()]


async def get_dashboard(
    db: AsyncSession,
    referral_code: str,
    rewards: Optional[RewardLinks] = None,
    base_url: Optional[str] = None,
) -> DashboardView:
    user = await get_user_by_code(db, referral_code)
    if user is None:
        raise NotFoundError("User not found")
    if not user.email_verified:
        raise ForbiddenError("Email not verified", data={"email_verified": False})

    referrals = await list_referrals(db, user.id, settings.DASHBOARD_REFERRAL_LIMIT)
    return build_dashboard(user, referrals, rewards or settings.reward_links(), base_url)
