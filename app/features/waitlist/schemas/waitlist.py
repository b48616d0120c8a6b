from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from app.platform.schemas import APIResponse


# Request emails are checked by normalize_email so a missing or malformed
# address is a 400 ValidationError rather than a 422
class SignupIn(BaseModel):
    email: Optional[str] = Field(None, max_length=255)
    referral_code: Optional[str] = Field(None, max_length=32)


class ResendLinkIn(BaseModel):
    email: Optional[str] = Field(None, max_length=255)


class SignupOut(BaseModel):
    email: EmailStr
    verification_url: Optional[str] = None


class RewardOut(BaseModel):
    name: str
    link: str


class TierRewardsOut(BaseModel):
    name: str
    referrals_required: int
    rewards: List[RewardOut]


class ReferralListItem(BaseModel):
    email: str
    date: datetime


class DashboardView(BaseModel):
    email: str
    referral_code: str
    referral_link: str
    current_tier: int
    referral_count: int
    next_tier: Optional[int]
    referrals_to_next_tier: int
    progress: int
    tier_rewards: Dict[int, TierRewardsOut]
    unlocked_tiers: List[int]
    referral_list: List[ReferralListItem]
    joined_at: datetime


class ValidateCodeOut(BaseModel):
    valid: bool
    referral_code: str


class LeaderboardEntry(BaseModel):
    rank: int
    referral_code: str
    referral_count: int
    tier: int


class WaitlistStats(BaseModel):
    total_users: int
    total_referrals: int
    leaderboard: List[LeaderboardEntry]


class DashboardResponse(APIResponse[DashboardView]):
    pass


class StatsResponse(APIResponse[WaitlistStats]):
    pass
