from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class AdminWaitlistUser(BaseModel):
    """A waitlist user as shown to admins. Verification tokens are never included."""
    id: str
    email: str
    email_verified: bool
    referral_code: str
    referred_by_code: Optional[str] = None
    referral_count: int
    current_tier: int
    tier1_unlocked_at: Optional[datetime] = None
    tier2_unlocked_at: Optional[datetime] = None
    tier3_unlocked_at: Optional[datetime] = None
    tier4_unlocked_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    convertkit_synced: bool
    convertkit_subscriber_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AdminWaitlistStats(BaseModel):
    total: int
    verified: int
    unverified: int
    total_referrals: int
    tier_breakdown: Dict[str, int]


class AdminUserList(BaseModel):
    users: List[AdminWaitlistUser]
    pagination: Pagination
    stats: AdminWaitlistStats
