from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class UserVerified:
    user_id: str
    email: str
    referral_code: str
    referred_by_code: Optional[str] = None


@dataclass(frozen=True)
class ReferralCredited:
    email: str
    referral_count: int


@dataclass(frozen=True)
class TierUpgraded:
    email: str
    tier: int
