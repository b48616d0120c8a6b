"""
Tier engine.

Pure functions only: they take the counters as values and return new values,
so they can be exercised without a database.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Mapping, Optional

from app.platform.db.base import utcnow

MAX_TIER = 4

# tier -> referrals required
TIER_THRESHOLDS: Dict[int, int] = {
    1: 3,
    2: 6,
    3: 10,
    4: 20,
}


@dataclass(frozen=True)
class TierUpdate:
    new_tier: int
    changed: bool
    unlocked_at: Dict[int, Optional[datetime]]


@dataclass(frozen=True)
class TierProgress:
    next_tier: Optional[int]
    progress: int
    referrals_to_next_tier: int


def tier_for(referral_count: int) -> int:
    """Highest tier whose threshold is met by `referral_count`."""
    for tier in sorted(TIER_THRESHOLDS, reverse=True):
        if referral_count >= TIER_THRESHOLDS[tier]:
            return tier
    return 0


def threshold_for(tier: int) -> int:
    return TIER_THRESHOLDS.get(tier, 0)


def recompute_tier(
    referral_count: int,
    current_tier: int,
    unlocked_at: Mapping[int, Optional[datetime]],
    now: Optional[datetime] = None,
) -> TierUpdate:
    """
    Work out the tier for `referral_count` without ever lowering `current_tier`.

    Skipped tiers are back-filled: every unset unlock timestamp at or below the
    resulting tier gets the same `now`.
    """
    now = now or utcnow()
    new_tier = current_tier
    for tier in sorted(TIER_THRESHOLDS, reverse=True):
        if tier <= current_tier:
            break
        if referral_count >= TIER_THRESHOLDS[tier]:
            new_tier = tier
            break

    stamped = {tier: unlocked_at.get(tier) for tier in TIER_THRESHOLDS}
    for tier in range(1, new_tier + 1):
        if stamped[tier] is None:
            stamped[tier] = now

    return TierUpdate(new_tier=new_tier, changed=new_tier > current_tier, unlocked_at=stamped)


def compute_progress(current_tier: int, referral_count: int) -> TierProgress:
    if current_tier >= MAX_TIER:
        return TierProgress(next_tier=None, progress=100, referrals_to_next_tier=0)

    next_tier = current_tier + 1
    current_threshold = threshold_for(current_tier)
    next_threshold = TIER_THRESHOLDS[next_tier]

    ratio = 100 * (referral_count - current_threshold) / (next_threshold - current_threshold)
    # round half up, then clamp to 0..100
    progress = min(100, max(0, int(ratio + 0.5) if ratio >= 0 else 0))

    return TierProgress(
        next_tier=next_tier,
        progress=progress,
        referrals_to_next_tier=max(0, next_threshold - referral_count),
    )


def unlocked_tiers(current_tier: int) -> list[int]:
    return [0] + [tier for tier in sorted(TIER_THRESHOLDS) if current_tier >= tier]
