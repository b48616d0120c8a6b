from datetime import datetime, timedelta

import pytest

from app.features.waitlist.utils.tiers import (
    MAX_TIER,
    compute_progress,
    recompute_tier,
    tier_for,
    unlocked_tiers,
)

NOW = datetime(2026, 1, 15, 12, 0, 0)
NO_UNLOCKS = {1: None, 2: None, 3: None, 4: None}


@pytest.mark.parametrize(
    "count, tier",
    [(0, 0), (2, 0), (3, 1), (5, 1), (6, 2), (9, 2), (10, 3), (19, 3), (20, 4), (500, 4)],
)
def test_tier_for_thresholds(count, tier):
    assert tier_for(count) == tier


def test_recompute_unlocks_exactly_at_threshold():
    update = recompute_tier(3, 0, NO_UNLOCKS, now=NOW)

    assert update.new_tier == 1
    assert update.changed is True
    assert update.unlocked_at[1] == NOW
    assert update.unlocked_at[2] is None


def test_recompute_below_threshold_is_unchanged():
    update = recompute_tier(2, 0, NO_UNLOCKS, now=NOW)

    assert update.new_tier == 0
    assert update.changed is False
    assert all(ts is None for ts in update.unlocked_at.values())


def test_recompute_jump_backfills_skipped_tiers():
    update = recompute_tier(12, 0, NO_UNLOCKS, now=NOW)

    assert update.new_tier == 3
    assert update.unlocked_at[1] == update.unlocked_at[2] == update.unlocked_at[3] == NOW
    assert update.unlocked_at[4] is None


def test_recompute_keeps_existing_timestamps():
    earlier = NOW - timedelta(days=3)
    update = recompute_tier(6, 1, {1: earlier, 2: None, 3: None, 4: None}, now=NOW)

    assert update.new_tier == 2
    assert update.unlocked_at[1] == earlier
    assert update.unlocked_at[2] == NOW


def test_recompute_never_lowers_tier():
    earlier = NOW - timedelta(days=3)
    unlocked = {1: earlier, 2: earlier, 3: None, 4: None}

    update = recompute_tier(1, 2, unlocked, now=NOW)

    assert update.new_tier == 2
    assert update.changed is False
    assert update.unlocked_at[1] == earlier
    assert update.unlocked_at[2] == earlier


def test_progress_halfway_through_first_tier():
    progress = compute_progress(0, 1)

    assert progress.next_tier == 1
    assert progress.progress == 33
    assert progress.referrals_to_next_tier == 2


def test_progress_between_tiers():
    # 4 referrals at tier 1: 1 of the 3 needed for tier 2
    progress = compute_progress(1, 4)

    assert progress.next_tier == 2
    assert progress.progress == 33
    assert progress.referrals_to_next_tier == 2


def test_progress_on_exact_fractions():
    # tier 3 -> 4 spans 10..20, tier 2 -> 3 spans 6..10
    assert compute_progress(3, 15).progress == 50
    assert compute_progress(2, 8).progress == 50


def test_progress_at_max_tier():
    progress = compute_progress(MAX_TIER, 57)

    assert progress.next_tier is None
    assert progress.progress == 100
    assert progress.referrals_to_next_tier == 0


def test_progress_is_clamped():
    assert compute_progress(0, 0).progress == 0
    # count can run ahead of a tier that has not been recomputed yet
    assert compute_progress(0, 9).progress == 100
    assert compute_progress(0, 9).referrals_to_next_tier == 0


def test_unlocked_tiers():
    assert unlocked_tiers(0) == [0]
    assert unlocked_tiers(3) == [0, 1, 2, 3]
