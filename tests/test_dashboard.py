from datetime import datetime

import pytest

from app.features.waitlist.models.waitlist import Referral, WaitlistUser
from app.features.waitlist.services.dashboard import build_dashboard, get_dashboard, referral_link
from app.platform.config import RewardLinks
from app.platform.exceptions import ForbiddenError, NotFoundError
from tests.factories import create_user


def make_user(**values):
    defaults = dict(
        email="member@example.com",
        email_verified=True,
        referral_code="LF-ABC234",
        referral_count=0,
        current_tier=0,
        created_at=datetime(2026, 1, 1, 9, 30),
    )
    defaults.update(values)
    return WaitlistUser(**defaults)


def test_referral_link():
    assert referral_link("LF-ABC234", "https://example.com/") == "https://example.com/waitlist?ref=LF-ABC234"


def test_build_dashboard_for_new_member():
    view = build_dashboard(make_user(), [], RewardLinks(), base_url="https://example.com")

    assert view.email == "me***@example.com"
    assert view.referral_link == "https://example.com/waitlist?ref=LF-ABC234"
    assert view.current_tier == 0
    assert view.next_tier == 1
    assert view.progress == 0
    assert view.referrals_to_next_tier == 3
    assert view.unlocked_tiers == [0]
    assert view.referral_list == []
    assert view.joined_at == datetime(2026, 1, 1, 9, 30)


def test_build_dashboard_masks_referrals():
    referrals = [
        ("friend@example.com", datetime(2026, 1, 3)),
        (None, datetime(2026, 1, 2)),
    ]

    view = build_dashboard(make_user(referral_count=4, current_tier=1), referrals, RewardLinks())

    assert [item.email for item in view.referral_list] == ["fr***@example.com", "Unknown"]
    assert view.progress == 33
    assert view.unlocked_tiers == [0, 1]


def test_build_dashboard_at_max_tier():
    view = build_dashboard(make_user(referral_count=25, current_tier=4), [], RewardLinks())

    assert view.next_tier is None
    assert view.progress == 100
    assert view.referrals_to_next_tier == 0


def test_tier_rewards_use_configured_links():
    rewards = RewardLinks(cold_email_bible="https://files.example.com/bible.pdf", tier_4="https://cal.example.com")

    view = build_dashboard(make_user(), [], rewards)

    assert view.tier_rewards[0].rewards[0].link == "https://files.example.com/bible.pdf"
    assert view.tier_rewards[4].referrals_required == 20
    assert view.tier_rewards[4].rewards[0].link == "https://cal.example.com"


@pytest.mark.asyncio
async def test_get_dashboard_unknown_code(db):
    with pytest.raises(NotFoundError) as exc:
        await get_dashboard(db, "LF-ZZZZZZ")
    assert exc.value.message == "User not found"


@pytest.mark.asyncio
async def test_get_dashboard_unverified_user(db):
    pending = await create_user(db, "pending@example.com", verified=False)

    with pytest.raises(ForbiddenError) as exc:
        await get_dashboard(db, pending.referral_code)

    assert exc.value.status_code == 403
    assert exc.value.data == {"email_verified": False}


@pytest.mark.asyncio
async def test_get_dashboard_lists_referrals_newest_first(db):
    referrer = await create_user(db, "referrer@example.com", referral_count=2)
    older = await create_user(db, "older@example.com", referrer=referrer)
    newer = await create_user(db, "newer@example.com", referrer=referrer)
    db.add_all([
        Referral(
            referrer_id=referrer.id,
            referred_id=older.id,
            referral_code=referrer.referral_code,
            created_at=datetime(2026, 1, 2),
        ),
        Referral(
            referrer_id=referrer.id,
            referred_id=newer.id,
            referral_code=referrer.referral_code,
            created_at=datetime(2026, 1, 5),
        ),
    ])
    await db.commit()

    view = await get_dashboard(db, referrer.referral_code.lower())

    assert view.referral_count == 2
    assert [item.email for item in view.referral_list] == ["ne***@example.com", "ol***@example.com"]
