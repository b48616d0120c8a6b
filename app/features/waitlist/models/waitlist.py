from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint

from app.platform.db.base import BaseModel


class WaitlistUser(BaseModel):
    """
    A waitlist participant.

    Created unverified at signup. `referral_count` and `current_tier` only ever
    grow, and each `tierN_unlocked_at` is written once.
    """
    __tablename__ = "waitlist_users"

    email = Column(String(255), unique=True, nullable=False, index=True)
    email_verified = Column(Boolean, default=False, nullable=False)

    verification_token = Column(String(64), nullable=True, index=True)
    verification_token_expires = Column(DateTime, nullable=True)

    referral_code = Column(String(12), unique=True, nullable=False, index=True)
    referred_by_id = Column(
        String, ForeignKey("waitlist_users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Snapshot of the referrer's code at signup time
    referred_by_code = Column(String(12), nullable=True)

    referral_count = Column(Integer, default=0, nullable=False)
    current_tier = Column(Integer, default=0, nullable=False)
    tier1_unlocked_at = Column(DateTime, nullable=True)
    tier2_unlocked_at = Column(DateTime, nullable=True)
    tier3_unlocked_at = Column(DateTime, nullable=True)
    tier4_unlocked_at = Column(DateTime, nullable=True)

    ip_address = Column(String(45), nullable=True)  # IPv4 or IPv6

    convertkit_synced = Column(Boolean, default=False, nullable=False)
    convertkit_subscriber_id = Column(String, nullable=True)

    def __repr__(self) -> str:
        return f"<WaitlistUser(email='{self.email}', code='{self.referral_code}', tier={self.current_tier})>"


class Referral(BaseModel):
    """Append-only edge from a referrer to the user they brought in."""
    __tablename__ = "waitlist_referrals"

    referrer_id = Column(
        String, ForeignKey("waitlist_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    referred_id = Column(
        String, ForeignKey("waitlist_users.id", ondelete="CASCADE"), nullable=False
    )
    # Referrer's code at the time of the referral
    referral_code = Column(String(12), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("referred_id", name="uq_waitlist_referrals_referred"),  # One referrer per user
        Index("idx_waitlist_referrals_created", "created_at"),
    )
