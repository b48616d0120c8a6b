from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class RewardLinks(BaseModel):
    """Download/booking links handed out per tier on the dashboard."""

    cold_email_bible: str = "#"
    email_generator: str = "#"
    niches_prompt: str = "#"
    partner_discounts: str = "#"
    tier_1: str = "#"
    tier_2: str = "#"
    tier_3: str = "#"
    tier_4: str = "#"


class ConvertKitTags(BaseModel):
    waitlist: Optional[str] = None
    new_referral: Optional[str] = None
    tiers: Dict[int, Optional[str]] = {}

    def for_tier(self, tier: int) -> Optional[str]:
        return self.tiers.get(tier)


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "Lead Formatter Waitlist"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = True

    BASE_URL: str = "https://leadformatter.com"
    FRONTEND_URL: str = "https://leadformatter.com"

    # ── Database ────────────────────────────────
    DATABASE_URL: str

    # ── Waitlist ────────────────────────────────
    WAITLIST_ADMIN_KEY: Optional[str] = None
    VERIFICATION_TOKEN_TTL_HOURS: int = 24
    DASHBOARD_REFERRAL_LIMIT: int = 50

    # ── Email Configuration ─────────────────────
    MAIL_MAILER: str = "smtp"
    MAIL_HOST: str = "smtp.gmail.com"
    MAIL_PORT: int = 587
    MAIL_USERNAME: str = "your-email-id"
    MAIL_PASSWORD: str = "your-password"
    MAIL_ENCRYPTION: str = "tls"
    MAIL_FROM_ADDRESS: str = "example@localhost"
    MAIL_FROM_NAME: str = "Lead Formatter"

    EMAIL_RELAY_URL: str = ""
    EMAIL_RELAY_API_KEY: str = ""
    EMAIL_RELAY_TIMEOUT: int = 30

    # ── ConvertKit ──────────────────────────────
    CONVERTKIT_API_URL: str = "https://api.convertkit.com/v3"
    CONVERTKIT_API_KEY: Optional[str] = None
    CONVERTKIT_API_SECRET: Optional[str] = None
    CONVERTKIT_FORM_ID: Optional[str] = None
    CONVERTKIT_TAG_WAITLIST: Optional[str] = None
    CONVERTKIT_TAG_TIER_0: Optional[str] = None
    CONVERTKIT_TAG_TIER_1: Optional[str] = None
    CONVERTKIT_TAG_TIER_2: Optional[str] = None
    CONVERTKIT_TAG_TIER_3: Optional[str] = None
    CONVERTKIT_TAG_TIER_4: Optional[str] = None
    CONVERTKIT_TAG_NEW_REFERRAL: Optional[str] = None
    CONVERTKIT_TIMEOUT: float = 10.0

    # ── Rewards ─────────────────────────────────
    REWARD_COLD_EMAIL_BIBLE: str = "#"
    REWARD_EMAIL_GENERATOR: str = "#"
    REWARD_NICHES_PROMPT: str = "#"
    REWARD_PARTNER_DISCOUNTS: str = "#"
    REWARD_TIER_1: str = "#"
    REWARD_TIER_2: str = "#"
    REWARD_TIER_3: str = "#"
    REWARD_TIER_4: str = "#"

    # ── Rate limiting ───────────────────────────
    REDIS_URL: Optional[str] = None
    FORCE_IN_MEMORY_RATE_LIMITER: bool = False
    WHITELIST_IPS: List[str] = []
    # path -> (max requests, window in seconds)
    RATE_LIMITS: Dict[str, Tuple[int, int]] = {
        "/waitlist/signup": (3, 24 * 60 * 60),
        "/waitlist/resend-link": (5, 60 * 60),
    }

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def reward_links(self) -> RewardLinks:
        return RewardLinks(
            cold_email_bible=self.REWARD_COLD_EMAIL_BIBLE,
            email_generator=self.REWARD_EMAIL_GENERATOR,
            niches_prompt=self.REWARD_NICHES_PROMPT,
            partner_discounts=self.REWARD_PARTNER_DISCOUNTS,
            tier_1=self.REWARD_TIER_1,
            tier_2=self.REWARD_TIER_2,
            tier_3=self.REWARD_TIER_3,
            tier_4=self.REWARD_TIER_4,
        )

    def convertkit_tags(self) -> ConvertKitTags:
        return ConvertKitTags(
            waitlist=self.CONVERTKIT_TAG_WAITLIST,
            new_referral=self.CONVERTKIT_TAG_NEW_REFERRAL,
            tiers={
                0: self.CONVERTKIT_TAG_TIER_0,
                1: self.CONVERTKIT_TAG_TIER_1,
                2: self.CONVERTKIT_TAG_TIER_2,
                3: self.CONVERTKIT_TAG_TIER_3,
                4: self.CONVERTKIT_TAG_TIER_4,
            },
        )


settings = Settings()
