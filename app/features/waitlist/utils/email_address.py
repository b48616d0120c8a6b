import re

from app.platform.exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

DISPOSABLE_EMAIL_DOMAINS = frozenset({
    "tempmail.com", "throwaway.email", "guerrillamail.com", "mailinator.com",
    "10minutemail.com", "temp-mail.org", "fakeinbox.com", "trashmail.com",
    "tempail.com", "discard.email", "sharklasers.com", "guerrillamail.info",
    "grr.la", "spam4.me", "yopmail.com", "getnada.com", "tempmailo.com",
    "mohmal.com", "tempr.email", "dropmail.me", "emailondeck.com",
    "temp.email", "fakemailgenerator.com", "generator.email", "emailfake.com",
    "crazymailing.com", "tempinbox.com", "getairmail.com", "dispostable.com",
})


def normalize_email(email: str | None) -> str:
    """Trim and lower-case `email`, raising ValidationError if it is unusable."""
    normalized = (email or "").strip().lower()
    if not normalized:
        raise ValidationError("Email is required")
    if not EMAIL_PATTERN.match(normalized):
        raise ValidationError("Invalid email format")
    return normalized


def is_disposable_email(email: str) -> bool:
    domain = email.rsplit("@", 1)[-1].lower()
    return domain in DISPOSABLE_EMAIL_DOMAINS


def mask_email(email: str | None) -> str:
    """ab@x.com -> a***@x.com, abcdef@x.com -> ab***@x.com"""
    if not email:
        return ""
    local, _, domain = email.partition("@")
    keep = 1 if len(local) <= 2 else 2
    return f"{local[:keep]}***@{domain}"
