from app.platform.config import settings
from app.platform.logger import get_logger
from app.platform.services.email import render_template, send_email

logger = get_logger(__name__)


def verification_url(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/waitlist/verify?token={token}"


def dashboard_url(referral_code: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/waitlist/dashboard/{referral_code}"


def send_verification_email(to_email: str, token: str):
    """Used for: signup and resend of an unverified address"""
    try:
        html_content = render_template(
            "verify_waitlist.html",
            verification_url=verification_url(token),
            expiration_hours=settings.VERIFICATION_TOKEN_TTL_HOURS,
        )
        send_email(to_email, "Confirm your spot on the waitlist", html_content)
    except Exception as e:
        logger.error(f"Failed to send verification email to {to_email}: {e}")


def send_dashboard_link_email(to_email: str, referral_code: str):
    """Used for: resend of an already verified address"""
    try:
        html_content = render_template(
            "dashboard_link.html",
            dashboard_url=dashboard_url(referral_code),
            referral_code=referral_code,
        )
        send_email(to_email, "Your waitlist dashboard", html_content)
    except Exception as e:
        logger.error(f"Failed to send dashboard link to {to_email}: {e}")
