import secrets

from fastapi import Header

from app.platform.config import settings
from app.platform.exceptions import UnauthorizedError


async def require_admin_key(x_admin_key: str | None = Header(default=None)) -> None:
    """Reject the request unless X-Admin-Key matches WAITLIST_ADMIN_KEY."""
    expected = settings.WAITLIST_ADMIN_KEY
    if not expected or not x_admin_key or not secrets.compare_digest(x_admin_key, expected):
        raise UnauthorizedError("Unauthorized")
