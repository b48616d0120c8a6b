"""
ConvertKit v3 API client.

Every call is bounded by a timeout. Transport and HTTP errors are raised as
ExternalSyncError; an unconfigured client turns each call into a no-op.
"""

from typing import Dict, List, Optional

import httpx

from app.platform.config import settings
from app.platform.exceptions import ExternalSyncError
from app.platform.logger import get_logger

logger = get_logger(__name__)


class ConvertKitClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        form_id: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.api_secret = api_secret
        self.form_id = form_id
        self.base_url = (base_url or settings.CONVERTKIT_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.CONVERTKIT_TIMEOUT
        self._transport = transport

    @classmethod
    def from_settings(cls) -> "ConvertKitClient":
        return cls(
            api_key=settings.CONVERTKIT_API_KEY,
            api_secret=settings.CONVERTKIT_API_SECRET,
            form_id=settings.CONVERTKIT_FORM_ID,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.form_id)

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            raise ExternalSyncError(
                f"ConvertKit {method} {path} returned {e.response.status_code}: {e.response.text}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ExternalSyncError(f"ConvertKit {method} {path} failed: {e}") from e

    async def add_subscriber(
        self, email: str, fields: Optional[Dict[str, str]] = None, tags: Optional[List[str]] = None
    ) -> Optional[str]:
        """Subscribe `email` to the configured form. Returns the subscriber id, if any."""
        if not self.configured:
            logger.info("ConvertKit not configured, skipping subscriber sync")
            return None

        data = await self._request(
            "POST",
            f"/forms/{self.form_id}/subscribe",
            json={
                "api_key": self.api_key,
                "email": email,
                "fields": fields or {},
                "tags": [t for t in (tags or []) if t],
            },
        )
        subscriber_id = ((data.get("subscription") or {}).get("subscriber") or {}).get("id")
        logger.info(f"ConvertKit: added subscriber {email}")
        return str(subscriber_id) if subscriber_id is not None else None

    async def tag_subscriber(self, email: str, tag_id: Optional[str]) -> bool:
        if not self.api_key or not tag_id:
            return False

        await self._request(
            "POST",
            f"/tags/{tag_id}/subscribe",
            json={"api_key": self.api_key, "email": email},
        )
        logger.info(f"ConvertKit: added tag {tag_id} to {email}")
        return True

    async def update_field(self, email: str, field: str, value: str) -> bool:
        if not self.api_secret:
            logger.info("ConvertKit API secret not configured, skipping field update")
            return False

        data = await self._request(
            "GET",
            "/subscribers",
            params={"api_secret": self.api_secret, "email_address": email},
        )
        subscribers = data.get("subscribers") or []
        if not subscribers:
            logger.warning(f"ConvertKit: subscriber {email} not found")
            return False

        await self._request(
            "PUT",
            f"/subscribers/{subscribers[0]['id']}",
            json={"api_secret": self.api_secret, "fields": {field: value}},
        )
        logger.info(f"ConvertKit: updated {field} for {email}")
        return True
