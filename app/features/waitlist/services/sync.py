"""
One-way sync of waitlist state to ConvertKit.

Events produced by the verification flow are handed to FastAPI's
BackgroundTasks, so the sync runs after the response has been sent. A failing
ConvertKit call is logged and skipped; it never touches the waitlist state
that has already been committed.
"""

from typing import Awaitable, Callable, Iterable, Optional, TypeVar

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.features.waitlist.services.events import ReferralCredited, TierUpgraded, UserVerified
from app.features.waitlist.services.waitlist import update_user
from app.platform.config import ConvertKitTags, settings
from app.platform.db.session import SessionLocal
from app.platform.exceptions import ExternalSyncError
from app.platform.logger import get_logger
from app.platform.services.convertkit import ConvertKitClient

logger = get_logger(__name__)

T = TypeVar("T")


class WaitlistSyncAdapter:
    def __init__(
        self,
        client: ConvertKitClient,
        tags: ConvertKitTags,
        session_factory: Optional[async_sessionmaker] = None,
    ):
        self.client = client
        self.tags = tags
        self.session_factory = session_factory or SessionLocal

    @classmethod
    def from_settings(cls) -> "WaitlistSyncAdapter":
        return cls(ConvertKitClient.from_settings(), settings.convertkit_tags())

    async def _attempt(self, description: str, call: Callable[[], Awaitable[T]]) -> Optional[T]:
        try:
            return await call()
        except ExternalSyncError as e:
            logger.error(f"ConvertKit sync failed ({description}): {e}")
            return None

    async def handle(self, events: Iterable[object]) -> None:
        for event in events:
            try:
                await self.dispatch(event)
            except Exception:
                # one broken event must not drop the rest of the batch
                logger.exception(f"Sync of {event!r} failed")

    async def dispatch(self, event: object) -> None:
        if isinstance(event, UserVerified):
            await self.on_user_verified(event)
        elif isinstance(event, ReferralCredited):
            await self.on_referral_credited(event)
        elif isinstance(event, TierUpgraded):
            await self.on_tier_upgraded(event)
        else:
            logger.warning(f"No sync handler for event {event!r}")

    async def on_user_verified(self, event: UserVerified) -> None:
        subscriber_id = await self._attempt(
            f"add subscriber {event.email}",
            lambda: self.client.add_subscriber(
                event.email,
                fields={
                    "referral_code": event.referral_code,
                    "referred_by": event.referred_by_code or "",
                },
                tags=[self.tags.waitlist],
            ),
        )
        await self._attempt(
            f"tier 0 tag for {event.email}",
            lambda: self.client.tag_subscriber(event.email, self.tags.for_tier(0)),
        )

        if subscriber_id:
            async with self.session_factory() as db:
                await update_user(
                    db, event.user_id, convertkit_synced=True, convertkit_subscriber_id=subscriber_id
                )
                await db.commit()

    async def on_referral_credited(self, event: ReferralCredited) -> None:
        await self._attempt(
            f"referral count for {event.email}",
            lambda: self.client.update_field(event.email, "referral_count", str(event.referral_count)),
        )
        await self._attempt(
            f"new referral tag for {event.email}",
            lambda: self.client.tag_subscriber(event.email, self.tags.new_referral),
        )

    async def on_tier_upgraded(self, event: TierUpgraded) -> None:
        tag_id = self.tags.for_tier(event.tier)
        if not tag_id:
            logger.info(f"No ConvertKit tag configured for tier {event.tier}")
            return
        await self._attempt(
            f"tier {event.tier} tag for {event.email}",
            lambda: self.client.tag_subscriber(event.email, tag_id),
        )


def get_sync_adapter() -> WaitlistSyncAdapter:
    return WaitlistSyncAdapter.from_settings()


def schedule_sync(background_tasks: BackgroundTasks, adapter: WaitlistSyncAdapter, events: list) -> None:
    if events:
        background_tasks.add_task(adapter.handle, list(events))
