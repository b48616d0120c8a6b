import csv
import math
from io import StringIO

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.admin.schemas.waitlist import AdminUserList, AdminWaitlistUser
from app.features.waitlist.models.waitlist import Referral, WaitlistUser
from app.platform.exceptions import ValidationError

SORTABLE_COLUMNS = {
    "created_at": WaitlistUser.created_at,
    "updated_at": WaitlistUser.updated_at,
    "email": WaitlistUser.email,
    "referral_count": WaitlistUser.referral_count,
    "current_tier": WaitlistUser.current_tier,
}

EXPORT_HEADER = ["Email", "Referral Code", "Referral Count", "Tier", "Referred By", "Joined At"]


def _order_by(sort: str):
    descending = sort.startswith("-")
    column = SORTABLE_COLUMNS.get(sort.lstrip("-"))
    if column is None:
        raise ValidationError(
            f"Cannot sort by {sort!r}",
            data={"sortable": sorted(SORTABLE_COLUMNS)},
        )
    return column.desc() if descending else column.asc()


class AdminWaitlistService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_stats(self) -> dict:
        total = await self.db.scalar(select(func.count(WaitlistUser.id))) or 0
        verified = await self.db.scalar(
            select(func.count(WaitlistUser.id)).where(WaitlistUser.email_verified.is_(True))
        ) or 0
        total_referrals = await self.db.scalar(select(func.count(Referral.id))) or 0

        breakdown = await self.db.execute(
            select(WaitlistUser.current_tier, func.count(WaitlistUser.id))
            .where(WaitlistUser.email_verified.is_(True))
            .group_by(WaitlistUser.current_tier)
            .order_by(WaitlistUser.current_tier)
        )

        return {
            "total": total,
            "verified": verified,
            "unverified": total - verified,
            "total_referrals": total_referrals,
            "tier_breakdown": {f"tier{tier}": count for tier, count in breakdown.all()},
        }

    async def list_users(self, page: int = 1, limit: int = 50, sort: str = "-created_at") -> AdminUserList:
        result = await self.db.execute(
            select(WaitlistUser)
            .order_by(_order_by(sort))
            .offset((page - 1) * limit)
            .limit(limit)
        )
        users = result.scalars().all()
        stats = await self.get_stats()

        return AdminUserList(
            users=[AdminWaitlistUser.model_validate(user) for user in users],
            pagination={
                "page": page,
                "limit": limit,
                "total": stats["total"],
                "pages": math.ceil(stats["total"] / limit),
            },
            stats=stats,
        )

    async def export_csv(self) -> str:
        result = await self.db.execute(
            select(WaitlistUser)
            .where(WaitlistUser.email_verified.is_(True))
            .order_by(WaitlistUser.created_at.desc())
        )

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(EXPORT_HEADER)
        for user in result.scalars().all():
            writer.writerow([
                user.email,
                user.referral_code,
                user.referral_count,
                user.current_tier,
                user.referred_by_code or "",
                user.created_at.isoformat(),
            ])
        return output.getvalue()
