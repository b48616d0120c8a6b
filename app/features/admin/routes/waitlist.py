from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.admin.services.waitlist import AdminWaitlistService
from app.features.admin.utils.auth import require_admin_key
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(tags=["Admin - Waitlist"], dependencies=[Depends(require_admin_key)])


@router.get("/users", summary="List waitlist users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    sort: str = Query("-created_at", description="Column to sort by, prefix with '-' for descending"),
    db: AsyncSession = Depends(get_db),
):
    """
    Paginated waitlist users plus totals:
    - verified / unverified counts
    - total referrals
    - verified users per tier
    """
    service = AdminWaitlistService(db)
    data = await service.list_users(page=page, limit=limit, sort=sort)
    return api_response(data=data, message="Waitlist users retrieved successfully")


@router.get("/export", summary="Export verified users as CSV")
async def export_users(db: AsyncSession = Depends(get_db)):
    service = AdminWaitlistService(db)
    content = await service.export_csv()
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=waitlist-export.csv"},
    )
