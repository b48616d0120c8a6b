from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.features.waitlist.schemas.waitlist import (
    DashboardResponse,
    ResendLinkIn,
    SignupIn,
    SignupOut,
    StatsResponse,
    ValidateCodeOut,
)
from app.features.waitlist.services.dashboard import get_dashboard
from app.features.waitlist.services.sync import WaitlistSyncAdapter, get_sync_adapter, schedule_sync
from app.features.waitlist.services.verification import verify_email
from app.features.waitlist.services.waitlist import get_stats, resend_link, signup, validate_referral_code
from app.features.waitlist.utils.emailer import (
    dashboard_url,
    send_dashboard_link_email,
    send_verification_email,
    verification_url,
)
from app.platform.config import settings
from app.platform.db.session import get_db
from app.platform.response import api_response

router = APIRouter(prefix="/waitlist", tags=["Waitlist"])


def _expose_links() -> bool:
    return settings.ENVIRONMENT == "local"


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def join_waitlist(
    payload: SignupIn,
    request: Request,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    client_ip = request.client.host if request.client else None
    result = await signup(db, payload.email, payload.referral_code, client_ip)

    background_tasks.add_task(send_verification_email, result.user.email, result.verification_token)

    data = SignupOut(email=result.user.email)
    if _expose_links():
        data.verification_url = verification_url(result.verification_token)

    return api_response(
        data=data.model_dump(exclude_none=True),
        message="Please check your email to verify your account",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/verify")
async def verify(
    background_tasks: BackgroundTasks,
    token: str = Query(default=""),
    db: AsyncSession = Depends(get_db),
    sync_adapter: WaitlistSyncAdapter = Depends(get_sync_adapter),
):
    """
    Confirm an email address and redirect to the user's dashboard.

    Re-using a link after the address is verified changes nothing.
    """
    result = await verify_email(db, token)
    schedule_sync(background_tasks, sync_adapter, result.events)

    return RedirectResponse(
        url=dashboard_url(result.user.referral_code),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/dashboard/{referral_code}", response_model=DashboardResponse)
async def dashboard(referral_code: str, db: AsyncSession = Depends(get_db)):
    view = await get_dashboard(db, referral_code)
    return api_response(data=view, message="Dashboard retrieved successfully")


@router.post("/resend-link")
async def resend(
    payload: ResendLinkIn,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    result = await resend_link(db, payload.email)

    if result.outcome == "unknown":
        # Same answer whether or not the email is registered
        return api_response(message="If this email is registered, you will receive a link shortly.")

    if result.outcome == "dashboard":
        background_tasks.add_task(send_dashboard_link_email, result.user.email, result.user.referral_code)
        data = {"dashboard_url": dashboard_url(result.user.referral_code)} if _expose_links() else None
        return api_response(data=data, message="Dashboard link sent to your email")

    background_tasks.add_task(send_verification_email, result.user.email, result.verification_token)
    data = {"verification_url": verification_url(result.verification_token)} if _expose_links() else None
    return api_response(data=data, message="Verification email sent")


@router.get("/validate/{referral_code}")
async def validate(referral_code: str, db: AsyncSession = Depends(get_db)):
    data = ValidateCodeOut(**await validate_referral_code(db, referral_code))
    return api_response(data=data, message="Referral code checked")


@router.get("/stats", response_model=StatsResponse)
async def stats(db: AsyncSession = Depends(get_db)):
    return api_response(data=await get_stats(db), message="Waitlist statistics retrieved")
