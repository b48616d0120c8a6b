from fastapi import APIRouter
from app.features.admin.routes.waitlist import router as waitlist_admin_router


router = APIRouter(prefix="/waitlist/admin", tags=["Admin"])

router.include_router(waitlist_admin_router)
