# routes/dashboard_routes.py

from fastapi import APIRouter, Depends

from security import SessionContext, get_profile_context
from app.services.dashboards import build_dashboard

router = APIRouter()


@router.get("")
async def dashboard(context: SessionContext = Depends(get_profile_context)):
    """One dashboard per role; callers without a profile are sent to setup."""
    return await build_dashboard(context)
