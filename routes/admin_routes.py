# routes/admin_routes.py

from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status

from models.schemas import Activity, AdminStats, User, Veterinarian, VerificationStatus
from security import SessionContext, get_current_admin
from app.services.dashboards import get_admin_stats, get_recent_activities
from app.services.users import delete_user_profile, get_user_profile, list_users
from app.services.veterinarians import (
    delete_veterinarian_profile, get_veterinarian_profile, get_veterinarians,
    reject_veterinarian, verify_veterinarian
)

router = APIRouter()


@router.get("/stats", response_model=AdminStats)
async def admin_stats(context: SessionContext = Depends(get_current_admin)):
    return await get_admin_stats()


@router.get("/activities", response_model=List[Activity])
async def recent_activities(
    limit: int = Query(5, ge=1, le=50),
    context: SessionContext = Depends(get_current_admin)
):
    return await get_recent_activities(limit)


@router.get("/veterinarians", response_model=List[Veterinarian])
async def veterinarians_by_status(
    verification_status: Optional[VerificationStatus] = Query(None, alias="status"),
    context: SessionContext = Depends(get_current_admin)
):
    """Retrieves veterinarians, e.g. the ones waiting for verification."""
    return await get_veterinarians(verification_status)


@router.post("/veterinarians/{vet_id}/verify", response_model=Veterinarian)
async def verify(vet_id: str, context: SessionContext = Depends(get_current_admin)):
    await verify_veterinarian(vet_id)
    return await get_veterinarian_profile(vet_id)


@router.post("/veterinarians/{vet_id}/reject", response_model=Veterinarian)
async def reject(vet_id: str, context: SessionContext = Depends(get_current_admin)):
    await reject_veterinarian(vet_id)
    return await get_veterinarian_profile(vet_id)


@router.get("/users", response_model=List[User])
async def all_users(context: SessionContext = Depends(get_current_admin)):
    return await list_users()


@router.delete("/users/{user_id}", status_code=status.HTTP_200_OK)
async def delete_user(user_id: str, context: SessionContext = Depends(get_current_admin)):
    """Deletes the profile together with a linked veterinarian profile."""
    if user_id == context.user.id:
        raise HTTPException(status_code=400, detail="Admins cannot delete their own profile.")

    user = await get_user_profile(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")

    if user.vet_profile_id and await get_veterinarian_profile(user.vet_profile_id):
        await delete_veterinarian_profile(user.vet_profile_id)
    await delete_user_profile(user_id)
    return {"message": f"User {user_id} deleted."}
