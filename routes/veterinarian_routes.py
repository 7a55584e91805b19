# routes/veterinarian_routes.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import List, Optional

from models.schemas import Veterinarian, VeterinarianUpdateBody, VerificationStatus
from security import SessionContext, get_current_veterinarian, get_profile_context
from app.services.veterinarians import (
    filter_veterinarians, get_veterinarian_profile, get_veterinarians, update_veterinarian_profile
)

router = APIRouter()


@router.get("", response_model=List[Veterinarian])
async def list_veterinarians(
    location: Optional[str] = Query(None),
    specialization: Optional[str] = Query(None),
    animal_type: Optional[str] = Query(None),
    verification_status: Optional[VerificationStatus] = Query(None, alias="status"),
    context: SessionContext = Depends(get_profile_context)
):
    vets = await get_veterinarians(verification_status)
    return filter_veterinarians(vets, location=location, specialization=specialization, animal_type=animal_type)


@router.get("/me", response_model=Veterinarian)
async def get_my_veterinarian_profile(context: SessionContext = Depends(get_current_veterinarian)):
    if not context.vet_profile:
        raise HTTPException(status_code=404, detail="Veterinarian profile not found.")
    return context.vet_profile


@router.put("/me", response_model=Veterinarian)
async def update_my_veterinarian_profile(
    body: VeterinarianUpdateBody,
    context: SessionContext = Depends(get_current_veterinarian)
):
    """Vets edit their own professional details; verification stays with admins."""
    if not context.vet_profile:
        raise HTTPException(status_code=404, detail="Veterinarian profile not found.")

    update_data = body.model_dump(by_alias=True, exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update.")

    await update_veterinarian_profile(context.vet_profile.id, update_data)
    return await get_veterinarian_profile(context.vet_profile.id)


@router.get("/{vet_id}", response_model=Veterinarian)
async def get_veterinarian(vet_id: str, context: SessionContext = Depends(get_profile_context)):
    vet = await get_veterinarian_profile(vet_id)
    if not vet:
        raise HTTPException(status_code=404, detail="Veterinarian not found.")
    return vet
