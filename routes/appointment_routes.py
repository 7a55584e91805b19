# routes/appointment_routes.py

from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from models.schemas import Appointment, AppointmentCreateBody, RescheduleBody, Role
from security import SessionContext, get_profile_context
from app.services.appointments import (
    approve_appointment, cancel_appointment, complete_appointment, confirm_appointment,
    create_appointment, get_appointment, get_user_appointments, get_vet_appointments,
    list_appointments, reschedule_appointment
)
from app.services.veterinarians import get_veterinarian_profile

router = APIRouter()


# --- HELPERS ---
def is_treating_vet(context: SessionContext, appointment: Appointment) -> bool:
    return (context.has_role(Role.VETERINARIAN)
            and context.vet_profile is not None
            and appointment.vet_id == context.vet_profile.id)


def is_participant(context: SessionContext, appointment: Appointment) -> bool:
    return appointment.user_id == context.user.id or is_treating_vet(context, appointment)


async def load_appointment(appointment_id: str, context: SessionContext) -> Appointment:
    appointment = await get_appointment(appointment_id)
    if not appointment:
        raise HTTPException(status_code=404, detail="Appointment not found.")
    if not (context.has_role(Role.ADMIN) or is_participant(context, appointment)):
        raise HTTPException(status_code=403, detail="Not a participant of this appointment.")
    return appointment


async def load_for_vet_action(appointment_id: str, context: SessionContext) -> Appointment:
    """Approve, confirm and complete belong to the treating vet (or an admin)."""
    appointment = await load_appointment(appointment_id, context)
    if not (context.has_role(Role.ADMIN) or is_treating_vet(context, appointment)):
        raise HTTPException(status_code=403, detail="Only the veterinarian can perform this action.")
    return appointment


# --- ROUTES ---

@router.post("", response_model=Appointment, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: AppointmentCreateBody,
    context: SessionContext = Depends(get_profile_context)
):
    if not context.has_role(Role.FARMER, Role.PET_OWNER):
        raise HTTPException(status_code=403, detail="Only farmers and pet owners can book appointments.")

    vet = await get_veterinarian_profile(body.vet_id)
    if not vet:
        raise HTTPException(status_code=404, detail="Veterinarian not found.")

    appointment_id = await create_appointment(
        user_id=context.user.id,
        vet_id=vet.id,
        date_time=body.date_time,
        reason=body.reason,
        notes=body.notes,
    )
    return await get_appointment(appointment_id)


@router.get("", response_model=List[Appointment])
async def get_my_appointments(context: SessionContext = Depends(get_profile_context)):
    role = context.role
    if role == Role.ADMIN:
        return await list_appointments()
    if role == Role.VETERINARIAN:
        if not context.vet_profile:
            return []
        return await get_vet_appointments(context.vet_profile.id)
    return await get_user_appointments(context.user.id)


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment_details(appointment_id: str, context: SessionContext = Depends(get_profile_context)):
    return await load_appointment(appointment_id, context)


@router.post("/{appointment_id}/approve", response_model=Appointment)
async def approve(appointment_id: str, context: SessionContext = Depends(get_profile_context)):
    await load_for_vet_action(appointment_id, context)
    return await approve_appointment(appointment_id)


@router.post("/{appointment_id}/confirm", response_model=Appointment)
async def confirm(appointment_id: str, context: SessionContext = Depends(get_profile_context)):
    await load_for_vet_action(appointment_id, context)
    return await confirm_appointment(appointment_id)


@router.post("/{appointment_id}/complete", response_model=Appointment)
async def complete(appointment_id: str, context: SessionContext = Depends(get_profile_context)):
    await load_for_vet_action(appointment_id, context)
    return await complete_appointment(appointment_id)


@router.post("/{appointment_id}/cancel", response_model=Appointment)
async def cancel(appointment_id: str, context: SessionContext = Depends(get_profile_context)):
    await load_appointment(appointment_id, context)
    return await cancel_appointment(appointment_id)


@router.post("/{appointment_id}/reschedule", response_model=Appointment)
async def reschedule(
    appointment_id: str,
    body: RescheduleBody,
    context: SessionContext = Depends(get_profile_context)
):
    await load_appointment(appointment_id, context)
    return await reschedule_appointment(appointment_id, body.date_time)
