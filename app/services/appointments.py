# app/services/appointments.py

import logging
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional

from pymongo import ReturnDocument

from database import APPOINTMENTS, get_collection, new_id, to_store_datetime
from errors import InvalidTransitionError, StoreError, store_operation
from models.schemas import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

PENDING = AppointmentStatus.PENDING
APPROVED = AppointmentStatus.APPROVED
CONFIRMED = AppointmentStatus.CONFIRMED
COMPLETED = AppointmentStatus.COMPLETED
CANCELLED = AppointmentStatus.CANCELLED
RESCHEDULED = AppointmentStatus.RESCHEDULED

# Target status -> statuses it may be entered from. Re-entering the current
# status is always allowed so repeated calls only refresh updatedAt.
ALLOWED_SOURCES: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    APPROVED: frozenset({PENDING, RESCHEDULED, APPROVED}),
    CONFIRMED: frozenset({APPROVED, CONFIRMED}),
    COMPLETED: frozenset({CONFIRMED, COMPLETED}),
    CANCELLED: frozenset({PENDING, APPROVED, RESCHEDULED, CANCELLED}),
    RESCHEDULED: frozenset({PENDING, APPROVED, RESCHEDULED}),
}

TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return AppointmentStatus(current) in ALLOWED_SOURCES.get(AppointmentStatus(target), frozenset())


# --- Accessors ---

@store_operation("creating appointment")
async def create_appointment(user_id: str, vet_id: str, date_time: datetime, reason: str,
                             notes: Optional[str] = None) -> str:
    appointment_id = new_id()
    appointment = {
        "userId": user_id,
        "vetId": vet_id,
        "dateTime": to_store_datetime(date_time),
        "status": PENDING.value,
        "reason": reason,
    }
    if notes:
        appointment["notes"] = notes

    await get_collection(APPOINTMENTS).update_one(
        {"_id": appointment_id},
        {"$setOnInsert": appointment, "$currentDate": {"createdAt": True, "updatedAt": True}},
        upsert=True,
    )
    logger.info(f"Appointment {appointment_id} booked by {user_id} with veterinarian {vet_id}.")
    return appointment_id


@store_operation("getting appointment")
async def get_appointment(appointment_id: str) -> Optional[Appointment]:
    doc = await get_collection(APPOINTMENTS).find_one({"_id": appointment_id})
    if doc:
        return Appointment.from_document(doc)
    return None


async def _find(query: Dict[str, Any], sort: List) -> List[Appointment]:
    cursor = get_collection(APPOINTMENTS).find(query).sort(sort)
    return [Appointment.from_document(doc) for doc in await cursor.to_list(length=None)]


@store_operation("getting user appointments")
async def get_user_appointments(user_id: str) -> List[Appointment]:
    return await _find({"userId": user_id}, [("dateTime", -1), ("_id", -1)])


@store_operation("getting veterinarian appointments")
async def get_vet_appointments(vet_id: str, ascending: bool = False) -> List[Appointment]:
    direction = 1 if ascending else -1
    return await _find({"vetId": vet_id}, [("dateTime", direction), ("_id", direction)])


@store_operation("listing appointments")
async def list_appointments(limit: Optional[int] = None) -> List[Appointment]:
    cursor = get_collection(APPOINTMENTS).find({}).sort([("createdAt", -1), ("_id", -1)])
    if limit:
        cursor = cursor.limit(limit)
    return [Appointment.from_document(doc) for doc in await cursor.to_list(length=None)]


@store_operation("counting appointments")
async def count_appointments() -> int:
    return await get_collection(APPOINTMENTS).count_documents({})


# --- Status workflow ---

async def _transition(appointment_id: str, target: AppointmentStatus,
                      extra: Optional[Dict[str, Any]] = None) -> Appointment:
    """Applies one guarded status update; the guard and the write are a single store operation."""
    appointments = get_collection(APPOINTMENTS)
    sources = [status.value for status in ALLOWED_SOURCES[target]]
    changes = {"status": target.value}
    if extra:
        changes.update(extra)

    updated = await appointments.find_one_and_update(
        {"_id": appointment_id, "status": {"$in": sources}},
        {"$set": changes, "$currentDate": {"updatedAt": True}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        current = await appointments.find_one({"_id": appointment_id}, {"status": 1})
        if current is None:
            raise StoreError.not_found("Appointment", appointment_id)
        raise InvalidTransitionError(appointment_id, current["status"], target.value)

    logger.info(f"Appointment {appointment_id} is now {target.value}.")
    return Appointment.from_document(updated)


@store_operation("approving appointment")
async def approve_appointment(appointment_id: str) -> Appointment:
    return await _transition(appointment_id, APPROVED)


@store_operation("confirming appointment")
async def confirm_appointment(appointment_id: str) -> Appointment:
    return await _transition(appointment_id, CONFIRMED)


@store_operation("completing appointment")
async def complete_appointment(appointment_id: str) -> Appointment:
    return await _transition(appointment_id, COMPLETED)


@store_operation("cancelling appointment")
async def cancel_appointment(appointment_id: str) -> Appointment:
    return await _transition(appointment_id, CANCELLED)


@store_operation("rescheduling appointment")
async def reschedule_appointment(appointment_id: str, new_date_time: datetime) -> Appointment:
    return await _transition(appointment_id, RESCHEDULED, {"dateTime": to_store_datetime(new_date_time)})
