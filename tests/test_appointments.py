from datetime import datetime, timezone

import pytest

from errors import ErrorKind, InvalidTransitionError, StoreError
from models.schemas import AppointmentStatus
from app.services.appointments import (
    approve_appointment, can_transition, cancel_appointment, complete_appointment,
    confirm_appointment, count_appointments, create_appointment, get_appointment,
    get_user_appointments, get_vet_appointments, reschedule_appointment
)


async def book(**overrides):
    data = {
        "user_id": "u1",
        "vet_id": "v1",
        "date_time": datetime(2025, 6, 1, 10, 0),
        "reason": "Checkup",
    }
    data.update(overrides)
    return await create_appointment(**data)


async def test_booking_starts_pending():
    appointment_id = await book()

    appointment = await get_appointment(appointment_id)
    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.user_id == "u1"
    assert appointment.vet_id == "v1"
    assert appointment.reason == "Checkup"
    assert appointment.date_time == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert appointment.created_at is not None
    assert appointment.updated_at is not None
    assert appointment.created_at.tzinfo is not None


async def test_booking_keeps_notes_and_converts_aware_times():
    appointment_id = await book(
        date_time=datetime.fromisoformat("2025-06-01T12:00:00+02:00"),
        notes="Limping on the left leg",
    )

    appointment = await get_appointment(appointment_id)
    assert appointment.notes == "Limping on the left leg"
    assert appointment.date_time == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)


async def test_approve_sets_status_and_refreshes_updated_at():
    appointment_id = await book()
    before = await get_appointment(appointment_id)

    approved = await approve_appointment(appointment_id)

    assert approved.status == AppointmentStatus.APPROVED
    assert approved.updated_at >= before.updated_at
    assert (await get_appointment(appointment_id)).status == AppointmentStatus.APPROVED


async def test_reschedule_sets_status_and_date_time():
    appointment_id = await book()
    new_time = datetime(2025, 7, 3, 9, 30, tzinfo=timezone.utc)

    rescheduled = await reschedule_appointment(appointment_id, new_time)

    assert rescheduled.status == AppointmentStatus.RESCHEDULED
    assert rescheduled.date_time == new_time


async def test_full_lifecycle():
    appointment_id = await book()

    await approve_appointment(appointment_id)
    await confirm_appointment(appointment_id)
    completed = await complete_appointment(appointment_id)

    assert completed.status == AppointmentStatus.COMPLETED


async def test_rescheduled_appointment_can_be_approved_again():
    appointment_id = await book()
    await reschedule_appointment(appointment_id, datetime(2025, 7, 1, tzinfo=timezone.utc))

    approved = await approve_appointment(appointment_id)

    assert approved.status == AppointmentStatus.APPROVED


@pytest.mark.parametrize("steps", [
    [approve_appointment, approve_appointment],
    [cancel_appointment, cancel_appointment],
    [approve_appointment, confirm_appointment, confirm_appointment],
    [approve_appointment, confirm_appointment, complete_appointment, complete_appointment],
])
async def test_repeating_a_transition_is_idempotent(steps):
    appointment_id = await book()

    for step in steps:
        result = await step(appointment_id)

    final = await get_appointment(appointment_id)
    assert final.status == result.status
    assert await count_appointments() == 1


async def test_confirm_requires_approval_first():
    appointment_id = await book()

    with pytest.raises(InvalidTransitionError) as excinfo:
        await confirm_appointment(appointment_id)

    assert excinfo.value.current == "pending"
    assert excinfo.value.target == "confirmed"
    assert (await get_appointment(appointment_id)).status == AppointmentStatus.PENDING


async def test_terminal_appointments_do_not_move():
    appointment_id = await book()
    await cancel_appointment(appointment_id)

    with pytest.raises(InvalidTransitionError):
        await approve_appointment(appointment_id)
    with pytest.raises(InvalidTransitionError):
        await reschedule_appointment(appointment_id, datetime(2025, 8, 1, tzinfo=timezone.utc))


async def test_confirmed_appointment_cannot_be_cancelled():
    appointment_id = await book()
    await approve_appointment(appointment_id)
    await confirm_appointment(appointment_id)

    with pytest.raises(InvalidTransitionError):
        await cancel_appointment(appointment_id)


async def test_transition_on_missing_appointment_is_not_found():
    with pytest.raises(StoreError) as excinfo:
        await approve_appointment("missing")

    assert excinfo.value.kind == ErrorKind.NOT_FOUND


def test_transition_graph():
    S = AppointmentStatus
    assert can_transition(S.PENDING, S.APPROVED)
    assert can_transition(S.APPROVED, S.CONFIRMED)
    assert can_transition(S.CONFIRMED, S.COMPLETED)
    assert can_transition(S.APPROVED, S.CANCELLED)
    assert can_transition(S.PENDING, S.RESCHEDULED)
    assert not can_transition(S.PENDING, S.COMPLETED)
    assert not can_transition(S.COMPLETED, S.CANCELLED)
    assert not can_transition(S.CANCELLED, S.PENDING)


async def test_listing_orders_by_date_time_descending():
    early = await book(date_time=datetime(2025, 6, 1, 9, 0))
    late = await book(date_time=datetime(2025, 6, 2, 9, 0))
    await book(user_id="u2", date_time=datetime(2025, 6, 3, 9, 0))

    mine = await get_user_appointments("u1")
    assert [a.id for a in mine] == [late, early]

    for_vet = await get_vet_appointments("v1", ascending=True)
    assert [a.date_time.day for a in for_vet] == [1, 2, 3]
