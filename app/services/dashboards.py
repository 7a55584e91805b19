# app/services/dashboards.py

from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Union

from models.schemas import (
    Activity, AdminDashboard, AdminStats, AppointmentStatus, MemberDashboard, Role,
    VerificationStatus, VeterinarianDashboard
)
from security import SessionContext
from app.services.appointments import (
    TERMINAL_STATUSES, count_appointments, get_user_appointments, get_vet_appointments, list_appointments
)
from app.services.messages import get_conversations
from app.services.users import count_users, list_users
from app.services.veterinarians import count_veterinarians, get_veterinarians

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _status_counts(appointments) -> Dict[str, int]:
    counts = {status.value: 0 for status in AppointmentStatus}
    for appointment in appointments:
        counts[AppointmentStatus(appointment.status).value] += 1
    return counts


def _upcoming(appointments) -> List:
    return [a for a in appointments if AppointmentStatus(a.status) not in TERMINAL_STATUSES]


async def get_admin_stats() -> AdminStats:
    return AdminStats(
        total_users=await count_users(),
        total_appointments=await count_appointments(),
        pending_veterinarians=await count_veterinarians(VerificationStatus.PENDING),
    )


async def get_recent_activities(limit: int = 5) -> List[Activity]:
    """Latest pending vet requests, bookings and sign-ups merged newest first."""
    pending_vets = (await get_veterinarians(VerificationStatus.PENDING))[:limit]
    appointments = await list_appointments(limit=limit)
    users = await list_users(limit=limit)

    activities = [
        Activity(
            id=f"vet-{vet.id}",
            type="vet_requested",
            vet_id=vet.id,
            description="Requested verification",
            timestamp=vet.created_at,
            vet_name=vet.name,
        )
        for vet in pending_vets
    ]
    activities += [
        Activity(
            id=f"app-{appointment.id}",
            type="appointment_booked",
            appointment_id=appointment.id,
            user_id=appointment.user_id,
            vet_id=appointment.vet_id,
            description="New appointment booked",
            timestamp=appointment.created_at,
        )
        for appointment in appointments
    ]
    activities += [
        Activity(
            id=f"user-{user.id}",
            type="user_created",
            user_id=user.id,
            description="Created account",
            timestamp=user.created_at,
            user_name=user.name or user.email,
        )
        for user in users
    ]

    activities.sort(key=lambda activity: activity.timestamp or _EPOCH, reverse=True)
    return activities[:limit]


# --- Role dashboards ---

async def _member_dashboard(context: SessionContext) -> MemberDashboard:
    appointments = await get_user_appointments(context.user.id)
    conversations = await get_conversations(context.user.id)
    return MemberDashboard(
        role=context.role,
        profile=context.user,
        upcoming_appointments=_upcoming(appointments),
        appointment_counts=_status_counts(appointments),
        unread_messages=sum(c.unread for c in conversations),
    )


async def _veterinarian_dashboard(context: SessionContext) -> VeterinarianDashboard:
    vet_profile = context.vet_profile
    appointments = await get_vet_appointments(vet_profile.id, ascending=True) if vet_profile else []
    conversations = await get_conversations(context.user.id)
    return VeterinarianDashboard(
        role=context.role,
        profile=context.user,
        vet_profile=vet_profile,
        verification_status=vet_profile.verification_status if vet_profile else None,
        upcoming_appointments=_upcoming(appointments),
        appointment_counts=_status_counts(appointments),
        unread_messages=sum(c.unread for c in conversations),
    )


async def _admin_dashboard(context: SessionContext) -> AdminDashboard:
    return AdminDashboard(
        role=context.role,
        profile=context.user,
        stats=await get_admin_stats(),
        recent_activities=await get_recent_activities(),
    )


Dashboard = Union[MemberDashboard, VeterinarianDashboard, AdminDashboard]

DASHBOARDS: Dict[Role, Callable[[SessionContext], Awaitable[Dashboard]]] = {
    Role.FARMER: _member_dashboard,
    Role.PET_OWNER: _member_dashboard,
    Role.VETERINARIAN: _veterinarian_dashboard,
    Role.ADMIN: _admin_dashboard,
}


async def build_dashboard(context: SessionContext) -> Dashboard:
    return await DASHBOARDS[context.role](context)
