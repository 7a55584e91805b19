# models/schemas.py

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime, timedelta, timezone
from enum import Enum

from database import convert_document

# --- 1. Enumerations ---

class Role(str, Enum):
    FARMER = "farmer"
    PET_OWNER = "pet_owner"
    VETERINARIAN = "veterinarian"
    ADMIN = "admin"


class VerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class AppointmentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


# --- 2. Session Management Schemas ---

class Account(BaseModel):
    """Identity record: the stable id and e-mail a profile hangs off."""
    id: str = Field(alias="_id")
    email: str
    hashed_password: str = Field(alias="hashedPassword")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    model_config = {
        "populate_by_name": True
    }


class UserSession(BaseModel):
    id: Optional[str] = Field(default=None, alias="_id")
    token: str
    user_id: str
    login_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_active: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime

    model_config = {
        "populate_by_name": True
    }

    @classmethod
    def start(cls, token: str, user_id: str, minutes: int) -> "UserSession":
        now = datetime.now(timezone.utc)
        return cls(token=token, user_id=user_id, login_time=now, last_active=now,
                   expires_at=now + timedelta(minutes=minutes))


# --- 3. Stored Records ---

class StoredModel(BaseModel):
    """Records persisted with camelCase field names and a string `_id`."""
    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=True,
    )

    @classmethod
    def from_document(cls, doc: Dict[str, Any]):
        return cls.model_validate(convert_document(doc))


class User(StoredModel):
    id: str = Field(alias="_id")
    name: str
    email: str
    role: Role
    location: Optional[str] = None
    farm_type: Optional[str] = None
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    contact_number: Optional[str] = None
    vet_profile_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Veterinarian(StoredModel):
    id: str = Field(alias="_id")
    user_id: str
    name: str
    email: str
    qualifications: str = ""
    specialization: str = ""
    service_regions: List[str] = []
    animal_type: List[str] = []
    verification_status: VerificationStatus = VerificationStatus.PENDING
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    contact_number: Optional[str] = None
    rating: Optional[float] = None
    total_reviews: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Appointment(StoredModel):
    id: str = Field(alias="_id")
    user_id: str
    vet_id: str
    date_time: datetime
    status: AppointmentStatus
    reason: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Message(StoredModel):
    id: str = Field(alias="_id")
    sender_id: str
    receiver_id: str
    content: str
    timestamp: Optional[datetime] = None
    read: bool = False
    appointment_id: Optional[str] = None


# --- 4. Derived Views ---

class Conversation(StoredModel):
    participant_id: str
    participant_name: Optional[str] = None
    last_message: str
    timestamp: Optional[datetime] = None
    unread: int = 0


class Activity(StoredModel):
    id: str
    type: Literal["user_created", "vet_requested", "appointment_booked"]
    user_id: Optional[str] = None
    vet_id: Optional[str] = None
    appointment_id: Optional[str] = None
    description: str
    timestamp: Optional[datetime] = None
    user_name: Optional[str] = None
    vet_name: Optional[str] = None


class AdminStats(StoredModel):
    total_users: int
    total_appointments: int
    pending_veterinarians: int


class MemberDashboard(StoredModel):
    role: Role
    profile: User
    upcoming_appointments: List[Appointment] = []
    appointment_counts: Dict[str, int] = {}
    unread_messages: int = 0


class VeterinarianDashboard(MemberDashboard):
    vet_profile: Optional[Veterinarian] = None
    verification_status: Optional[VerificationStatus] = None


class AdminDashboard(StoredModel):
    role: Role
    profile: User
    stats: AdminStats
    recent_activities: List[Activity] = []


# --- 5. Request Bodies ---

class ProfileSetupBody(StoredModel):
    role: Role
    name: Optional[str] = None
    location: str = ""
    specialization: Optional[str] = None
    farm_type: Optional[str] = None


class ProfileUpdateBody(StoredModel):
    name: Optional[str] = None
    location: Optional[str] = None
    farm_type: Optional[str] = None
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    contact_number: Optional[str] = None


class VeterinarianUpdateBody(StoredModel):
    name: Optional[str] = None
    qualifications: Optional[str] = None
    specialization: Optional[str] = None
    service_regions: Optional[List[str]] = None
    animal_type: Optional[List[str]] = None
    profile_picture: Optional[str] = None
    bio: Optional[str] = None
    contact_number: Optional[str] = None


class AppointmentCreateBody(StoredModel):
    vet_id: str
    date_time: datetime
    reason: str = Field(min_length=1)
    notes: Optional[str] = None


class RescheduleBody(StoredModel):
    date_time: datetime


class MessageCreateBody(StoredModel):
    receiver_id: str
    content: str = Field(min_length=1)
    appointment_id: Optional[str] = None


class SignUpBody(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
