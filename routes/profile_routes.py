# routes/profile_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException, status

import config
from models.schemas import ProfileSetupBody, ProfileUpdateBody, Role, User
from security import SessionContext, get_profile_context, get_session_context
from app.services.users import create_user_profile, get_user_profile, update_user_profile
from app.services.veterinarians import create_veterinarian_profile

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=User)
async def get_my_profile(context: SessionContext = Depends(get_profile_context)):
    return context.user


@router.get("/setup")
async def profile_setup_status(context: SessionContext = Depends(get_session_context)):
    """Where callers without a profile are sent."""
    roles = [Role.FARMER, Role.PET_OWNER, Role.VETERINARIAN]
    if context.account.email.lower() in config.ADMIN_EMAILS:
        roles.append(Role.ADMIN)
    return {
        "profile_required": context.profile is None,
        "email": context.account.email,
        "available_roles": [role.value for role in roles]
    }


@router.post("/setup", response_model=User, status_code=status.HTTP_201_CREATED)
async def setup_profile(
    body: ProfileSetupBody,
    context: SessionContext = Depends(get_session_context)
):
    """Creates (or completes) the caller's profile; veterinarians also get a pending professional profile."""
    role = Role(body.role)
    email = context.account.email
    if role == Role.ADMIN and email.lower() not in config.ADMIN_EMAILS:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This account cannot claim the admin role.")

    if context.has_role(Role.VETERINARIAN) and role != Role.VETERINARIAN:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Veterinarians cannot switch to another role.",
        )

    user_id = context.account.id
    fields = {"location": body.location, "farmType": body.farm_type}

    if context.profile is None:
        name = body.name or email.split("@")[0]
        await create_user_profile(user_id, name, email, role.value, **fields)
    else:
        name = body.name or context.profile.name
        update = {"role": role.value}
        if body.name:
            update["name"] = body.name
        update.update({key: value for key, value in fields.items() if value})
        await update_user_profile(user_id, update)

    if role == Role.VETERINARIAN and context.vet_profile is None:
        vet_profile_id = await create_veterinarian_profile({
            "userId": user_id,
            "name": name,
            "email": email,
            "qualifications": "",
            "specialization": body.specialization or "",
            "serviceRegions": [body.location] if body.location else [],
            "animalType": [],
        })
        await update_user_profile(user_id, {"vetProfileId": vet_profile_id})
        logger.info(f"Veterinarian profile {vet_profile_id} created for user {user_id}.")

    return await get_user_profile(user_id)


@router.put("", response_model=User)
async def update_my_profile(
    body: ProfileUpdateBody,
    context: SessionContext = Depends(get_profile_context)
):
    update_data = body.model_dump(by_alias=True, exclude_none=True)
    if not update_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Nothing to update.")

    await update_user_profile(context.user.id, update_data)
    return await get_user_profile(context.user.id)
