# app/services/users.py

import logging
from typing import Any, Dict, List, Optional

from database import USERS, get_collection
from errors import StoreError, store_operation
from models.schemas import Role, User

logger = logging.getLogger(__name__)


@store_operation("creating user profile")
async def create_user_profile(user_id: str, name: str, email: str, role: str, **fields: Any) -> str:
    """Writes the profile under the account id, replacing any earlier profile fields."""
    profile = {"name": name, "email": email, "role": Role(role).value}
    profile.update({key: value for key, value in fields.items() if value is not None})

    await get_collection(USERS).update_one(
        {"_id": user_id},
        {"$set": profile, "$currentDate": {"createdAt": True, "updatedAt": True}},
        upsert=True,
    )
    return user_id


@store_operation("getting user profile")
async def get_user_profile(user_id: str) -> Optional[User]:
    doc = await get_collection(USERS).find_one({"_id": user_id})
    if doc:
        return User.from_document(doc)
    return None


@store_operation("getting user profiles")
async def get_user_profiles(user_ids: List[str]) -> Dict[str, User]:
    if not user_ids:
        return {}
    cursor = get_collection(USERS).find({"_id": {"$in": list(user_ids)}})
    return {doc["_id"]: User.from_document(doc) for doc in await cursor.to_list(length=None)}


@store_operation("updating user profile")
async def update_user_profile(user_id: str, data: Dict[str, Any]):
    result = await get_collection(USERS).update_one(
        {"_id": user_id},
        {"$set": data, "$currentDate": {"updatedAt": True}}
    )
    if result.matched_count == 0:
        raise StoreError.not_found("User", user_id)


@store_operation("deleting user profile")
async def delete_user_profile(user_id: str):
    result = await get_collection(USERS).delete_one({"_id": user_id})
    if result.deleted_count == 0:
        raise StoreError.not_found("User", user_id)
    logger.info(f"User profile {user_id} deleted.")


@store_operation("listing users")
async def list_users(limit: Optional[int] = None) -> List[User]:
    cursor = get_collection(USERS).find({}).sort([("createdAt", -1), ("_id", -1)])
    if limit:
        cursor = cursor.limit(limit)
    return [User.from_document(doc) for doc in await cursor.to_list(length=None)]


@store_operation("counting users")
async def count_users() -> int:
    return await get_collection(USERS).count_documents({})
