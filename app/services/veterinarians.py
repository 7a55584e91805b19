# app/services/veterinarians.py

import logging
from typing import Any, Dict, Iterable, List, Optional

from database import VETERINARIANS, get_collection, new_id
from errors import StoreError, store_operation
from models.schemas import Veterinarian, VerificationStatus

logger = logging.getLogger(__name__)


@store_operation("creating veterinarian profile")
async def create_veterinarian_profile(vet_data: Dict[str, Any]) -> str:
    """Creates a professional profile. New profiles always wait for admin verification."""
    vet_id = new_id()
    profile = {key: value for key, value in vet_data.items() if key not in ("_id", "id")}
    profile["verificationStatus"] = VerificationStatus.PENDING.value

    await get_collection(VETERINARIANS).update_one(
        {"_id": vet_id},
        {"$setOnInsert": profile, "$currentDate": {"createdAt": True, "updatedAt": True}},
        upsert=True,
    )
    return vet_id


@store_operation("getting veterinarian profile")
async def get_veterinarian_profile(vet_id: str) -> Optional[Veterinarian]:
    doc = await get_collection(VETERINARIANS).find_one({"_id": vet_id})
    if doc:
        return Veterinarian.from_document(doc)
    return None


@store_operation("updating veterinarian profile")
async def update_veterinarian_profile(vet_id: str, vet_data: Dict[str, Any]):
    result = await get_collection(VETERINARIANS).update_one(
        {"_id": vet_id},
        {"$set": vet_data, "$currentDate": {"updatedAt": True}}
    )
    if result.matched_count == 0:
        raise StoreError.not_found("Veterinarian", vet_id)


@store_operation("deleting veterinarian profile")
async def delete_veterinarian_profile(vet_id: str):
    result = await get_collection(VETERINARIANS).delete_one({"_id": vet_id})
    if result.deleted_count == 0:
        raise StoreError.not_found("Veterinarian", vet_id)
    logger.info(f"Veterinarian profile {vet_id} deleted.")


@store_operation("getting veterinarians")
async def get_veterinarians(status: Optional[VerificationStatus] = None) -> List[Veterinarian]:
    query = {}
    if status:
        query["verificationStatus"] = VerificationStatus(status).value
    cursor = get_collection(VETERINARIANS).find(query).sort([("createdAt", -1), ("_id", -1)])
    return [Veterinarian.from_document(doc) for doc in await cursor.to_list(length=None)]


@store_operation("counting veterinarians")
async def count_veterinarians(status: Optional[VerificationStatus] = None) -> int:
    query = {}
    if status:
        query["verificationStatus"] = VerificationStatus(status).value
    return await get_collection(VETERINARIANS).count_documents(query)


async def verify_veterinarian(vet_id: str):
    await update_veterinarian_profile(vet_id, {"verificationStatus": VerificationStatus.VERIFIED.value})
    logger.info(f"Veterinarian {vet_id} verified.")


async def reject_veterinarian(vet_id: str):
    await update_veterinarian_profile(vet_id, {"verificationStatus": VerificationStatus.REJECTED.value})
    logger.info(f"Veterinarian {vet_id} rejected.")


def _matches(values: Iterable[str], needle: str) -> bool:
    return any(needle in value.lower() for value in values if value)


def filter_veterinarians(
    vets: List[Veterinarian],
    location: Optional[str] = None,
    specialization: Optional[str] = None,
    animal_type: Optional[str] = None,
) -> List[Veterinarian]:
    """Case-insensitive substring filters; empty filters are ignored."""
    result = vets
    if location:
        needle = location.lower()
        result = [vet for vet in result if _matches(vet.service_regions, needle)]
    if specialization:
        needle = specialization.lower()
        result = [vet for vet in result if vet.specialization and needle in vet.specialization.lower()]
    if animal_type:
        needle = animal_type.lower()
        result = [vet for vet in result if _matches(vet.animal_type, needle)]
    return result
