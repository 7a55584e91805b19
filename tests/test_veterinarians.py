import pytest

from database import VETERINARIANS
from errors import ErrorKind, StoreError
from models.schemas import Veterinarian, VerificationStatus
from app.services.dashboards import get_admin_stats
from app.services.veterinarians import (
    count_veterinarians, create_veterinarian_profile, delete_veterinarian_profile, filter_veterinarians,
    get_veterinarian_profile, get_veterinarians, reject_veterinarian, update_veterinarian_profile,
    verify_veterinarian
)


def vet(vet_id, regions=(), specialization="", animals=()):
    return Veterinarian(
        id=vet_id, user_id=f"user-{vet_id}", name=vet_id, email=f"{vet_id}@example.com",
        service_regions=list(regions), specialization=specialization, animal_type=list(animals),
    )


async def test_new_profiles_wait_for_verification():
    vet_id = await create_veterinarian_profile({
        "userId": "u9",
        "name": "Dr. Otieno",
        "email": "otieno@example.com",
        "specialization": "Large animals",
        "serviceRegions": ["Nakuru"],
        "verificationStatus": "verified",
    })

    profile = await get_veterinarian_profile(vet_id)
    assert profile.verification_status == VerificationStatus.PENDING
    assert profile.service_regions == ["Nakuru"]
    assert profile.created_at is not None


async def test_rejecting_pending_vet_removes_it_from_pending_tally(mock_db):
    await mock_db[VETERINARIANS].insert_one({
        "_id": "vet42", "userId": "u42", "name": "Dr. Who", "email": "who@example.com",
        "verificationStatus": "pending",
    })
    assert (await get_admin_stats()).pending_veterinarians == 1

    await reject_veterinarian("vet42")

    assert (await get_veterinarian_profile("vet42")).verification_status == VerificationStatus.REJECTED
    assert (await get_admin_stats()).pending_veterinarians == 0
    assert [v.id for v in await get_veterinarians(VerificationStatus.REJECTED)] == ["vet42"]


async def test_verify_moves_vet_to_verified():
    vet_id = await create_veterinarian_profile({"userId": "u1", "name": "A", "email": "a@example.com"})

    await verify_veterinarian(vet_id)

    assert [v.id for v in await get_veterinarians(VerificationStatus.VERIFIED)] == [vet_id]
    assert await get_veterinarians(VerificationStatus.PENDING) == []


async def test_counts_by_verification_status():
    first = await create_veterinarian_profile({"userId": "u1", "name": "A", "email": "a@example.com"})
    await create_veterinarian_profile({"userId": "u2", "name": "B", "email": "b@example.com"})
    await verify_veterinarian(first)

    assert await count_veterinarians() == 2
    assert await count_veterinarians(VerificationStatus.PENDING) == 1
    assert await count_veterinarians(VerificationStatus.VERIFIED) == 1


async def test_deleting_profile_removes_it_once():
    vet_id = await create_veterinarian_profile({"userId": "u1", "name": "A", "email": "a@example.com"})

    await delete_veterinarian_profile(vet_id)

    assert await get_veterinarian_profile(vet_id) is None
    with pytest.raises(StoreError) as excinfo:
        await delete_veterinarian_profile(vet_id)
    assert excinfo.value.kind == ErrorKind.NOT_FOUND


async def test_updating_missing_profile_is_not_found():
    with pytest.raises(StoreError) as excinfo:
        await update_veterinarian_profile("nope", {"bio": "x"})

    assert excinfo.value.kind == ErrorKind.NOT_FOUND


def test_filters_are_case_insensitive_substrings():
    vets = [
        vet("a", regions=["Nairobi County"], specialization="Poultry", animals=["Chickens"]),
        vet("b", regions=["Kisumu"], specialization="Small animals", animals=["Dogs", "Cats"]),
        vet("c", regions=["nairobi west"], specialization="Dairy cattle", animals=["Cows"]),
    ]

    assert [v.id for v in filter_veterinarians(vets, location="NAIROBI")] == ["a", "c"]
    assert [v.id for v in filter_veterinarians(vets, specialization="cattle")] == ["c"]
    assert [v.id for v in filter_veterinarians(vets, animal_type="cat")] == ["b"]
    assert [v.id for v in filter_veterinarians(vets, location="nairobi", animal_type="cow")] == ["c"]
    assert filter_veterinarians(vets) == vets
