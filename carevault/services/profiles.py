import json
import logging

from carevault.database import get_db, load_json_list, to_timestamp, utcnow
from carevault.errors import NotFound, TransientBackendFailure
from carevault.models.profile import MinimumSafeDataset, Profile, ProfileUpdate

logger = logging.getLogger(__name__)

_JSON_FIELDS = ("allergies", "chronic_conditions")


def _row_to_profile(row) -> Profile:
    return Profile(
        user_id=row["user_id"],
        role=row["role"],
        name=row["name"],
        age=row["age"],
        gender=row["gender"],
        blood_group=row["blood_group"],
        phone=row["phone"],
        emergency_contact=row["emergency_contact"],
        emergency_contact_name=row["emergency_contact_name"],
        allergies=load_json_list(row["allergies"]),
        chronic_conditions=load_json_list(row["chronic_conditions"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def find_profile(user_id: str) -> Profile | None:
    db = await get_db()
    row = await db.fetch_one("SELECT * FROM profiles WHERE user_id = ?", (user_id,))
    return _row_to_profile(row) if row else None


async def get_profile(user_id: str) -> Profile:
    profile = await find_profile(user_id)
    if profile is None:
        raise NotFound("Profile not found")
    return profile


async def create_profile(user_id: str, role: str = "patient", **fields) -> Profile:
    db = await get_db()
    now = to_timestamp(utcnow())
    await db.execute(
        """INSERT INTO profiles (
            user_id, role, name, age, gender, blood_group, phone,
            emergency_contact, emergency_contact_name, allergies,
            chronic_conditions, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            user_id,
            role,
            fields.get("name"),
            fields.get("age"),
            fields.get("gender"),
            fields.get("blood_group"),
            fields.get("phone"),
            fields.get("emergency_contact"),
            fields.get("emergency_contact_name"),
            json.dumps(fields.get("allergies") or []),
            json.dumps(fields.get("chronic_conditions") or []),
            now,
            now,
        ),
    )
    await db.commit()
    return await get_profile(user_id)


async def update_profile(user_id: str, updates: ProfileUpdate) -> Profile:
    changes = updates.model_dump(exclude_unset=True)
    if not changes:
        return await get_profile(user_id)

    columns = []
    values = []
    for key, value in changes.items():
        columns.append(f"{key} = ?")
        values.append(json.dumps(value or []) if key in _JSON_FIELDS else value)
    columns.append("updated_at = ?")
    values.append(to_timestamp(utcnow()))

    db = await get_db()
    try:
        updated = await db.execute(
            f"UPDATE profiles SET {', '.join(columns)} WHERE user_id = ?",
            (*values, user_id),
        )
        await db.commit()
    except Exception as exc:
        logger.error("Failed to update profile %s: %s", user_id, exc)
        raise TransientBackendFailure("Failed to update profile") from exc
    if updated == 0:
        raise NotFound("Profile not found")
    return await get_profile(user_id)


def safe_dataset(profile: Profile) -> MinimumSafeDataset:
    return MinimumSafeDataset(
        name=profile.name,
        age=profile.age,
        gender=profile.gender,
        blood_group=profile.blood_group,
        allergies=profile.allergies,
        chronic_conditions=profile.chronic_conditions,
        emergency_contact=profile.emergency_contact,
        emergency_contact_name=profile.emergency_contact_name,
    )
