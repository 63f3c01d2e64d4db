"""Read/write access to the user profile slice the engine depends on."""

from typing import Any

from ..io.serializers import row_to_profile
from ..io.store import Store
from .models import UserProfile


async def load_profile(store: Store, user_id: str) -> UserProfile:
    """Return the stored profile, or a default one if the user has none yet."""
    row = await store.select_one("profiles", {"user_id": user_id})
    return row_to_profile(row) if row else UserProfile(user_id=user_id)


async def update_profile(store: Store, user_id: str, **fields: Any) -> UserProfile:
    """Upsert profile fields for *user_id* and return the result."""
    row = await store.upsert("profiles", {"user_id": user_id, **fields}, ("user_id",))
    return row_to_profile(row)
