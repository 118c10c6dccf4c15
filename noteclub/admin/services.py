"""Service layer for admin-related operations."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from noteclub.core.constants import USERS_COLLECTION
from noteclub.errors import UserNotFoundError
from noteclub.user.helpers import to_rotation_user

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client


class AdminService:
    """Service class for admin-related operations."""

    @staticmethod
    def set_user_active(db: Client, user_id: str, is_active: bool) -> dict[str, Any]:
        """Include a user in rotations again, or skip them from now on."""
        user_ref = db.collection(USERS_COLLECTION).document(user_id)
        if not user_ref.get().exists:
            raise UserNotFoundError(f"User {user_id} not found.")
        user_ref.update({"isActive": is_active})
        return to_rotation_user(user_ref.get()).to_dict()
