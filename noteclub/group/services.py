"""Service layer for group membership."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from noteclub.core.constants import (
    GROUPS_COLLECTION,
    INVITE_CODE_ALPHABET,
    INVITE_CODE_ATTEMPTS,
    INVITE_CODE_LENGTH,
    USERS_COLLECTION,
)
from noteclub.errors import AppError, NotFoundError, ValidationError
from noteclub.turn.services import TurnService

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


class GroupService:
    """Service class for group-related operations."""

    @staticmethod
    def _find_by_invite_code(db: Client, invite_code: str) -> DocumentSnapshot | None:
        query = (
            db.collection(GROUPS_COLLECTION)
            .where(filter=firestore.FieldFilter("inviteCode", "==", invite_code))
            .limit(1)
        )
        docs = list(query.stream())
        return docs[0] if docs else None

    @staticmethod
    def generate_invite_code(db: Client) -> str:
        """Return an invite code that no other group uses."""
        for _ in range(INVITE_CODE_ATTEMPTS):
            code = "".join(
                secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH)
            )
            if GroupService._find_by_invite_code(db, code) is None:
                return code
        raise AppError("Could not generate a unique invite code.", 500)

    @staticmethod
    def create_group(  # noqa: PLR0913
        db: Client,
        owner_id: str,
        name: str,
        description: str,
        is_private: bool,
        max_members: int,
    ) -> dict[str, Any]:
        """Create a group whose rotation starts with its owner."""
        owner_ref = db.collection(USERS_COLLECTION).document(owner_id)
        invite_code = GroupService.generate_invite_code(db)
        group_data = {
            "name": name.strip(),
            "description": (description or "").strip(),
            "isPrivate": is_private,
            "inviteCode": invite_code,
            "maxMembers": max_members,
            "ownerRef": owner_ref,
            "admins": [owner_ref],
            "members": [owner_ref],
            "turnOrder": [owner_ref],
            "currentTurnIndex": 0,
            "createdAt": firestore.SERVER_TIMESTAMP,
        }
        _, group_ref = db.collection(GROUPS_COLLECTION).add(group_data)
        return {"groupId": group_ref.id, "inviteCode": invite_code}

    @staticmethod
    def join_group(db: Client, invite_code: str, user_id: str) -> dict[str, Any]:
        """Add the user to the group behind an invite code."""
        group = GroupService._find_by_invite_code(db, invite_code.strip().upper())
        if group is None:
            raise NotFoundError("Invalid invite code.")

        group_name = (group.to_dict() or {}).get("name", "")
        joined = TurnService.add_member(db, group.id, user_id)
        message = (
            f"Successfully joined {group_name}!"
            if joined
            else f"You are already a member of {group_name}."
        )
        return {
            "groupId": group.id,
            "name": group_name,
            "joined": joined,
            "message": message,
        }

    @staticmethod
    def leave_group(db: Client, group_id: str, user_id: str) -> None:
        """Remove the user from a group and its rotation."""
        if not TurnService.remove_member(db, group_id, user_id):
            raise ValidationError("You are not a member of this group.")
