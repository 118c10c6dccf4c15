"""Data models for the group blueprint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from noteclub.core.types import FirestoreDocument

if TYPE_CHECKING:
    from noteclub.user.models import User


class Group(FirestoreDocument, total=False):
    """A group document in Firestore."""

    name: str
    description: str
    inviteCode: str
    isPrivate: bool
    maxMembers: int
    ownerRef: User | Any
    admins: list[User | Any]
    members: list[User | Any]
    # Rotation order and the slot of the member who posted last.
    turnOrder: list[User | Any]
    currentTurnIndex: int
