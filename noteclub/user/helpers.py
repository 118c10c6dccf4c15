"""Helper functions for user-related data."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from noteclub.turn.engine import RotationUser

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot


def mask_email(email: str) -> str:
    """Hide most of the local part of an email address."""
    local, _, domain = email.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


def smart_display_name(user: dict[str, Any]) -> str:
    """Return a display name for a user.

    Prefers the full name, then the username, then a masked email.
    """
    if name := (user.get("name") or "").strip():
        return name
    if username := user.get("username"):
        return username
    if email := user.get("email"):
        return mask_email(email)
    return "Unknown"


def is_active(user: dict[str, Any]) -> bool:
    """Return whether a user takes part in rotations.

    Legacy documents without the flag count as active.
    """
    value = user.get("isActive")
    return True if value is None else bool(value)


def to_rotation_user(snapshot: DocumentSnapshot) -> RotationUser:
    """Wrap a user snapshot for the turn engine."""
    data = snapshot.to_dict() or {}
    return RotationUser(
        id=snapshot.id,
        name=smart_display_name(data),
        username=data.get("username", ""),
        is_active=is_active(data),
        email=data.get("email"),
    )
