"""Data models for users."""

from __future__ import annotations

from noteclub.core.types import FirestoreDocument


class User(FirestoreDocument, total=False):
    """A user document in Firestore."""

    email: str
    username: str
    name: str
    isActive: bool
    isAdmin: bool
    uid: str
