"""User documents as seen by the rotation."""

from .models import User

__all__ = ["User"]
