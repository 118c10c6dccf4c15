"""Turn rotation: whose turn it is to post, and how turns move on."""

from .engine import Missing, Rotation, RotationUser

__all__ = ["Missing", "Rotation", "RotationUser"]
