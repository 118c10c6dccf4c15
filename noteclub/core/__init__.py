"""Core module for the noteclub application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
