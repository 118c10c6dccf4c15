"""Response shapes for turn operations."""

from __future__ import annotations

from typing import Any, Optional, TypedDict

UserPayload = Optional[dict[str, Any]]


class TurnStatus(TypedDict):
    """Who is up and where the rotation stands."""

    isMyTurn: bool
    currentTurnUser: UserPayload
    nextTurnUser: UserPayload
    currentTurnIndex: int
    totalMembers: int
    turnOrder: list[dict[str, Any]]
    groupName: str


class AdvanceResult(TypedDict):
    """Outcome of moving the pointer one slot forward."""

    previousIndex: int
    newIndex: int
    previousUser: UserPayload
    lastPosted: UserPayload
    currentTurnUser: UserPayload
    message: str


class TurnPosition(TypedDict):
    """A user together with their slot in the rotation."""

    user: UserPayload
    index: int


class SetTurnResult(TypedDict):
    """Outcome of an admin override of the last poster."""

    previousTurn: TurnPosition
    newLastPosted: TurnPosition
    actualCurrentTurn: UserPayload
    message: str


class RebuildResult(TypedDict):
    """Turn order after sorting members by name."""

    turnOrder: list[dict[str, Any]]
    currentTurnIndex: int
    dropped: list[str]


class TurnSlot(TypedDict):
    """One row of the admin turn order inspection."""

    index: int
    userId: str
    name: str
    isActive: bool
    isMissing: bool
    isLastPosted: bool
    isCurrentTurn: bool


class GroupUpdateResult(TypedDict):
    """Group settings and rotation after an admin edit."""

    groupId: str
    name: str
    isPrivate: bool
    members: list[str]
    turnOrder: list[dict[str, Any]]
    currentTurnIndex: int
    dropped: list[str]
    message: str
