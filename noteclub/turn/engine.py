"""Turn rotation engine.

The engine answers "whose turn is it" for a group and applies the three
mutations that move a rotation forward. It works on plain values and never
touches Firestore, so callers pass the rotation state and a user lookup in
explicitly.

``current_turn_index`` points at the slot of the member who posted most
recently. The member whose turn it is gets derived at read time by scanning
forward from that slot and skipping inactive or missing users.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Union

from noteclub.errors import (
    InvalidStateError,
    UserNotFoundError,
    UserNotInRotationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotationUser:
    """The slice of a user document the rotation cares about."""

    id: str
    name: str
    username: str = ""
    is_active: bool = True
    email: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "username": self.username,
            "isActive": self.is_active,
        }


@dataclass(frozen=True)
class Missing:
    """A turn order entry that no longer resolves to a user."""

    user_id: str


Resolution = Union[RotationUser, Missing]
UserLookup = Callable[[str], Resolution]


@dataclass
class Rotation:
    """Ordered turn state of a single group."""

    turn_order: list[str] = field(default_factory=list)
    current_turn_index: int = 0
    # Set when the stored order had to be cleaned up on load.
    repaired: bool = field(default=False, init=False, compare=False)

    def __post_init__(self) -> None:
        """Drop duplicate entries and pull a stray index back into range."""
        if not 0 <= self.current_turn_index < max(len(self.turn_order), 1):
            logger.warning(
                f"Turn index {self.current_turn_index} out of range for "
                f"{len(self.turn_order)} members, resetting to 0."
            )
            self.current_turn_index = 0

        ordered = list(dict.fromkeys(self.turn_order))
        if len(ordered) != len(self.turn_order):
            logger.warning("Dropped duplicate entries from turn order.")
            last_poster = self.turn_order[self.current_turn_index]
            self.turn_order = ordered
            self.current_turn_index = ordered.index(last_poster)
            self.repaired = True

    def __len__(self) -> int:
        return len(self.turn_order)

    def index_of(self, user_id: str) -> int | None:
        """Return the slot of ``user_id`` or None if it is not in the rotation."""
        try:
            return self.turn_order.index(user_id)
        except ValueError:
            return None


@dataclass(frozen=True)
class Advance:
    """Pointer movement caused by ``advance_turn``."""

    previous_index: int
    new_index: int


def lookup_from(users: Iterable[RotationUser]) -> UserLookup:
    """Build a lookup over already fetched users."""
    by_id = {user.id: user for user in users}

    def lookup(user_id: str) -> Resolution:
        return by_id.get(user_id) or Missing(user_id)

    return lookup


def _scan(
    rotation: Rotation, start: int, lookup: UserLookup
) -> tuple[int, RotationUser] | None:
    """Return the first active user at or after ``start``, wrapping once."""
    length = len(rotation)
    for step in range(length):
        index = (start + step) % length
        resolved = lookup(rotation.turn_order[index])
        if isinstance(resolved, Missing):
            logger.warning(f"Skipping missing user {resolved.user_id} at slot {index}.")
            continue
        if resolved.is_active:
            return index, resolved
    return None


def current_turn_slot(
    rotation: Rotation, lookup: UserLookup
) -> tuple[int, RotationUser] | None:
    """Return ``(index, user)`` of the member whose turn it is."""
    if not rotation.turn_order:
        return None
    return _scan(rotation, rotation.current_turn_index + 1, lookup)


def current_turn_user(rotation: Rotation, lookup: UserLookup) -> RotationUser | None:
    """Return the member whose turn it is, or None while the rotation is paused."""
    slot = current_turn_slot(rotation, lookup)
    return slot[1] if slot else None


def next_turn_user(rotation: Rotation, lookup: UserLookup) -> RotationUser | None:
    """Return the member who follows the current turn holder."""
    slot = current_turn_slot(rotation, lookup)
    if slot is None:
        return None
    found = _scan(rotation, slot[0] + 1, lookup)
    return found[1] if found else None


def advance_turn(rotation: Rotation) -> Advance:
    """Move the last-poster pointer one slot forward.

    Activity is ignored here; inactive slots are skipped when the turn holder
    is read.
    """
    if not rotation.turn_order:
        raise InvalidStateError("Cannot advance an empty rotation.")
    previous = rotation.current_turn_index
    rotation.current_turn_index = (previous + 1) % len(rotation)
    return Advance(previous_index=previous, new_index=rotation.current_turn_index)


def set_turn_to(rotation: Rotation, user_id: str, lookup: UserLookup) -> Advance:
    """Record ``user_id`` as the member who posted last."""
    if not rotation.turn_order:
        raise InvalidStateError("Cannot set a turn on an empty rotation.")
    if isinstance(lookup(user_id), Missing):
        raise UserNotFoundError(f"User {user_id} not found.")
    index = rotation.index_of(user_id)
    if index is None:
        raise UserNotInRotationError(
            "User is not in the turn order for this group."
        )
    previous = rotation.current_turn_index
    rotation.current_turn_index = index
    return Advance(previous_index=previous, new_index=index)


def add_member(members: list[str], rotation: Rotation, user_id: str) -> bool:
    """Append a member to the group and the end of the rotation.

    Returns False when the user was already present in both.
    """
    added = False
    if user_id not in members:
        members.append(user_id)
        added = True
    if rotation.index_of(user_id) is None:
        rotation.turn_order.append(user_id)
        added = True
    return added


def remove_member(members: list[str], rotation: Rotation, user_id: str) -> bool:
    """Drop a member from the group and the rotation.

    The pointer keeps referring to the same poster. When the last poster
    is the one leaving, it moves to the preceding slot so the member after
    them becomes the turn holder.
    """
    removed = False
    if user_id in members:
        members.remove(user_id)
        removed = True

    index = rotation.index_of(user_id)
    if index is None:
        return removed

    del rotation.turn_order[index]
    if not rotation.turn_order:
        rotation.current_turn_index = 0
    elif index <= rotation.current_turn_index:
        rotation.current_turn_index = (rotation.current_turn_index - 1) % len(
            rotation
        )
    return True


def _sort_key(user: RotationUser) -> tuple[str, str]:
    return (user.name.casefold(), user.id)


def rebuild_turn_order(
    members: list[str], rotation: Rotation, lookup: UserLookup
) -> list[str]:
    """Reorder the rotation as all members sorted by display name.

    Members that do not resolve are left out of the new order. Their ids are
    returned so the caller can report them.
    """
    resolved = []
    dropped = []
    for user_id in dict.fromkeys(members):
        user = lookup(user_id)
        if isinstance(user, Missing):
            logger.warning(f"Dropping unresolvable member {user_id} from turn order.")
            dropped.append(user_id)
        else:
            resolved.append(user)

    rotation.turn_order = [user.id for user in sorted(resolved, key=_sort_key)]
    if rotation.current_turn_index >= len(rotation):
        rotation.current_turn_index = 0
    return dropped
