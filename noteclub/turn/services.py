"""Service layer for turn rotation persistence and orchestration."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app
from google.api_core import exceptions as google_exceptions

from noteclub.core.constants import (
    DEFAULT_MAX_MEMBERS,
    GROUP_ADMINS,
    GROUP_CURRENT_TURN_INDEX,
    GROUP_MEMBERS,
    GROUP_TURN_ORDER,
    GROUPS_COLLECTION,
    USERS_COLLECTION,
)
from noteclub.errors import (
    AccessDenied,
    InvalidStateError,
    NotFoundError,
    PersistenceConflictError,
    ValidationError,
)
from noteclub.user.helpers import to_rotation_user

from . import engine
from .engine import Advance, Rotation, RotationUser, UserLookup
from .models import (
    AdvanceResult,
    GroupUpdateResult,
    RebuildResult,
    SetTurnResult,
    TurnSlot,
    TurnStatus,
)
from .notifications import send_turn_reminder

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

    from noteclub.group.models import Group


def ref_id(value: Any) -> str:
    """Return the user id behind a stored reference or a legacy string id."""
    return value.id if hasattr(value, "id") else str(value)


def _payload(user: RotationUser | None) -> dict[str, Any] | None:
    return user.to_dict() if user else None


def _resolved(lookup: UserLookup, user_id: str) -> RotationUser | None:
    user = lookup(user_id)
    return user if isinstance(user, RotationUser) else None


def _ordered_users(rotation: Rotation, lookup: UserLookup) -> list[dict[str, Any]]:
    return [
        user.to_dict()
        for user_id in rotation.turn_order
        if (user := _resolved(lookup, user_id))
    ]


def _turn_message(current: RotationUser | None) -> str:
    if current is None:
        return "No active members, the rotation is paused."
    return f"{current.name}'s turn now."


def _remind_new_holder(
    group_data: Group,
    rotation: Rotation,
    lookup: UserLookup,
    advance: Advance,
    current: RotationUser | None,
) -> None:
    """Email the turn holder unless they already held the turn before."""
    if current is None:
        return
    before = engine.current_turn_user(
        Rotation(list(rotation.turn_order), advance.previous_index), lookup
    )
    if before is not None and before.id == current.id:
        return
    send_turn_reminder(group_data.get("name", ""), current)


class TurnService:
    """Reads and updates the turn rotation stored on group documents."""

    @staticmethod
    def _user_refs(db: Client, user_ids: Iterable[str]) -> list[DocumentReference]:
        return [db.collection(USERS_COLLECTION).document(uid) for uid in user_ids]

    @staticmethod
    def build_lookup(db: Client, user_ids: Iterable[str]) -> UserLookup:
        """Batch fetch users and return a lookup that tags absent ones as Missing."""
        unique_ids = [uid for uid in dict.fromkeys(user_ids) if uid]
        if not unique_ids:
            return engine.lookup_from([])
        docs = db.get_all(TurnService._user_refs(db, unique_ids))
        return engine.lookup_from(to_rotation_user(doc) for doc in docs if doc.exists)

    @staticmethod
    def _get_group_data(
        group_ref: DocumentReference, transaction: Transaction | None = None
    ) -> Group:
        snapshot = group_ref.get(transaction=transaction)
        if not snapshot.exists:
            raise NotFoundError("Group not found.")
        group_data = cast("Group", snapshot.to_dict() or {})
        group_data["id"] = snapshot.id
        return group_data

    @staticmethod
    def rotation_from(group_data: Group) -> Rotation:
        """Build the engine's view of a group's turn state."""
        return Rotation(
            turn_order=[ref_id(ref) for ref in group_data.get(GROUP_TURN_ORDER, [])],
            current_turn_index=int(group_data.get(GROUP_CURRENT_TURN_INDEX) or 0),
        )

    @staticmethod
    def _pointer_update(db: Client, rotation: Rotation) -> dict[str, Any]:
        """Fields to write after the pointer moved."""
        update: dict[str, Any] = {
            GROUP_CURRENT_TURN_INDEX: rotation.current_turn_index
        }
        if rotation.repaired:
            update[GROUP_TURN_ORDER] = TurnService._user_refs(db, rotation.turn_order)
        return update

    @staticmethod
    def _run_in_transaction(db: Client, func: Callable[..., Any], *args: Any) -> Any:
        """Run ``func(transaction, *args)`` as a Firestore transaction."""
        transaction = db.transaction()
        try:
            return firestore.transactional(func)(transaction, *args)
        except (google_exceptions.Aborted, google_exceptions.Conflict) as e:
            current_app.logger.warning(f"Turn update lost to a concurrent write: {e}")
            raise PersistenceConflictError() from e
        except ValueError as e:
            # Exhausted retries surface as a ValueError chained from the abort.
            if not isinstance(e.__cause__, google_exceptions.Aborted):
                raise
            current_app.logger.warning(f"Turn update gave up after retries: {e}")
            raise PersistenceConflictError() from e

    @staticmethod
    def get_turn_status(
        db: Client, group_id: str, requesting_user_id: str | None
    ) -> TurnStatus:
        """Return who is up, who follows and whether it is the requester's turn."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        group_data = TurnService._get_group_data(group_ref)
        rotation = TurnService.rotation_from(group_data)

        lookup = TurnService.build_lookup(
            db, [*rotation.turn_order, requesting_user_id or ""]
        )
        current = engine.current_turn_user(rotation, lookup)
        next_user = engine.next_turn_user(rotation, lookup)

        requester = _resolved(lookup, requesting_user_id) if requesting_user_id else None
        is_my_turn = (
            requester is not None and current is not None and current.id == requester.id
        )

        return {
            "isMyTurn": is_my_turn,
            "currentTurnUser": _payload(current),
            "nextTurnUser": _payload(next_user),
            "currentTurnIndex": rotation.current_turn_index,
            "totalMembers": len(group_data.get(GROUP_MEMBERS, [])),
            "turnOrder": _ordered_users(rotation, lookup),
            "groupName": group_data.get("name", ""),
        }

    @staticmethod
    def _advance_in_transaction(
        transaction: Transaction, db: Client, group_ref: DocumentReference
    ) -> tuple[Group, Rotation, UserLookup, Advance]:
        group_data = TurnService._get_group_data(group_ref, transaction)
        rotation = TurnService.rotation_from(group_data)
        advance = engine.advance_turn(rotation)
        transaction.update(group_ref, TurnService._pointer_update(db, rotation))
        lookup = TurnService.build_lookup(db, rotation.turn_order)
        return group_data, rotation, lookup, advance

    @staticmethod
    def _post_in_transaction(
        transaction: Transaction,
        db: Client,
        group_ref: DocumentReference,
        poster_id: str,
    ) -> tuple[Group, Rotation, UserLookup, Advance]:
        group_data = TurnService._get_group_data(group_ref, transaction)
        rotation = TurnService.rotation_from(group_data)
        lookup = TurnService.build_lookup(db, rotation.turn_order)

        holder = engine.current_turn_user(rotation, lookup)
        if holder is None:
            raise InvalidStateError("No active members, the rotation is paused.")
        if holder.id != poster_id:
            raise AccessDenied("It is not your turn to post.")

        # Inactive slots may sit between the pointer and the holder.
        advance = engine.set_turn_to(rotation, holder.id, lookup)
        transaction.update(group_ref, TurnService._pointer_update(db, rotation))
        return group_data, rotation, lookup, advance

    @staticmethod
    def _advance_result(
        group_data: Group, rotation: Rotation, lookup: UserLookup, advance: Advance
    ) -> AdvanceResult:
        current = engine.current_turn_user(rotation, lookup)
        previous_user = _resolved(lookup, rotation.turn_order[advance.previous_index])
        last_posted = _resolved(lookup, rotation.turn_order[advance.new_index])

        _remind_new_holder(group_data, rotation, lookup, advance, current)

        return {
            "previousIndex": advance.previous_index,
            "newIndex": advance.new_index,
            "previousUser": _payload(previous_user),
            "lastPosted": _payload(last_posted),
            "currentTurnUser": _payload(current),
            "message": (
                f"Advanced from index {advance.previous_index} to "
                f"{advance.new_index}. {_turn_message(current)}"
            ),
        }

    @staticmethod
    def advance_turn(db: Client, group_id: str) -> AdvanceResult:
        """Move the last-poster pointer one slot forward."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        group_data, rotation, lookup, advance = TurnService._run_in_transaction(
            db, TurnService._advance_in_transaction, db, group_ref
        )
        current_app.logger.info(
            f"Group {group_id} advanced from slot {advance.previous_index} "
            f"to {advance.new_index}."
        )
        return TurnService._advance_result(group_data, rotation, lookup, advance)

    @staticmethod
    def record_post(db: Client, group_id: str, user_id: str) -> AdvanceResult:
        """Pass the turn on after the current holder has posted."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        group_data, rotation, lookup, advance = TurnService._run_in_transaction(
            db, TurnService._post_in_transaction, db, group_ref, user_id
        )
        current_app.logger.info(f"User {user_id} posted in group {group_id}.")
        return TurnService._advance_result(group_data, rotation, lookup, advance)

    @staticmethod
    def _set_turn_in_transaction(
        transaction: Transaction,
        db: Client,
        group_ref: DocumentReference,
        user_id: str,
    ) -> tuple[Group, Rotation, UserLookup, Advance]:
        group_data = TurnService._get_group_data(group_ref, transaction)
        rotation = TurnService.rotation_from(group_data)
        lookup = TurnService.build_lookup(db, [*rotation.turn_order, user_id])
        advance = engine.set_turn_to(rotation, user_id, lookup)
        transaction.update(group_ref, TurnService._pointer_update(db, rotation))
        return group_data, rotation, lookup, advance

    @staticmethod
    def set_turn_to(db: Client, group_id: str, user_id: str) -> SetTurnResult:
        """Record ``user_id`` as the member who posted last."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        group_data, rotation, lookup, advance = TurnService._run_in_transaction(
            db, TurnService._set_turn_in_transaction, db, group_ref, user_id
        )

        previous_user = _resolved(lookup, rotation.turn_order[advance.previous_index])
        target = _resolved(lookup, user_id)
        current = engine.current_turn_user(rotation, lookup)
        current_app.logger.info(
            f"Group {group_id} turn set to {user_id} at slot {advance.new_index}."
        )
        _remind_new_holder(group_data, rotation, lookup, advance, current)

        target_name = target.name if target else user_id
        return {
            "previousTurn": {
                "user": _payload(previous_user),
                "index": advance.previous_index,
            },
            "newLastPosted": {"user": _payload(target), "index": advance.new_index},
            "actualCurrentTurn": _payload(current),
            "message": f"Turn set to {target_name}. {_turn_message(current)}",
        }

    @staticmethod
    def _membership_update(
        db: Client, members: list[str], rotation: Rotation
    ) -> dict[str, Any]:
        return {
            GROUP_MEMBERS: TurnService._user_refs(db, members),
            GROUP_TURN_ORDER: TurnService._user_refs(db, rotation.turn_order),
            GROUP_CURRENT_TURN_INDEX: rotation.current_turn_index,
        }

    @staticmethod
    def _add_member_in_transaction(
        transaction: Transaction,
        db: Client,
        group_ref: DocumentReference,
        user_id: str,
    ) -> bool:
        group_data = TurnService._get_group_data(group_ref, transaction)
        members = [ref_id(ref) for ref in group_data.get(GROUP_MEMBERS, [])]
        rotation = TurnService.rotation_from(group_data)

        max_members = int(group_data.get("maxMembers") or DEFAULT_MAX_MEMBERS)
        if user_id not in members and len(members) >= max_members:
            raise ValidationError("Group is at maximum capacity.")

        added = engine.add_member(members, rotation, user_id)
        if added:
            transaction.update(
                group_ref, TurnService._membership_update(db, members, rotation)
            )
        return added

    @staticmethod
    def add_member(db: Client, group_id: str, user_id: str) -> bool:
        """Add a member to the group and the end of its rotation."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        added = TurnService._run_in_transaction(
            db, TurnService._add_member_in_transaction, db, group_ref, user_id
        )
        if added:
            current_app.logger.info(f"User {user_id} joined group {group_id}.")
        return added

    @staticmethod
    def _remove_member_in_transaction(
        transaction: Transaction,
        db: Client,
        group_ref: DocumentReference,
        user_id: str,
    ) -> bool:
        group_data = TurnService._get_group_data(group_ref, transaction)
        members = [ref_id(ref) for ref in group_data.get(GROUP_MEMBERS, [])]
        rotation = TurnService.rotation_from(group_data)

        removed = engine.remove_member(members, rotation, user_id)
        if removed:
            update = TurnService._membership_update(db, members, rotation)
            admins = [ref_id(ref) for ref in group_data.get(GROUP_ADMINS, [])]
            update[GROUP_ADMINS] = TurnService._user_refs(
                db, [uid for uid in admins if uid != user_id]
            )
            transaction.update(group_ref, update)
        return removed

    @staticmethod
    def remove_member(db: Client, group_id: str, user_id: str) -> bool:
        """Remove a member from the group, its admins and its rotation."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        removed = TurnService._run_in_transaction(
            db, TurnService._remove_member_in_transaction, db, group_ref, user_id
        )
        if removed:
            current_app.logger.info(f"User {user_id} left group {group_id}.")
        return removed

    @staticmethod
    def _rebuild_in_transaction(
        transaction: Transaction, db: Client, group_ref: DocumentReference
    ) -> tuple[Rotation, UserLookup, list[str]]:
        group_data = TurnService._get_group_data(group_ref, transaction)
        members = [ref_id(ref) for ref in group_data.get(GROUP_MEMBERS, [])]
        rotation = TurnService.rotation_from(group_data)
        lookup = TurnService.build_lookup(db, members)

        dropped = engine.rebuild_turn_order(members, rotation, lookup)
        transaction.update(
            group_ref,
            {
                GROUP_TURN_ORDER: TurnService._user_refs(db, rotation.turn_order),
                GROUP_CURRENT_TURN_INDEX: rotation.current_turn_index,
            },
        )
        return rotation, lookup, dropped

    @staticmethod
    def rebuild_turn_order(db: Client, group_id: str) -> RebuildResult:
        """Reset the rotation to all members in alphabetical order."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        rotation, lookup, dropped = TurnService._run_in_transaction(
            db, TurnService._rebuild_in_transaction, db, group_ref
        )
        if dropped:
            current_app.logger.warning(
                f"Rebuilt turn order of group {group_id} without missing users: "
                f"{', '.join(dropped)}"
            )
        return {
            "turnOrder": _ordered_users(rotation, lookup),
            "currentTurnIndex": rotation.current_turn_index,
            "dropped": dropped,
        }

    @staticmethod
    def _update_group_in_transaction(  # noqa: PLR0913
        transaction: Transaction,
        db: Client,
        group_ref: DocumentReference,
        changes: dict[str, Any],
        member_ids: list[str] | None,
    ) -> tuple[Group, list[str], Rotation, UserLookup, list[str]]:
        group_data = TurnService._get_group_data(group_ref, transaction)
        rotation = TurnService.rotation_from(group_data)
        members = [ref_id(ref) for ref in group_data.get(GROUP_MEMBERS, [])]
        update = dict(changes)
        dropped: list[str] = []

        if member_ids is None:
            lookup = TurnService.build_lookup(db, rotation.turn_order)
        else:
            lookup = TurnService.build_lookup(db, member_ids)
            dropped = engine.rebuild_turn_order(member_ids, rotation, lookup)
            members = [uid for uid in dict.fromkeys(member_ids) if uid not in dropped]
            update.update(TurnService._membership_update(db, members, rotation))

        transaction.update(group_ref, update)
        group_data.update(changes)  # type: ignore[typeddict-item]
        return group_data, members, rotation, lookup, dropped

    @staticmethod
    def update_group(
        db: Client,
        group_id: str,
        name: str | None = None,
        is_private: bool | None = None,
        member_ids: list[str] | None = None,
    ) -> GroupUpdateResult:
        """Edit group settings and, when given, replace its members.

        A new member list rebuilds the rotation alphabetically in the same
        transaction. Ids that do not resolve to a user are left out.
        """
        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name.strip()
        if is_private is not None:
            changes["isPrivate"] = is_private
        if not changes and member_ids is None:
            raise ValidationError("Nothing to update.")

        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        group_data, members, rotation, lookup, dropped = (
            TurnService._run_in_transaction(
                db,
                TurnService._update_group_in_transaction,
                db,
                group_ref,
                changes,
                member_ids,
            )
        )
        if dropped:
            current_app.logger.warning(
                f"Left unknown users out of group {group_id}: {', '.join(dropped)}"
            )
        current_app.logger.info(f"Group {group_id} updated.")

        return {
            "groupId": group_id,
            "name": group_data.get("name", ""),
            "isPrivate": bool(group_data.get("isPrivate", False)),
            "members": members,
            "turnOrder": _ordered_users(rotation, lookup),
            "currentTurnIndex": rotation.current_turn_index,
            "dropped": dropped,
            "message": "Group updated successfully",
        }

    @staticmethod
    def describe_turn_order(db: Client, group_id: str) -> list[TurnSlot]:
        """List every slot with its user's state, for admins."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        rotation = TurnService.rotation_from(TurnService._get_group_data(group_ref))
        lookup = TurnService.build_lookup(db, rotation.turn_order)
        slot = engine.current_turn_slot(rotation, lookup)
        current_index = slot[0] if slot else None

        slots: list[TurnSlot] = []
        for index, user_id in enumerate(rotation.turn_order):
            user = _resolved(lookup, user_id)
            slots.append(
                {
                    "index": index,
                    "userId": user_id,
                    "name": user.name if user else "Unknown",
                    "isActive": user.is_active if user else False,
                    "isMissing": user is None,
                    "isLastPosted": index == rotation.current_turn_index,
                    "isCurrentTurn": index == current_index,
                }
            )
        return slots
