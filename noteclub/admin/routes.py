"""Admin routes for turn control and member activity."""

from firebase_admin import firestore
from flask import current_app, jsonify, request

from noteclub.auth.decorators import login_required
from noteclub.errors import ValidationError
from noteclub.turn.services import TurnService
from noteclub.utils import form_errors

from . import bp
from .forms import EditGroupForm, SetTurnForm
from .services import AdminService


@bp.route("/groups/<string:group_id>/turn", methods=["GET"])
@login_required(admin_required=True)
def turn_state(group_id):
    """Show every slot of the rotation with its user's state."""
    db = firestore.client()
    return jsonify({"slots": TurnService.describe_turn_order(db, group_id)})


@bp.route("/groups/<string:group_id>", methods=["PATCH"])
@login_required(admin_required=True)
def update_group(group_id):
    """Edit a group. A new member list also rebuilds its rotation."""
    form = EditGroupForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))

    db = firestore.client()
    result = TurnService.update_group(
        db,
        group_id,
        name=form.name.data or None,
        is_private=form.is_private.data if form.is_private_sent() else None,
        member_ids=form.member_ids.data,
    )
    return jsonify(result)


@bp.route("/groups/<string:group_id>/turn/advance", methods=["POST"])
@login_required(admin_required=True)
def advance_turn(group_id):
    """Move the rotation on by one slot."""
    db = firestore.client()
    return jsonify(TurnService.advance_turn(db, group_id))


@bp.route("/groups/<string:group_id>/turn/set", methods=["POST"])
@login_required(admin_required=True)
def set_turn(group_id):
    """Record a specific member as the one who posted last."""
    form = SetTurnForm()
    if not form.validate_on_submit():
        raise ValidationError("user_id is required.")

    db = firestore.client()
    return jsonify(TurnService.set_turn_to(db, group_id, form.user_id.data))


@bp.route("/groups/<string:group_id>/turn/rebuild", methods=["POST"])
@login_required(admin_required=True)
def rebuild_turn_order(group_id):
    """Sort the rotation alphabetically by member name."""
    db = firestore.client()
    return jsonify(TurnService.rebuild_turn_order(db, group_id))


@bp.route("/users/<string:user_id>/active", methods=["POST"])
@login_required(admin_required=True)
def set_user_active(user_id):
    """Activate or deactivate a member for all rotations."""
    is_active = (request.get_json(silent=True) or {}).get("is_active")
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be true or false.")

    db = firestore.client()
    user = AdminService.set_user_active(db, user_id, is_active)
    status = "activated" if is_active else "deactivated"
    current_app.logger.info(f"User {user_id} {status}.")
    return jsonify({"user": user, "message": f"User {status} successfully"})
