"""Routes for the group blueprint."""

from firebase_admin import firestore
from flask import current_app, g, jsonify

from noteclub.auth.decorators import login_required
from noteclub.errors import ValidationError
from noteclub.turn.services import TurnService
from noteclub.utils import form_errors

from . import bp
from .forms import GroupForm, JoinGroupForm
from .services import GroupService


@bp.route("/create", methods=["POST"])
@login_required
def create_group():
    """Create a new group with the caller as owner and first in the rotation."""
    form = GroupForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))

    db = firestore.client()
    created = GroupService.create_group(
        db,
        g.user["uid"],
        form.name.data,
        form.description.data,
        form.is_private.data,
        form.max_members.data or current_app.config["GROUP_MAX_MEMBERS"],
    )
    current_app.logger.info(f"Group {created['groupId']} created by {g.user['uid']}.")
    return jsonify(created), 201


@bp.route("/join", methods=["POST"])
@login_required
def join_group():
    """Join a group by invite code."""
    form = JoinGroupForm()
    if not form.validate_on_submit():
        raise ValidationError(form_errors(form))

    db = firestore.client()
    return jsonify(GroupService.join_group(db, form.invite_code.data, g.user["uid"]))


@bp.route("/<string:group_id>/leave", methods=["POST"])
@login_required
def leave_group(group_id):
    """Leave a group and its rotation."""
    db = firestore.client()
    GroupService.leave_group(db, group_id, g.user["uid"])
    return jsonify({"message": "You have left the group."})


@bp.route("/<string:group_id>/turn", methods=["GET"])
@login_required
def turn_status(group_id):
    """Report whose turn it is and whether it is the caller's."""
    db = firestore.client()
    user_id = g.user["uid"] if g.user else None
    return jsonify(TurnService.get_turn_status(db, group_id, user_id))


@bp.route("/<string:group_id>/turn/posted", methods=["POST"])
@login_required
def turn_posted(group_id):
    """Hand the turn on after the current holder has posted their album."""
    db = firestore.client()
    return jsonify(TurnService.record_post(db, group_id, g.user["uid"]))
