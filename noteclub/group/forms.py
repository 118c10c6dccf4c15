"""Forms for the group blueprint."""

from flask_wtf import FlaskForm
from wtforms import BooleanField, IntegerField, StringField, TextAreaField
from wtforms.validators import DataRequired, Length, NumberRange, Optional

from noteclub.core.constants import (
    GROUP_NAME_MAX_LENGTH,
    GROUP_NAME_MIN_LENGTH,
    INVITE_CODE_LENGTH,
    MAX_MAX_MEMBERS,
    MIN_MAX_MEMBERS,
)


class GroupForm(FlaskForm):
    """Form for creating a new group."""

    name = StringField(
        "Group Name",
        validators=[
            DataRequired(),
            Length(min=GROUP_NAME_MIN_LENGTH, max=GROUP_NAME_MAX_LENGTH),
        ],
    )
    description = TextAreaField("Description", validators=[Length(max=500)])
    is_private = BooleanField("Private Group")
    max_members = IntegerField(
        "Maximum Members",
        validators=[Optional(), NumberRange(min=MIN_MAX_MEMBERS, max=MAX_MAX_MEMBERS)],
    )


class JoinGroupForm(FlaskForm):
    """Form for joining a group with its invite code."""

    invite_code = StringField(
        "Invite Code",
        validators=[DataRequired(), Length(min=INVITE_CODE_LENGTH, max=8)],
    )
