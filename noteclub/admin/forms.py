"""Forms for the admin blueprint."""

from flask_wtf import FlaskForm
from wtforms import BooleanField, Field, StringField
from wtforms.validators import DataRequired, Length, Optional

from noteclub.core.constants import GROUP_NAME_MAX_LENGTH, GROUP_NAME_MIN_LENGTH


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class MemberIdsField(Field):
    """A list of user ids, sent as a JSON array."""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        if not all(isinstance(value, str) and value.strip() for value in valuelist):
            self.data = None
            raise ValueError("Member ids must be non-empty strings.")
        self.data = [value.strip() for value in valuelist]


class SetTurnForm(FlaskForm):
    """Form for recording which member posted last."""

    user_id = StringField("User", validators=[DataRequired()])


class EditGroupForm(FlaskForm):
    """Form for editing a group's settings and members."""

    name = StringField(
        "Group Name",
        filters=[_strip],
        validators=[
            Optional(),
            Length(min=GROUP_NAME_MIN_LENGTH, max=GROUP_NAME_MAX_LENGTH),
        ],
    )
    is_private = BooleanField("Private Group")
    member_ids = MemberIdsField("Members")

    def is_private_sent(self):
        """Return whether the request set ``is_private`` at all."""
        return bool(self.is_private.raw_data)
