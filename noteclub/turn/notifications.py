"""Turn reminder emails."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from flask import current_app

from noteclub.utils import EmailError, send_email

if TYPE_CHECKING:
    from .engine import RotationUser


def send_turn_reminder(group_name: str, user: RotationUser) -> threading.Thread | None:
    """Email the new turn holder in a background thread."""
    app = current_app._get_current_object()  # type: ignore[attr-defined]
    if not app.config.get("TURN_REMINDERS_ENABLED", True) or not user.email:
        return None

    email_data = {
        "to": user.email,
        "subject": f"It's your turn in {group_name or 'your group'}!",
        "template": "email/turn_reminder.html",
        "name": user.name,
        "group_name": group_name,
    }

    def task():
        with app.app_context():
            try:
                send_email(**email_data)
            except EmailError as e:
                app.logger.error(f"Error sending turn reminder to {user.id}: {e}")

    thread = threading.Thread(target=task)
    thread.start()
    return thread
