"""Global constants for the noteclub application."""

# Firestore collections
USERS_COLLECTION = "users"
GROUPS_COLLECTION = "groups"

# Group fields touched by the turn rotation
GROUP_MEMBERS = "members"
GROUP_ADMINS = "admins"
GROUP_TURN_ORDER = "turnOrder"
GROUP_CURRENT_TURN_INDEX = "currentTurnIndex"

# Group limits
GROUP_NAME_MIN_LENGTH = 3
GROUP_NAME_MAX_LENGTH = 50
DEFAULT_MAX_MEMBERS = 20
MIN_MAX_MEMBERS = 2
MAX_MAX_MEMBERS = 100

# Invite codes
INVITE_CODE_LENGTH = 6
INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
INVITE_CODE_ATTEMPTS = 10
