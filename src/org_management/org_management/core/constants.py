"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 1
DEFAULT_RECENT_LIMIT = 10
DEFAULT_DASHBOARD_PREVIEW = 5
MIN_PASSWORD_LENGTH = 6
MIN_USERNAME_LENGTH = 3
MIN_FULL_NAME_LENGTH = 3
ALLOWED_PHOTO_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif"})

EDIT_FORM_HISTORY_NOTE = "Status diubah melalui form edit"
SUBMIT_HISTORY_NOTE = "Proker diajukan untuk approval"
