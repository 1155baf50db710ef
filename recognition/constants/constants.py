"""Constants for user roles, recognition visibility, keyword extraction, content rules and notification channels."""

from enum import Enum


class UserRole(str, Enum):
    """Enumeration of user roles, declared in ascending order of privilege."""

    employee = "EMPLOYEE"
    manager = "MANAGER"
    hr = "HR"
    admin = "ADMIN"


class Visibility(str, Enum):
    """Enumeration of recognition visibility levels."""

    public = "PUBLIC"
    private = "PRIVATE"
    anonymous = "ANONYMOUS"
    deleted = "DELETED"


class Direction(str, Enum):
    """Which side of a recognition the viewer is on."""

    sent = "sent"
    received = "received"


# Visibilities a recognition can be created with or edited to
ACTIVE_VISIBILITIES = frozenset({Visibility.public, Visibility.private, Visibility.anonymous})

# Message rules
MAX_MESSAGE_LENGTH = 500
BLOCKED_CONTENT = ["spam", "offensive", "inappropriate", "hate"]

# Keyword extraction
MAX_KEYWORDS = 5
MIN_KEYWORD_LENGTH = 4
STOP_WORDS = frozenset({
    "this", "that", "with", "have", "will", "been", "from", "they",
    "were", "said", "each", "which", "their", "time", "would",
})

# Analytics
TEAM_TOP_KEYWORDS = 5
ORGANIZATION_TOP_KEYWORDS = 10
TREND_DAYS = 30
TEAM_FALLBACK_KEYWORDS = ["great", "excellent", "outstanding", "work", "project"]
ORGANIZATION_FALLBACK_KEYWORDS = [
    "excellent", "great", "outstanding", "work", "project", "team", "collaboration",
]

# Notification channels
RECOGNITION_RECEIVED_CHANNEL = "recognition_received"
RECOGNITION_CREATED_CHANNEL = "recognition_created"


def recipient_channel(user_id: str) -> str:
    """Channel carrying creation events for a single recipient."""
    return f"{RECOGNITION_RECEIVED_CHANNEL}:{user_id}"
