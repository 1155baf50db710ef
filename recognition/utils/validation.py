"""Input checks run before anything reaches the store."""

from typing import Optional, Union

from recognition.constants.constants import (
    ACTIVE_VISIBILITIES,
    BLOCKED_CONTENT,
    MAX_MESSAGE_LENGTH,
    Visibility,
)
from recognition.core.config import settings
from recognition.core.exceptions import ConflictError, ValidationError


def validate_message(message: Optional[str]) -> str:
    """
    Validate recognition message content.

    Returns:
        str: The trimmed message.

    Raises:
        ValidationError: If the message is empty, too long or contains blocked content.
    """
    text = (message or "").strip()
    if not text:
        raise ValidationError("Message is required")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")

    lowered = text.lower()
    if any(blocked in lowered for blocked in BLOCKED_CONTENT):
        raise ValidationError("Message contains inappropriate content")
    return text


def validate_visibility_for_create(visibility: Union[Visibility, str, None]) -> Visibility:
    """Parse a visibility a recognition may be created or edited with."""
    try:
        parsed = Visibility(visibility)
    except ValueError:
        parsed = None

    if parsed not in ACTIVE_VISIBILITIES:
        raise ValidationError("Invalid visibility setting. Must be PUBLIC, PRIVATE, or ANONYMOUS")
    return parsed


def validate_recipient(recipient_id: Optional[str], sender_id: Optional[str]) -> None:
    if not recipient_id:
        raise ValidationError("Recipient ID is required")
    if recipient_id == sender_id:
        raise ConflictError("Cannot recognize yourself")


def validate_limit(limit: Optional[int]) -> int:
    """Default, check and cap a page size."""
    if limit is None:
        return settings.DEFAULT_PAGE_SIZE
    if limit < 1:
        raise ValidationError("Limit must be at least 1")
    return min(limit, settings.MAX_PAGE_SIZE)
