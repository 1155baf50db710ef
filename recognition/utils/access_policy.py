"""Role hierarchy and recognition visibility rules.

Every permission check in the service goes through this module: the
in-process predicates used on fetched records, and the SQL clause the
store applies when listing.
"""

from typing import Optional, Union

from sqlalchemy import or_, and_

from recognition.constants.constants import UserRole, Visibility
from recognition.models.recognition import Recognition

RoleLike = Union[UserRole, str, None]

# Rank derives from declaration order: EMPLOYEE=1 ... ADMIN=4
ROLE_RANKS = {role: position for position, role in enumerate(UserRole, start=1)}


def rank(role: RoleLike) -> int:
    """Return the privilege rank of a role, 0 for anything unrecognized."""
    try:
        return ROLE_RANKS[UserRole(role)]
    except ValueError:
        return 0


def has_role(actual_role: RoleLike, required_role: RoleLike) -> bool:
    return rank(actual_role) >= rank(required_role)


def can_access_team_analytics(role: RoleLike) -> bool:
    """Check if a role may view team-level analytics (manager or above)."""
    return has_role(role, UserRole.manager)


def can_access_organization_analytics(role: RoleLike) -> bool:
    """Check if a role may view organization-wide analytics (HR or above)."""
    return has_role(role, UserRole.hr)


def is_readable(recognition, viewer_id: Optional[str]) -> bool:
    """
    Whether a viewer may see a recognition.

    Never for a deleted recognition. Otherwise true for PUBLIC recognitions,
    for the recipient, and for the sender when one is recorded.
    """
    if recognition.visibility == Visibility.deleted:
        return False
    if recognition.visibility == Visibility.public:
        return True
    if viewer_id is None:
        return False
    if viewer_id == recognition.recipient_id:
        return True
    return recognition.sender_id is not None and viewer_id == recognition.sender_id


def can_mutate(recognition, viewer_id: Optional[str]) -> bool:
    """Only the recorded sender may edit or delete; anonymous ones are immutable."""
    return recognition.sender_id is not None and recognition.sender_id == viewer_id


def readable_clause(viewer_id: Optional[str]):
    """SQL form of is_readable over the recognitions table."""
    if viewer_id is None:
        return Recognition.visibility == Visibility.public
    return and_(
        Recognition.visibility != Visibility.deleted,
        or_(
            Recognition.visibility == Visibility.public,
            Recognition.recipient_id == viewer_id,
            and_(Recognition.sender_id.is_not(None), Recognition.sender_id == viewer_id),
        ),
    )
