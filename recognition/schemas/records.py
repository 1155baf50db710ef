"""Typed records the engine works with.

Rows loaded from the database are parsed into these records at the store
boundary; nothing past the store sees an ORM object.
"""

import json
import logging
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from recognition.constants.constants import ACTIVE_VISIBILITIES, UserRole, Visibility

logger = logging.getLogger(__name__)


class ActiveState(BaseModel):
    """A live recognition with the audience it was given."""

    kind: Literal["active"] = "active"
    visibility: Visibility

    @field_validator("visibility")
    @classmethod
    def visibility_is_active(cls, value: Visibility) -> Visibility:
        if value not in ACTIVE_VISIBILITIES:
            raise ValueError(f"{value.value} is not an active visibility")
        return value

    class Config:
        frozen = True


class DeletedState(BaseModel):
    """A soft-deleted recognition. Terminal."""

    kind: Literal["deleted"] = "deleted"

    class Config:
        frozen = True


RecognitionState = Annotated[Union[ActiveState, DeletedState], Field(discriminator="kind")]


def state_for(visibility: Union[Visibility, str]) -> Union[ActiveState, DeletedState]:
    visibility = Visibility(visibility)
    if visibility == Visibility.deleted:
        return DeletedState()
    return ActiveState(visibility=visibility)


def parse_keywords(value) -> List[str]:
    """
    Parse a stored keyword field into a list of strings.

    Accepts a list, a JSON-encoded list or a comma separated string.

    Raises:
        ValueError: If the value cannot be read as a list of strings.
    """
    if value is None:
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return [part.strip() for part in value.split(",") if part.strip()]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"Malformed keyword data: {value!r}")
    return list(value)


def readable_keywords(recognition_id: str, value) -> List[str]:
    """parse_keywords for the read path: malformed data reads as no keywords."""
    try:
        return parse_keywords(value)
    except ValueError as e:
        logger.warning(f"Ignoring keywords of recognition {recognition_id}: {e}")
        return []


class UserRecord(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    team_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        frozen = True

    @classmethod
    def from_row(cls, row) -> "UserRecord":
        return cls(
            id=row.user_id,
            email=row.email,
            name=row.name,
            role=row.role,
            team_id=row.team_id,
            created_at=row.created_at,
        )


class TeamRecord(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        frozen = True

    @classmethod
    def from_row(cls, row) -> "TeamRecord":
        return cls(
            id=row.team_id,
            name=row.name,
            description=row.description,
            created_at=row.created_at,
        )


class RecognitionRecord(BaseModel):
    id: str
    sender_id: Optional[str] = None
    recipient_id: str
    message: str
    state: RecognitionState
    keywords: List[str] = Field(default_factory=list)
    created_at: datetime

    class Config:
        frozen = True

    @property
    def visibility(self) -> Visibility:
        if isinstance(self.state, DeletedState):
            return Visibility.deleted
        return self.state.visibility

    @property
    def is_deleted(self) -> bool:
        return isinstance(self.state, DeletedState)

    @classmethod
    def from_row(cls, row) -> "RecognitionRecord":
        return cls(
            id=row.recognition_id,
            sender_id=row.sender_id,
            recipient_id=row.recipient_id,
            message=row.message,
            state=state_for(row.visibility),
            keywords=readable_keywords(row.recognition_id, row.keywords),
            created_at=row.created_at,
        )


def soft_delete(record: RecognitionRecord) -> RecognitionRecord:
    """The only transition out of the active state."""
    return record.model_copy(update={"state": DeletedState()})


class NewRecognition(BaseModel):
    """Validated values for a recognition that has not been stored yet."""

    sender_id: Optional[str] = None
    recipient_id: str
    message: str
    visibility: Visibility
    keywords: List[str] = Field(default_factory=list)
