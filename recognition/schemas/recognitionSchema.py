from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field

from recognition.constants.constants import Visibility


class CreateRecognitionRequest(BaseModel):
    """Request schema for sending a recognition.

    Content rules are enforced by the engine, not here, so every caller
    gets the same errors.
    """
    recipient_id: str
    message: str
    visibility: str


class UpdateRecognitionRequest(BaseModel):
    """Request schema for editing a recognition. Only supplied fields change."""
    message: Optional[str] = None
    visibility: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class RecognitionResponse(BaseModel):
    id: str
    message: str
    visibility: Visibility
    keywords: List[str] = Field(default_factory=list)
    created_at: datetime
    sender: Optional[UserSummary] = None
    recipient: UserSummary


class RecognitionStatsResponse(BaseModel):
    sent: int = 0
    received: int = 0
    public_sent: int = 0
    public_received: int = 0
