
"""Recognition model for messages exchanged between users."""

import uuid
from sqlalchemy import Column, String, Text, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship

from recognition.constants.constants import Visibility
from recognition.models.base import Base, TimestampMixin


class Recognition(Base, TimestampMixin):
    """Model representing a recognition sent from one user to another.

    sender_id is NULL for recognitions created as ANONYMOUS. A DELETED
    visibility marks a soft-deleted row.
    """

    __tablename__ = "recognitions"
    recognition_id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    sender_id = Column(String, ForeignKey("users.user_id"), nullable=True, index=True)
    recipient_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    visibility = Column(Enum(Visibility, name="visibility", values_callable=lambda levels: [v.value for v in levels]), nullable=False, index=True)
    keywords = Column(JSON, nullable=False, default=list)

    sender = relationship("User", foreign_keys=[sender_id], back_populates="sent_recognitions")
    recipient = relationship("User", foreign_keys=[recipient_id], back_populates="received_recognitions")
