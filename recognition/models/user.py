"""User model for the recognition service."""

import uuid
from sqlalchemy import Column, String, Enum, ForeignKey
from sqlalchemy.orm import relationship

from recognition.constants.constants import UserRole
from recognition.models.base import Base, TimestampMixin

class User(Base, TimestampMixin):
    __tablename__ = "users"
    user_id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    role = Column(Enum(UserRole, name="user_role", values_callable=lambda roles: [r.value for r in roles]), nullable=False, default=UserRole.employee, index=True)
    team_id = Column(String, ForeignKey("teams.team_id"), nullable=True, index=True)

    # Relationships
    team = relationship("Team", back_populates="members")
    sent_recognitions = relationship(
        "Recognition",
        foreign_keys="Recognition.sender_id",
        back_populates="sender",
    )
    received_recognitions = relationship(
        "Recognition",
        foreign_keys="Recognition.recipient_id",
        back_populates="recipient",
    )
