"""Team model for organizational structure."""

import uuid
from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship
from recognition.models.base import Base, TimestampMixin

class Team(Base, TimestampMixin):
    """Model representing a team. Membership is held by User.team_id."""

    __tablename__ = "teams"
    team_id = Column(String, primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    members = relationship("User", back_populates="team")
