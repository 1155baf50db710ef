# recognition/services/UserDirectory.py
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from recognition.core.exceptions import PersistenceError
from recognition.models.team import Team
from recognition.models.user import User
from recognition.schemas.records import TeamRecord, UserRecord

logger = logging.getLogger(__name__)


class UserDirectory(ABC):
    """Read-only view of users and teams."""

    @abstractmethod
    async def exists(self, user_id: str) -> bool:
        ...

    @abstractmethod
    async def get(self, user_id: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def get_many(self, user_ids: Iterable[str]) -> Dict[str, UserRecord]:
        """Look up several users at once; unknown ids are left out."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def list_users(self, limit: int = 20) -> List[UserRecord]:
        ...

    @abstractmethod
    async def get_team(self, team_id: str) -> Optional[TeamRecord]:
        ...

    @abstractmethod
    async def get_team_members(self, team_id: str) -> List[UserRecord]:
        ...


class SqlUserDirectory(UserDirectory):
    """UserDirectory backed by the users and teams tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _execute(self, statement):
        try:
            return await self.db.execute(statement)
        except SQLAlchemyError as e:
            logger.error(f"User directory query failed: {e}")
            raise PersistenceError("User directory is unavailable") from e

    async def exists(self, user_id: str) -> bool:
        if not user_id:
            return False
        result = await self._execute(select(User.user_id).where(User.user_id == user_id))
        return result.scalar_one_or_none() is not None

    async def get(self, user_id: str) -> Optional[UserRecord]:
        if not user_id:
            return None
        result = await self._execute(select(User).where(User.user_id == user_id))
        user = result.scalar_one_or_none()
        return UserRecord.from_row(user) if user else None

    async def get_many(self, user_ids: Iterable[str]) -> Dict[str, UserRecord]:
        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return {}
        result = await self._execute(select(User).where(User.user_id.in_(ids)))
        return {user.user_id: UserRecord.from_row(user) for user in result.scalars().all()}

    async def get_by_email(self, email: str) -> Optional[UserRecord]:
        result = await self._execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        return UserRecord.from_row(user) if user else None

    async def list_users(self, limit: int = 20) -> List[UserRecord]:
        result = await self._execute(select(User).order_by(User.name.asc()).limit(limit))
        return [UserRecord.from_row(user) for user in result.scalars().all()]

    async def get_team(self, team_id: str) -> Optional[TeamRecord]:
        if not team_id:
            return None
        result = await self._execute(select(Team).where(Team.team_id == team_id))
        team = result.scalar_one_or_none()
        return TeamRecord.from_row(team) if team else None

    async def get_team_members(self, team_id: str) -> List[UserRecord]:
        result = await self._execute(
            select(User).where(User.team_id == team_id).order_by(User.name.asc())
        )
        return [UserRecord.from_row(user) for user in result.scalars().all()]
