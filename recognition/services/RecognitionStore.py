# recognition/services/RecognitionStore.py
"""Persistence contract for recognitions and its SQLAlchemy implementation.

The engine composes a RecognitionFilter; the store only executes it.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, desc, distinct, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from recognition.constants.constants import Visibility
from recognition.core.exceptions import NotFoundError, PersistenceError
from recognition.models.recognition import Recognition
from recognition.models.user import User
from recognition.schemas.records import NewRecognition, RecognitionRecord, parse_keywords
from recognition.utils.access_policy import is_readable, readable_clause

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("message", "visibility", "keywords")


@dataclass(frozen=True)
class RecognitionFilter:
    """Which recognitions a read should return.

    Deleted recognitions are excluded unless include_deleted is set.
    readable_by restricts results to what that viewer may see.
    """

    readable_by: Optional[str] = None
    sender_id: Optional[str] = None
    recipient_id: Optional[str] = None
    involving: Optional[str] = None
    visibility: Optional[Visibility] = None
    team_id: Optional[str] = None
    created_after: Optional[datetime] = None
    include_deleted: bool = False

    def matches(self, record: RecognitionRecord, recipient_team_id: Optional[str] = None) -> bool:
        """Evaluate the filter against a record already in memory."""
        if not self.include_deleted and record.is_deleted:
            return False
        if self.readable_by is not None and not is_readable(record, self.readable_by):
            return False
        if self.sender_id is not None and record.sender_id != self.sender_id:
            return False
        if self.recipient_id is not None and record.recipient_id != self.recipient_id:
            return False
        if self.involving is not None and self.involving not in (record.sender_id, record.recipient_id):
            return False
        if self.visibility is not None and record.visibility != self.visibility:
            return False
        if self.team_id is not None and recipient_team_id != self.team_id:
            return False
        if self.created_after is not None and record.created_at < self.created_after:
            return False
        return True


@dataclass(frozen=True)
class AnalyticsScope:
    """Aggregation scope: the whole organization, or recipients in one team."""

    team_id: Optional[str] = None


@dataclass(frozen=True)
class VisibilityCounts:
    total: int = 0
    public: int = 0
    private: int = 0
    anonymous: int = 0
    distinct_senders: int = 0
    distinct_recipients: int = 0


@dataclass(frozen=True)
class DailyCount:
    day: date
    total: int = 0
    public: int = 0


class RecognitionStore(ABC):
    """What the engine needs from persistence. Aggregates never include deleted rows."""

    @abstractmethod
    async def insert(self, recognition: NewRecognition) -> RecognitionRecord:
        ...

    @abstractmethod
    async def query_by_predicate(self, predicate: RecognitionFilter, limit: int) -> List[RecognitionRecord]:
        """Matching recognitions, newest first, at most `limit`."""

    @abstractmethod
    async def fetch_by_id(self, recognition_id: str) -> Optional[RecognitionRecord]:
        ...

    @abstractmethod
    async def update_fields(self, recognition_id: str, fields: Dict[str, Any]) -> RecognitionRecord:
        ...

    @abstractmethod
    async def count(self, predicate: RecognitionFilter) -> int:
        ...

    @abstractmethod
    async def aggregate_counts(self, scope: AnalyticsScope) -> VisibilityCounts:
        ...

    @abstractmethod
    async def aggregate_keywords(self, scope: AnalyticsScope, limit: int) -> List[str]:
        """Most frequent keywords, highest count first."""

    @abstractmethod
    async def aggregate_daily(self, scope: AnalyticsScope, days: int) -> List[DailyCount]:
        """Per-day counts for the most recent `days` days with activity, newest first."""

    @abstractmethod
    async def average_keywords(self, scope: AnalyticsScope) -> float:
        ...


class SqlRecognitionStore(RecognitionStore):
    """RecognitionStore over an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _execute(self, statement):
        try:
            return await self.db.execute(statement)
        except SQLAlchemyError as e:
            logger.error(f"Recognition query failed: {e}")
            raise PersistenceError("Recognition store is unavailable") from e

    async def _commit(self, row: Recognition, action: str) -> RecognitionRecord:
        try:
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to {action} recognition: {e}")
            raise PersistenceError(f"Failed to {action} recognition") from e
        return RecognitionRecord.from_row(row)

    def _clauses(self, predicate: RecognitionFilter) -> list:
        clauses = []
        if not predicate.include_deleted:
            clauses.append(Recognition.visibility != Visibility.deleted)
        if predicate.readable_by is not None:
            clauses.append(readable_clause(predicate.readable_by))
        if predicate.sender_id is not None:
            clauses.append(Recognition.sender_id == predicate.sender_id)
        if predicate.recipient_id is not None:
            clauses.append(Recognition.recipient_id == predicate.recipient_id)
        if predicate.involving is not None:
            clauses.append(or_(
                Recognition.sender_id == predicate.involving,
                Recognition.recipient_id == predicate.involving,
            ))
        if predicate.visibility is not None:
            clauses.append(Recognition.visibility == predicate.visibility)
        if predicate.team_id is not None:
            clauses.append(self._team_clause(predicate.team_id))
        if predicate.created_after is not None:
            clauses.append(Recognition.created_at >= predicate.created_after)
        return clauses

    def _team_clause(self, team_id: str):
        return Recognition.recipient_id.in_(select(User.user_id).where(User.team_id == team_id))

    def _scope_clauses(self, scope: AnalyticsScope) -> list:
        return self._clauses(RecognitionFilter(team_id=scope.team_id))

    async def insert(self, recognition: NewRecognition) -> RecognitionRecord:
        row = Recognition(
            recognition_id=str(uuid.uuid4()),
            sender_id=recognition.sender_id,
            recipient_id=recognition.recipient_id,
            message=recognition.message,
            visibility=recognition.visibility,
            keywords=list(recognition.keywords),
        )
        self.db.add(row)
        return await self._commit(row, "save")

    async def query_by_predicate(self, predicate: RecognitionFilter, limit: int) -> List[RecognitionRecord]:
        result = await self._execute(
            select(Recognition)
            .where(*self._clauses(predicate))
            .order_by(Recognition.created_at.desc())
            .limit(limit)
        )
        return [RecognitionRecord.from_row(row) for row in result.scalars().all()]

    async def fetch_by_id(self, recognition_id: str) -> Optional[RecognitionRecord]:
        result = await self._execute(
            select(Recognition).where(Recognition.recognition_id == recognition_id)
        )
        row = result.scalar_one_or_none()
        return RecognitionRecord.from_row(row) if row else None

    async def update_fields(self, recognition_id: str, fields: Dict[str, Any]) -> RecognitionRecord:
        result = await self._execute(
            select(Recognition).where(Recognition.recognition_id == recognition_id)
        )
        row = result.scalar_one_or_none()
        if not row:
            raise NotFoundError("Recognition not found")

        for field, value in fields.items():
            if field not in UPDATABLE_FIELDS:
                raise ValueError(f"Recognition field {field!r} cannot be updated")
            setattr(row, field, list(value) if field == "keywords" else value)
        return await self._commit(row, "update")

    async def count(self, predicate: RecognitionFilter) -> int:
        result = await self._execute(
            select(func.count(Recognition.recognition_id)).where(*self._clauses(predicate))
        )
        return result.scalar() or 0

    async def aggregate_counts(self, scope: AnalyticsScope) -> VisibilityCounts:
        result = await self._execute(
            select(
                func.count(Recognition.recognition_id),
                func.count(case((Recognition.visibility == Visibility.public, 1))),
                func.count(case((Recognition.visibility == Visibility.private, 1))),
                func.count(case((Recognition.visibility == Visibility.anonymous, 1))),
                func.count(distinct(Recognition.sender_id)),
                func.count(distinct(Recognition.recipient_id)),
            ).where(*self._scope_clauses(scope))
        )
        total, public, private, anonymous, senders, recipients = result.one()
        return VisibilityCounts(
            total=total or 0,
            public=public or 0,
            private=private or 0,
            anonymous=anonymous or 0,
            distinct_senders=senders or 0,
            distinct_recipients=recipients or 0,
        )

    async def _keyword_lists(self, scope: AnalyticsScope) -> List[List[str]]:
        result = await self._execute(
            select(Recognition.keywords).where(*self._scope_clauses(scope))
        )
        return [parse_keywords(value) for value in result.scalars().all()]

    async def aggregate_keywords(self, scope: AnalyticsScope, limit: int) -> List[str]:
        counts = Counter()
        for keywords in await self._keyword_lists(scope):
            counts.update(keywords)
        return [keyword for keyword, _ in counts.most_common(limit)]

    async def aggregate_daily(self, scope: AnalyticsScope, days: int) -> List[DailyCount]:
        day = func.date(Recognition.created_at).label("day")
        result = await self._execute(
            select(
                day,
                func.count(Recognition.recognition_id),
                func.count(case((Recognition.visibility == Visibility.public, 1))),
            )
            .where(*self._scope_clauses(scope))
            .group_by(day)
            .order_by(desc(day))
            .limit(days)
        )
        points = []
        for value, total, public in result.all():
            # SQLite hands DATE() back as text
            if isinstance(value, str):
                value = date.fromisoformat(value)
            points.append(DailyCount(day=value, total=total or 0, public=public or 0))
        return points

    async def average_keywords(self, scope: AnalyticsScope) -> float:
        keyword_lists = await self._keyword_lists(scope)
        if not keyword_lists:
            return 0.0
        return sum(len(keywords) for keywords in keyword_lists) / len(keyword_lists)
