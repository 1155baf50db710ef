"""Pytest configuration, in-memory collaborators and fixtures."""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import pytest

from recognition.constants.constants import UserRole, Visibility
from recognition.core.exceptions import NotFoundError
from recognition.schemas.records import (
    NewRecognition,
    RecognitionRecord,
    TeamRecord,
    UserRecord,
    parse_keywords,
    state_for,
)
from recognition.services.AnalyticsAggregator import AnalyticsAggregator
from recognition.services.NotificationFanout import InMemoryMessageBus, NotificationFanout
from recognition.services.RecognitionEngine import RecognitionEngine
from recognition.services.RecognitionStore import (
    AnalyticsScope,
    DailyCount,
    RecognitionFilter,
    RecognitionStore,
    VisibilityCounts,
)
from recognition.services.UserDirectory import UserDirectory

BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class InMemoryUserDirectory(UserDirectory):
    def __init__(self, users: Iterable[UserRecord] = (), teams: Iterable[TeamRecord] = ()):
        self.users: Dict[str, UserRecord] = {user.id: user for user in users}
        self.teams: Dict[str, TeamRecord] = {team.id: team for team in teams}

    async def exists(self, user_id):
        return user_id in self.users

    async def get(self, user_id):
        return self.users.get(user_id)

    async def get_many(self, user_ids):
        return {user_id: self.users[user_id] for user_id in user_ids if user_id in self.users}

    async def get_by_email(self, email):
        return next((user for user in self.users.values() if user.email == email), None)

    async def list_users(self, limit=20):
        return sorted(self.users.values(), key=lambda user: user.name)[:limit]

    async def get_team(self, team_id):
        return self.teams.get(team_id)

    async def get_team_members(self, team_id):
        return sorted(
            (user for user in self.users.values() if user.team_id == team_id),
            key=lambda user: user.name,
        )


class InMemoryRecognitionStore(RecognitionStore):
    """Store fake. Each insert is one second after the previous one so ordering is stable."""

    def __init__(self, directory: InMemoryUserDirectory):
        self.directory = directory
        self.records: Dict[str, RecognitionRecord] = {}
        self.raw_keywords: Dict[str, object] = {}
        self.updates: List[tuple] = []

    def _team_of(self, user_id: str) -> Optional[str]:
        user = self.directory.users.get(user_id)
        return user.team_id if user else None

    def _matching(self, predicate: RecognitionFilter) -> List[RecognitionRecord]:
        matches = [
            record for record in self.records.values()
            if predicate.matches(record, self._team_of(record.recipient_id))
        ]
        return sorted(matches, key=lambda record: record.created_at, reverse=True)

    def _in_scope(self, scope: AnalyticsScope) -> List[RecognitionRecord]:
        return self._matching(RecognitionFilter(team_id=scope.team_id))

    async def insert(self, recognition: NewRecognition) -> RecognitionRecord:
        number = len(self.records) + 1
        record = RecognitionRecord(
            id=f"rec-{number}",
            sender_id=recognition.sender_id,
            recipient_id=recognition.recipient_id,
            message=recognition.message,
            state=state_for(recognition.visibility),
            keywords=recognition.keywords,
            created_at=BASE_TIME + timedelta(seconds=number),
        )
        self.records[record.id] = record
        return record

    async def query_by_predicate(self, predicate, limit):
        return self._matching(predicate)[:limit]

    async def fetch_by_id(self, recognition_id):
        return self.records.get(recognition_id)

    async def update_fields(self, recognition_id, fields):
        record = self.records.get(recognition_id)
        if record is None:
            raise NotFoundError("Recognition not found")
        self.updates.append((recognition_id, dict(fields)))

        changes = {}
        if "message" in fields:
            changes["message"] = fields["message"]
        if "keywords" in fields:
            changes["keywords"] = list(fields["keywords"])
        if "visibility" in fields:
            changes["state"] = state_for(fields["visibility"])
        record = record.model_copy(update=changes)
        self.records[recognition_id] = record
        return record

    async def count(self, predicate):
        return len(self._matching(predicate))

    async def aggregate_counts(self, scope):
        records = self._in_scope(scope)
        return VisibilityCounts(
            total=len(records),
            public=sum(1 for r in records if r.visibility == Visibility.public),
            private=sum(1 for r in records if r.visibility == Visibility.private),
            anonymous=sum(1 for r in records if r.visibility == Visibility.anonymous),
            distinct_senders=len({r.sender_id for r in records if r.sender_id}),
            distinct_recipients=len({r.recipient_id for r in records}),
        )

    async def aggregate_keywords(self, scope, limit):
        counts = Counter()
        for record in self._in_scope(scope):
            counts.update(parse_keywords(self.raw_keywords.get(record.id, record.keywords)))
        return [keyword for keyword, _ in counts.most_common(limit)]

    async def aggregate_daily(self, scope, days):
        per_day: Dict = {}
        for record in self._in_scope(scope):
            day = record.created_at.date()
            total, public = per_day.get(day, (0, 0))
            per_day[day] = (total + 1, public + (record.visibility == Visibility.public))
        return [
            DailyCount(day=day, total=total, public=public)
            for day, (total, public) in sorted(per_day.items(), reverse=True)[:days]
        ]

    async def average_keywords(self, scope):
        records = self._in_scope(scope)
        if not records:
            return 0.0
        return sum(len(r.keywords) for r in records) / len(records)


def make_user(user_id: str, role: UserRole = UserRole.employee, team_id: Optional[str] = None) -> UserRecord:
    return UserRecord(
        id=user_id,
        email=f"{user_id}@company.com",
        name=user_id.capitalize(),
        role=role,
        team_id=team_id,
    )


@pytest.fixture
def directory():
    return InMemoryUserDirectory(
        users=[
            make_user("alice", team_id="engineering"),
            make_user("bob", team_id="engineering"),
            make_user("carol", UserRole.manager, team_id="engineering"),
            make_user("dave", UserRole.hr, team_id="people"),
            make_user("erin", UserRole.admin),
            make_user("frank", team_id="marketing"),
        ],
        teams=[
            TeamRecord(id="engineering", name="Engineering", description="Software development team"),
            TeamRecord(id="people", name="HR", description="Human resources team"),
            TeamRecord(id="marketing", name="Marketing"),
        ],
    )


@pytest.fixture
def store(directory):
    return InMemoryRecognitionStore(directory)


@pytest.fixture
def bus():
    return InMemoryMessageBus(queue_size=10)


@pytest.fixture
def fanout(bus):
    return NotificationFanout(bus)


@pytest.fixture
def engine(store, directory, fanout):
    return RecognitionEngine(store, directory, fanout)


@pytest.fixture
def analytics(store):
    return AnalyticsAggregator(store)
