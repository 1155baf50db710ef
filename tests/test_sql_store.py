"""Tests for the SQLAlchemy store and user directory, run against in-memory SQLite."""

from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from recognition.constants.constants import TEAM_FALLBACK_KEYWORDS, UserRole, Visibility
from recognition.core.exceptions import NotFoundError
from recognition.models.base import Base
from recognition.models.recognition import Recognition
from recognition.models.team import Team
from recognition.models.user import User
from recognition.schemas.records import NewRecognition
from recognition.services.AnalyticsAggregator import AnalyticsAggregator
from recognition.services.RecognitionStore import AnalyticsScope, RecognitionFilter, SqlRecognitionStore
from recognition.services.UserDirectory import SqlUserDirectory


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        session.add_all([
            Team(team_id="engineering", name="Engineering", description="Software development team"),
            Team(team_id="people", name="HR"),
            User(user_id="alice", email="alice@company.com", name="Alice", team_id="engineering"),
            User(user_id="bob", email="bob@company.com", name="Bob", team_id="engineering"),
            User(user_id="carol", email="carol@company.com", name="Carol", role=UserRole.manager, team_id="engineering"),
            User(user_id="dave", email="dave@company.com", name="Dave", role=UserRole.hr, team_id="people"),
        ])
        await session.commit()
        yield session

    await engine.dispose()


@pytest.fixture
def sql_store(db):
    return SqlRecognitionStore(db)


@pytest.fixture
def sql_directory(db):
    return SqlUserDirectory(db)


def new(sender_id, recipient_id, visibility, keywords=(), message="Great work"):
    return NewRecognition(
        sender_id=sender_id,
        recipient_id=recipient_id,
        message=message,
        visibility=visibility,
        keywords=list(keywords),
    )


async def seed(sql_store):
    public = await sql_store.insert(new("alice", "bob", Visibility.public, ["great", "work"]))
    private = await sql_store.insert(new("alice", "bob", Visibility.private, ["great", "review"]))
    anonymous = await sql_store.insert(new(None, "bob", Visibility.anonymous, ["patience"]))
    to_hr = await sql_store.insert(new("carol", "dave", Visibility.public, ["great", "hiring", "work"]))
    return public, private, anonymous, to_hr


class TestSqlRecognitionStore:

    @pytest.mark.asyncio
    async def test_insert_and_fetch(self, sql_store):
        created = await sql_store.insert(new("alice", "bob", Visibility.private, ["great", "work"]))

        fetched = await sql_store.fetch_by_id(created.id)
        assert fetched.sender_id == "alice"
        assert fetched.recipient_id == "bob"
        assert fetched.visibility == Visibility.private
        assert fetched.keywords == ["great", "work"]
        assert await sql_store.fetch_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_readable_filter(self, sql_store):
        public, private, anonymous, to_hr = await seed(sql_store)

        def ids(records):
            return {record.id for record in records}

        assert ids(await sql_store.query_by_predicate(RecognitionFilter(readable_by="dave"), 10)) == {public.id, to_hr.id}
        assert ids(await sql_store.query_by_predicate(RecognitionFilter(readable_by="bob"), 10)) == {
            public.id, private.id, anonymous.id, to_hr.id,
        }
        assert ids(await sql_store.query_by_predicate(RecognitionFilter(readable_by="alice"), 10)) == {
            public.id, private.id, to_hr.id,
        }

    @pytest.mark.asyncio
    async def test_filters_and_limit(self, sql_store):
        public, private, anonymous, to_hr = await seed(sql_store)

        sent = await sql_store.query_by_predicate(RecognitionFilter(sender_id="alice"), 10)
        assert {r.id for r in sent} == {public.id, private.id}
        assert len(await sql_store.query_by_predicate(RecognitionFilter(recipient_id="bob"), 2)) == 2
        assert await sql_store.count(RecognitionFilter(visibility=Visibility.public)) == 2
        assert await sql_store.count(RecognitionFilter(involving="carol")) == 1
        assert await sql_store.count(RecognitionFilter(team_id="people")) == 1

    @pytest.mark.asyncio
    async def test_newest_first(self, sql_store, db):
        public, private, _, _ = await seed(sql_store)
        await db.execute(
            update(Recognition)
            .where(Recognition.recognition_id == public.id)
            .values(created_at=datetime(2030, 1, 1, tzinfo=timezone.utc))
        )
        await db.commit()

        records = await sql_store.query_by_predicate(RecognitionFilter(recipient_id="bob"), 10)
        assert records[0].id == public.id

    @pytest.mark.asyncio
    async def test_update_fields(self, sql_store):
        created = await sql_store.insert(new("alice", "bob", Visibility.private, ["great"]))

        updated = await sql_store.update_fields(
            created.id, {"message": "Stellar debugging", "keywords": ["stellar", "debugging"]}
        )

        assert updated.message == "Stellar debugging"
        assert updated.keywords == ["stellar", "debugging"]
        assert updated.visibility == Visibility.private

    @pytest.mark.asyncio
    async def test_update_rejects_other_fields(self, sql_store):
        created = await sql_store.insert(new("alice", "bob", Visibility.private))

        with pytest.raises(ValueError):
            await sql_store.update_fields(created.id, {"sender_id": "carol"})
        with pytest.raises(NotFoundError):
            await sql_store.update_fields("missing", {"message": "Hello there"})

    @pytest.mark.asyncio
    async def test_deleted_rows_are_excluded(self, sql_store):
        public, private, anonymous, to_hr = await seed(sql_store)

        deleted = await sql_store.update_fields(public.id, {"visibility": Visibility.deleted})

        assert deleted.is_deleted
        assert (await sql_store.fetch_by_id(public.id)).is_deleted
        readable = await sql_store.query_by_predicate(RecognitionFilter(readable_by="bob"), 10)
        assert public.id not in {r.id for r in readable}
        assert await sql_store.count(RecognitionFilter(include_deleted=True)) == 4
        assert await sql_store.count(RecognitionFilter()) == 3

        counts = await sql_store.aggregate_counts(AnalyticsScope())
        assert (counts.total, counts.public) == (3, 1)

    @pytest.mark.asyncio
    async def test_deleted_rows_are_unreadable_even_when_included(self, sql_store):
        public, private, _, _ = await seed(sql_store)
        await sql_store.update_fields(private.id, {"visibility": Visibility.deleted})

        readable = await sql_store.query_by_predicate(
            RecognitionFilter(readable_by="alice", include_deleted=True), 10
        )

        assert private.id not in {r.id for r in readable}
        assert public.id in {r.id for r in readable}

    @pytest.mark.asyncio
    async def test_malformed_keywords_do_not_break_reads(self, sql_store, db):
        public, private, _, _ = await seed(sql_store)
        await db.execute(
            update(Recognition)
            .where(Recognition.recognition_id == public.id)
            .values(keywords={"not": "a list"})
        )
        await db.commit()

        records = await sql_store.query_by_predicate(RecognitionFilter(recipient_id="bob"), 10)
        assert {r.id: r.keywords for r in records}[public.id] == []
        assert (await sql_store.fetch_by_id(private.id)).keywords == ["great", "review"]

        stats = await AnalyticsAggregator(sql_store).get_team_stats("engineering", UserRole.manager)
        assert stats.total_count == 3
        assert stats.top_keywords == TEAM_FALLBACK_KEYWORDS

    @pytest.mark.asyncio
    async def test_aggregate_counts(self, sql_store):
        await seed(sql_store)

        counts = await sql_store.aggregate_counts(AnalyticsScope(team_id="engineering"))

        assert (counts.total, counts.public, counts.private, counts.anonymous) == (3, 1, 1, 1)
        assert counts.distinct_senders == 1
        assert counts.distinct_recipients == 1

        organization = await sql_store.aggregate_counts(AnalyticsScope())
        assert organization.distinct_senders == 2
        assert organization.distinct_recipients == 2

    @pytest.mark.asyncio
    async def test_aggregate_keywords(self, sql_store):
        await seed(sql_store)

        assert await sql_store.aggregate_keywords(AnalyticsScope(), 2) == ["great", "work"]
        assert (await sql_store.aggregate_keywords(AnalyticsScope(team_id="people"), 5)) == ["great", "hiring", "work"]

    @pytest.mark.asyncio
    async def test_aggregate_daily_and_average(self, sql_store):
        await seed(sql_store)

        points = await sql_store.aggregate_daily(AnalyticsScope(), 30)
        assert len(points) == 1
        assert isinstance(points[0].day, date)
        assert (points[0].total, points[0].public) == (4, 2)

        assert await sql_store.average_keywords(AnalyticsScope()) == 2.0
        assert await sql_store.average_keywords(AnalyticsScope(team_id="missing")) == 0.0


class TestSqlUserDirectory:

    @pytest.mark.asyncio
    async def test_lookups(self, sql_directory):
        assert await sql_directory.exists("alice")
        assert not await sql_directory.exists("ghost")
        assert not await sql_directory.exists("")

        carol = await sql_directory.get("carol")
        assert carol.role == UserRole.manager
        assert carol.team_id == "engineering"
        assert (await sql_directory.get_by_email("dave@company.com")).id == "dave"
        assert await sql_directory.get("ghost") is None

    @pytest.mark.asyncio
    async def test_get_many_skips_unknown(self, sql_directory):
        users = await sql_directory.get_many(["alice", "bob", "ghost", None])
        assert set(users) == {"alice", "bob"}

    @pytest.mark.asyncio
    async def test_teams(self, sql_directory):
        team = await sql_directory.get_team("engineering")
        assert team.name == "Engineering"
        members = await sql_directory.get_team_members("engineering")
        assert [member.id for member in members] == ["alice", "bob", "carol"]
        assert await sql_directory.get_team("missing") is None

    @pytest.mark.asyncio
    async def test_list_users_sorted_by_name(self, sql_directory):
        users = await sql_directory.list_users(limit=3)
        assert [user.name for user in users] == ["Alice", "Bob", "Carol"]
