"""회원 레포지토리 테스트.

Member repository tests — dynamic search, simple and optimized paging,
lookups, predicate executor, explicit fetch joins, bulk statements,
aggregation, and sub-queries.
"""

import asyncio
from collections.abc import AsyncGenerator
from functools import cache

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.exc import InvalidRequestError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from memberquery.database import Base
from memberquery.models.member import Member, Team
from memberquery.querying.expressions import member
from memberquery.repositories.member_repository import member_repository
from memberquery.repositories.team_repository import team_repository
from memberquery.schemas.member import MemberSearchCondition
from memberquery.utils.exceptions import InvalidArgumentError
from memberquery.utils.pagination import CountStrategy, PageRequest


def usernames(rows) -> list[str | None]:
    return [row.username for row in rows]


@cache
def fail_on(fragment: str):
    """fragment가 포함된 SQL 문에서 드라이버 오류를 발생시키는 리스너.

    Cached so ``event.remove`` receives the same listener object.
    """

    def _listener(conn, cursor, statement, parameters, context, executemany) -> None:
        if fragment in statement.lower():
            raise OperationalError(statement, parameters, Exception("database is locked"))

    return _listener


class TestSearch:
    """조건 검색 테스트."""

    async def test_search_by_age_range_and_team(self, db: AsyncSession, members):
        condition = MemberSearchCondition(age_goe=35, age_loe=40, team_name="teamB")
        result = await member_repository.search(db, condition)
        assert usernames(result) == ["member4"]
        assert result[0].team_name == "teamB"
        assert result[0].age == 40

    async def test_empty_condition_returns_all_in_insertion_order(self, db: AsyncSession, members):
        result = await member_repository.search(db, MemberSearchCondition())
        assert usernames(result) == ["member1", "member2", "member3", "member4"]
        assert [r.member_id for r in result] == [m.id for m in members]

    async def test_blank_username_ignored(self, db: AsyncSession, members):
        result = await member_repository.search(db, MemberSearchCondition(username="", team_name="teamA"))
        assert usernames(result) == ["member1", "member2"]

    async def test_member_without_team_kept_by_left_join(self, db: AsyncSession, members):
        db.add(Member(username="loner", age=50))
        await db.flush()
        result = await member_repository.search(db, MemberSearchCondition(age_goe=45))
        assert len(result) == 1
        assert result[0].username == "loner"
        assert result[0].team_id is None
        assert result[0].team_name is None

    async def test_search_is_repeatable(self, db: AsyncSession, members):
        condition = MemberSearchCondition(age_goe=15)
        first = await member_repository.search(db, condition)
        second = await member_repository.search(db, condition)
        assert first == second


class TestSearchPage:
    """페이지 검색 테스트."""

    async def test_simple_first_page(self, db: AsyncSession, members, recorder):
        page = await member_repository.search_page_simple(
            db, MemberSearchCondition(), PageRequest.of(0, 3)
        )
        assert usernames(page.items) == ["member1", "member2", "member3"]
        assert page.total_count == 4
        assert page.limit == 3
        assert len(recorder.count_queries) == 1

    async def test_simple_short_page_still_counts(self, db: AsyncSession, members, recorder):
        page = await member_repository.search_page_simple(
            db, MemberSearchCondition(), PageRequest(offset=0, limit=10)
        )
        assert page.total_count == 4
        assert len(recorder.count_queries) == 1

    async def test_optimized_short_first_page_skips_count(self, db: AsyncSession, members, recorder):
        page = await member_repository.search_page_optimized(
            db, MemberSearchCondition(team_name="teamA"), PageRequest(offset=0, limit=3)
        )
        assert usernames(page.items) == ["member1", "member2"]
        assert page.total_count == 2
        assert recorder.count_queries == []

    async def test_optimized_short_later_page_skips_count(self, db: AsyncSession, members, recorder):
        page = await member_repository.search_page_optimized(
            db, MemberSearchCondition(), PageRequest.of(1, 3)
        )
        assert usernames(page.items) == ["member4"]
        assert page.total_count == 4
        assert recorder.count_queries == []

    async def test_optimized_full_page_runs_count(self, db: AsyncSession, members, recorder):
        page = await member_repository.search_page_optimized(
            db, MemberSearchCondition(), PageRequest.of(0, 3)
        )
        assert len(page.items) == 3
        assert page.total_count == 4
        assert len(recorder.count_queries) == 1

    async def test_optimized_empty_page_past_end_runs_count(self, db: AsyncSession, members, recorder):
        page = await member_repository.search_page_optimized(
            db, MemberSearchCondition(), PageRequest.of(5, 3)
        )
        assert page.items == []
        assert page.total_count == 4
        assert len(recorder.count_queries) == 1

    async def test_count_applies_predicate(self, db: AsyncSession, members):
        page = await member_repository.search_page(
            db,
            MemberSearchCondition(age_goe=20),
            PageRequest(offset=0, limit=1),
            CountStrategy.SIMPLE,
        )
        assert usernames(page.items) == ["member2"]
        assert page.total_count == 3

    @pytest.mark.parametrize("strategy", list(CountStrategy))
    @pytest.mark.parametrize("limit", [1, 2, 3, 4, 5])
    async def test_items_never_exceed_limit(self, db: AsyncSession, members, strategy, limit):
        page = await member_repository.search_page(
            db, MemberSearchCondition(), PageRequest(offset=0, limit=limit), strategy
        )
        assert len(page.items) <= limit
        assert page.total_count == 4

    async def test_invalid_limit_rejected_before_query(self, db: AsyncSession, members, recorder):
        recorder.clear()
        with pytest.raises(InvalidArgumentError):
            await member_repository.search_page(
                db, MemberSearchCondition(), PageRequest(offset=0, limit=0)
            )
        assert recorder.statements == []

    async def test_count_failure_propagates(self, db: AsyncSession, engine, members):
        event.listen(engine.sync_engine, "before_cursor_execute", fail_on("count("))
        try:
            with pytest.raises(OperationalError):
                await member_repository.search_page(
                    db, MemberSearchCondition(), PageRequest(offset=0, limit=2), CountStrategy.SIMPLE
                )
        finally:
            event.remove(engine.sync_engine, "before_cursor_execute", fail_on("count("))

    async def test_listing_failure_propagates_without_count(
        self, db: AsyncSession, engine, members, recorder
    ):
        recorder.clear()
        event.listen(engine.sync_engine, "before_cursor_execute", fail_on("limit"))
        try:
            with pytest.raises(OperationalError):
                await member_repository.search_page(
                    db, MemberSearchCondition(), PageRequest(offset=0, limit=2), CountStrategy.SIMPLE
                )
        finally:
            event.remove(engine.sync_engine, "before_cursor_execute", fail_on("limit"))
        assert recorder.count_queries == []


class TestConcurrentSessions:
    """세션별 동시 검색 테스트 — one session per task, same engine."""

    @pytest_asyncio.fixture
    async def file_engine(self, tmp_path) -> AsyncGenerator[AsyncEngine, None]:
        eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'members.db'}")
        async with eng.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        factory = async_sessionmaker(eng, class_=AsyncSession, expire_on_commit=False)
        async with factory() as session:
            team_a = Team(name="teamA")
            team_b = Team(name="teamB")
            session.add_all([team_a, team_b])
            await session.flush()
            for i, team in enumerate([team_a, team_a, team_b, team_b], start=1):
                session.add(Member(username=f"member{i}", age=i * 10, team_id=team.id))
                await session.flush()
            await session.commit()
        yield eng
        await eng.dispose()

    async def test_search_and_page_in_parallel(self, file_engine: AsyncEngine):
        factory = async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False)

        async def run_search() -> list[str | None]:
            async with factory() as session:
                return usernames(
                    await member_repository.search(session, MemberSearchCondition(team_name="teamB"))
                )

        async def run_page():
            async with factory() as session:
                return await member_repository.search_page_optimized(
                    session, MemberSearchCondition(age_goe=20), PageRequest.of(0, 2)
                )

        found, page = await asyncio.gather(run_search(), run_page())

        assert found == ["member3", "member4"]
        assert usernames(page.items) == ["member2", "member3"]
        assert page.total_count == 3


class TestLookups:
    """단순 조회 테스트."""

    async def test_basic_crud(self, db: AsyncSession):
        created = await member_repository.create(db, {"username": "member1", "age": 10})
        found = await member_repository.get_by_id(db, created.id)
        assert found is created
        assert list(await member_repository.get_all(db)) == [created]
        assert await member_repository.find_by_username(db, "member1") == [created]
        assert await member_repository.count(db) == 1
        assert await member_repository.delete(db, created.id) is True
        assert await member_repository.get_by_id(db, created.id) is None

    async def test_find_by_username_missing(self, db: AsyncSession, members):
        assert await member_repository.find_by_username(db, "nobody") == []

    async def test_team_by_name(self, db: AsyncSession, teams):
        found = await team_repository.get_by_name(db, "teamB")
        assert found is teams["teamB"]
        assert await team_repository.get_by_name(db, "teamC") is None

    async def test_predicate_executor(self, db: AsyncSession, members):
        predicate = member.age.between(20, 40) & member.username.ne("member1")
        result = await member_repository.find_all(db, predicate)
        assert usernames(result) == ["member2", "member3", "member4"]

    async def test_predicate_executor_without_predicate(self, db: AsyncSession, members):
        assert len(await member_repository.find_all(db)) == 4

    async def test_sort_with_nulls_last(self, db: AsyncSession, members):
        for name in (None, "member5", "member6"):
            db.add(Member(username=name, age=100))
            await db.flush()
        result = await member_repository.find_all(
            db,
            member.age.eq(100),
            order_by=(member.age.desc(), member.username.asc(nulls_last=True)),
        )
        assert usernames(result) == ["member5", "member6", None]


class TestFetchJoin:
    """명시적 페치 조인 테스트."""

    async def test_team_not_loaded_implicitly(self, db: AsyncSession, members):
        db.expunge_all()
        found = (await member_repository.find_by_username(db, "member1"))[0]
        with pytest.raises(InvalidRequestError):
            _ = found.team

    async def test_find_with_team_loads_team(self, db: AsyncSession, members):
        db.add(Member(username="loner", age=50))
        await db.flush()
        db.expunge_all()
        result = await member_repository.find_with_team(db)
        assert [m.team.name if m.team else None for m in result] == [
            "teamA", "teamA", "teamB", "teamB", None,
        ]

    async def test_find_with_team_by_username(self, db: AsyncSession, members):
        db.expunge_all()
        result = await member_repository.find_with_team(db, "member3")
        assert len(result) == 1
        assert result[0].team.name == "teamB"


class TestBulk:
    """벌크 연산 테스트."""

    async def test_bulk_update_username(self, db: AsyncSession, members):
        affected = await member_repository.bulk_update_username(db, "비회원", age_less_than=28)
        assert affected == 2
        # identity map은 갱신되지 않는다 — loaded objects keep stale values
        assert members[0].username == "member1"
        db.expire_all()
        renamed = await member_repository.find_by_username(db, "비회원")
        assert [m.id for m in renamed] == [members[0].id, members[1].id]
        assert members[0].username == "비회원"

    async def test_bulk_increment_age(self, db: AsyncSession, members):
        affected = await member_repository.bulk_increment_age(db, 1)
        assert affected == 4
        db.expire_all()
        result = await member_repository.find_all(db)
        assert [m.age for m in result] == [11, 21, 31, 41]

    async def test_bulk_delete(self, db: AsyncSession, members):
        affected = await member_repository.bulk_delete(db, age_greater_than=18)
        assert affected == 3
        db.expunge_all()
        assert usernames(await member_repository.find_all(db)) == ["member1"]


class TestAggregation:
    """집계 및 서브쿼리 테스트."""

    async def test_age_statistics(self, db: AsyncSession, members):
        stats = await member_repository.age_statistics(db)
        assert stats.count == 4
        assert stats.sum == 100
        assert stats.avg == 25.0
        assert stats.max == 40
        assert stats.min == 10

    async def test_age_statistics_empty(self, db: AsyncSession):
        stats = await member_repository.age_statistics(db)
        assert stats.count == 0
        assert stats.sum is None
        assert stats.avg is None

    async def test_average_age_by_team(self, db: AsyncSession, members):
        result = await member_repository.average_age_by_team(db)
        assert [(r.team_name, r.average_age) for r in result] == [("teamA", 15.0), ("teamB", 35.0)]

    async def test_find_oldest(self, db: AsyncSession, members):
        assert [m.age for m in await member_repository.find_oldest(db)] == [40]

    async def test_find_at_least_average_age(self, db: AsyncSession, members):
        assert [m.age for m in await member_repository.find_at_least_average_age(db)] == [30, 40]

    async def test_projections(self, db: AsyncSession, members):
        dtos = await member_repository.find_member_dtos(db)
        assert [(d.username, d.age) for d in dtos][0] == ("member1", 10)
        users = await member_repository.find_user_dtos(db)
        assert [u.name for u in users] == ["member1", "member2", "member3", "member4"]
