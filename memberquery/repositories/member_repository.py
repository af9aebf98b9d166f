"""회원 레포지토리 — 동적 검색, 페이지네이션, 벌크 연산, 집계 쿼리.

Member Repository — Dynamic search, pagination, bulk statements, and
aggregate queries for members.

Search queries select the ``MemberTeamDto`` projection from members LEFT
JOIN teams, filtered by the predicate built from a ``MemberSearchCondition``
and ordered by member id. Team data is only ever read through an explicit
join; the ``Member.team`` relationship never loads on its own.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import Row, Select, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from memberquery.models.member import Member, Team
from memberquery.querying.expressions import Predicate, SortOrder
from memberquery.querying.predicates import MEMBER_CATALOG, build_member_predicate
from memberquery.repositories.base import BaseRepository
from memberquery.schemas.member import (
    AgeStatistics,
    MemberDto,
    MemberSearchCondition,
    MemberTeamDto,
    TeamAverageAge,
    UserDto,
)
from memberquery.utils.pagination import CountStrategy, PageRequest, PageResult, paginate


def _to_member_team_dto(row: Row[Any]) -> MemberTeamDto:
    return MemberTeamDto(**row._asdict())


class MemberRepository(BaseRepository[Member]):
    """회원 테이블에 대한 데이터베이스 쿼리를 담당하는 레포지토리.

    Repository handling database queries for the members table.
    Stateless: each call builds its own statements, so one instance can
    serve concurrent callers.
    """

    def __init__(self) -> None:
        super().__init__(Member)

    # ------------------------------------------------------------------
    # 검색 (Search)
    # ------------------------------------------------------------------

    def _search_query(self, predicate: Predicate) -> Select:
        """프로젝션 조회 쿼리 — member LEFT JOIN team."""
        return (
            select(
                Member.id.label("member_id"),
                Member.username,
                Member.age,
                Team.id.label("team_id"),
                Team.name.label("team_name"),
            )
            .select_from(Member)
            .outerjoin(Team, Member.team_id == Team.id)
            .where(predicate.to_sql(MEMBER_CATALOG))
            .order_by(Member.id)
        )

    def _count_query(self, predicate: Predicate) -> Select:
        """카운트 쿼리 — 프로젝션 없이 같은 조인과 조건으로 개수만 센다."""
        return (
            select(func.count(Member.id))
            .select_from(Member)
            .outerjoin(Team, Member.team_id == Team.id)
            .where(predicate.to_sql(MEMBER_CATALOG))
        )

    async def search(
        self,
        db: AsyncSession,
        condition: MemberSearchCondition,
    ) -> list[MemberTeamDto]:
        """검색 조건에 맞는 회원-팀 프로젝션 전체를 조회합니다.

        Return every member matching the condition as ``MemberTeamDto``,
        in insertion (id) order. Unbounded: no offset or limit.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            condition: 검색 조건 (Search condition)

        Returns:
            list[MemberTeamDto]: 검색 결과 (Matching projections)
        """
        predicate: Predicate = build_member_predicate(condition)
        result = await db.execute(self._search_query(predicate))
        return [_to_member_team_dto(row) for row in result.all()]

    async def search_page(
        self,
        db: AsyncSession,
        condition: MemberSearchCondition,
        page_request: PageRequest,
        strategy: CountStrategy = CountStrategy.OPTIMIZED,
    ) -> PageResult[MemberTeamDto]:
        """검색 조건으로 한 페이지를 조회합니다.

        Return one page of matching projections plus the total count.
        With ``CountStrategy.SIMPLE`` the count query always runs; with
        ``CountStrategy.OPTIMIZED`` it is skipped when the page is short.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            condition: 검색 조건 (Search condition)
            page_request: 페이지 요청 (Offset/limit)
            strategy: 카운트 전략 (Count strategy)

        Returns:
            PageResult[MemberTeamDto]: 페이지 결과 (Page result)

        Raises:
            InvalidArgumentError: limit이 0 이하이거나 offset이 음수일 때
        """
        predicate: Predicate = build_member_predicate(condition)
        return await paginate(
            db,
            self._search_query(predicate),
            page_request,
            strategy=strategy,
            count_query=self._count_query(predicate),
            row_factory=_to_member_team_dto,
        )

    async def search_page_simple(
        self,
        db: AsyncSession,
        condition: MemberSearchCondition,
        page_request: PageRequest,
    ) -> PageResult[MemberTeamDto]:
        return await self.search_page(db, condition, page_request, CountStrategy.SIMPLE)

    async def search_page_optimized(
        self,
        db: AsyncSession,
        condition: MemberSearchCondition,
        page_request: PageRequest,
    ) -> PageResult[MemberTeamDto]:
        return await self.search_page(db, condition, page_request, CountStrategy.OPTIMIZED)

    # ------------------------------------------------------------------
    # 단순 조회 (Lookups)
    # ------------------------------------------------------------------

    async def find_by_username(
        self,
        db: AsyncSession,
        username: str,
    ) -> list[Member]:
        """이름이 정확히 일치하는 회원을 조회합니다.

        Direct equality lookup on the indexed username column; skips the
        predicate builder entirely.
        """
        query: Select = select(Member).where(Member.username == username).order_by(Member.id)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def find_all(
        self,
        db: AsyncSession,
        predicate: Predicate | None = None,
        order_by: Sequence[SortOrder] = (),
    ) -> list[Member]:
        """임의의 조건식으로 회원을 조회합니다.

        Predicate executor: filter members with any expression built from
        ``member``/``team`` fields. Team fields are reachable through a left
        join. Ordered by ``order_by`` when given, then by id.

        Args:
            db: 비동기 데이터베이스 세션 (Async database session)
            predicate: 조건식, None이면 전체 (Predicate; None matches all)
            order_by: 정렬 기준 (Sort orders)

        Returns:
            list[Member]: 회원 목록 (Matching members)
        """
        predicate = predicate or Predicate()
        query: Select = (
            select(Member)
            .outerjoin(Team, Member.team_id == Team.id)
            .where(predicate.to_sql(MEMBER_CATALOG))
            .order_by(*(order.to_sql(MEMBER_CATALOG) for order in order_by), Member.id)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def find_with_team(
        self,
        db: AsyncSession,
        username: str | None = None,
    ) -> list[Member]:
        """팀을 함께 로드하여 회원을 조회합니다 (fetch join).

        Load members with ``Member.team`` populated from the same statement.
        Members without a team come back with ``team`` set to ``None``.
        """
        query: Select = (
            select(Member)
            .outerjoin(Member.team)
            .options(contains_eager(Member.team))
            .order_by(Member.id)
            .execution_options(populate_existing=True)
        )
        if username:
            query = query.where(Member.username == username)
        result = await db.execute(query)
        return list(result.scalars().unique().all())

    async def find_member_dtos(self, db: AsyncSession) -> list[MemberDto]:
        """이름/나이 프로젝션 목록."""
        result = await db.execute(select(Member.username, Member.age).order_by(Member.id))
        return [MemberDto(username=row.username, age=row.age) for row in result.all()]

    async def find_user_dtos(self, db: AsyncSession) -> list[UserDto]:
        """별칭 프로젝션 목록 — username AS name."""
        result = await db.execute(
            select(Member.username.label("name"), Member.age).order_by(Member.id)
        )
        return [UserDto(name=row.name, age=row.age) for row in result.all()]

    # ------------------------------------------------------------------
    # 서브쿼리 (Sub-queries)
    # ------------------------------------------------------------------

    async def find_oldest(self, db: AsyncSession) -> list[Member]:
        """최고 나이와 같은 회원 — Members whose age equals the maximum age."""
        max_age = select(func.max(Member.age)).scalar_subquery()
        result = await db.execute(
            select(Member).where(Member.age == max_age).order_by(Member.id)
        )
        return list(result.scalars().all())

    async def find_at_least_average_age(self, db: AsyncSession) -> list[Member]:
        """평균 나이 이상인 회원 — Members at or above the average age."""
        avg_age = select(func.avg(Member.age)).scalar_subquery()
        result = await db.execute(
            select(Member).where(Member.age >= avg_age).order_by(Member.id)
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # 집계 (Aggregation)
    # ------------------------------------------------------------------

    async def age_statistics(self, db: AsyncSession) -> AgeStatistics:
        """회원 나이 집계 (count/sum/avg/max/min)."""
        result = await db.execute(
            select(
                func.count(Member.id),
                func.sum(Member.age),
                func.avg(Member.age),
                func.max(Member.age),
                func.min(Member.age),
            )
        )
        count, total, average, oldest, youngest = result.one()
        return AgeStatistics(
            count=count,
            sum=total,
            avg=float(average) if average is not None else None,
            max=oldest,
            min=youngest,
        )

    async def average_age_by_team(self, db: AsyncSession) -> list[TeamAverageAge]:
        """팀별 평균 나이 — inner join, team name 기준 그룹/정렬."""
        result = await db.execute(
            select(Team.name, func.avg(Member.age))
            .select_from(Member)
            .join(Team, Member.team_id == Team.id)
            .group_by(Team.name)
            .order_by(Team.name)
        )
        return [
            TeamAverageAge(team_name=name, average_age=float(average))
            for name, average in result.all()
        ]

    # ------------------------------------------------------------------
    # 벌크 연산 (Bulk statements)
    # ------------------------------------------------------------------
    # 단일 UPDATE/DELETE 문으로 실행되며 세션의 identity map은 갱신하지 않는다.
    # Already-loaded Member objects keep stale values until the caller
    # expires them.

    async def bulk_update_username(
        self,
        db: AsyncSession,
        new_username: str,
        age_less_than: int,
    ) -> int:
        """나이가 기준 미만인 회원의 이름을 일괄 변경합니다.

        Returns:
            int: 변경된 행 수 (Affected row count)
        """
        result = await db.execute(
            update(Member)
            .where(Member.age < age_less_than)
            .values(username=new_username)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def bulk_increment_age(self, db: AsyncSession, delta: int = 1) -> int:
        """모든 회원의 나이를 delta만큼 증가시킵니다 (Returns affected row count)."""
        result = await db.execute(
            update(Member)
            .values(age=Member.age + delta)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def bulk_delete(self, db: AsyncSession, age_greater_than: int) -> int:
        """나이가 기준 초과인 회원을 일괄 삭제합니다 (Returns affected row count)."""
        result = await db.execute(
            delete(Member)
            .where(Member.age > age_greater_than)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


# 싱글턴 인스턴스 — Singleton instance
member_repository: MemberRepository = MemberRepository()
