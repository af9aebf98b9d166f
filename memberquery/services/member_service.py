"""회원 서비스 — 회원 검색 및 벌크 연산 비즈니스 로직.

Member Service — Business logic for member search, single-member lookup,
and bulk maintenance statements. Converts ORM rows to response schemas,
turns empty single-result lookups into ``NotFoundError``, and owns the
transaction boundary of bulk statements.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from memberquery.config import settings
from memberquery.models.member import Member, Team
from memberquery.repositories.member_repository import member_repository
from memberquery.repositories.team_repository import team_repository
from memberquery.schemas.member import MemberResponse, MemberSearchCondition, MemberTeamDto
from memberquery.utils.exceptions import NotFoundError
from memberquery.utils.pagination import CountStrategy, PageRequest, PageResult

logger = logging.getLogger(__name__)


class MemberService:
    """회원 관련 비즈니스 로직을 처리하는 서비스.

    Service handling member business logic.
    """

    def _to_response(self, member: Member) -> MemberResponse:
        return MemberResponse.model_validate(member)

    async def create_team(self, db: AsyncSession, name: str) -> Team:
        """팀을 생성합니다 (Create a team; caller commits)."""
        return await team_repository.create(db, {"name": name})

    async def create_member(
        self,
        db: AsyncSession,
        username: str | None,
        age: int,
        team: Team | None = None,
    ) -> MemberResponse:
        """회원을 생성합니다.

        Create a member, optionally on a team. The caller commits.
        """
        member: Member = await member_repository.create(
            db,
            {"username": username, "age": age, "team_id": team.id if team else None},
        )
        return self._to_response(member)

    async def get_member(self, db: AsyncSession, member_id: int) -> MemberResponse:
        """회원 단건 조회.

        Raises:
            NotFoundError: 회원이 없을 때 (No member with this id)
        """
        member: Member | None = await member_repository.get_by_id(db, member_id)
        if member is None:
            raise NotFoundError("Member not found")
        return self._to_response(member)

    async def get_member_by_username(self, db: AsyncSession, username: str) -> MemberResponse:
        """이름으로 회원 단건 조회 (first match in insertion order).

        Raises:
            NotFoundError: 일치하는 회원이 없을 때 (No member with this username)
        """
        members: list[Member] = await member_repository.find_by_username(db, username)
        if not members:
            raise NotFoundError(f"Member not found: {username}")
        return self._to_response(members[0])

    async def search_members(
        self,
        db: AsyncSession,
        condition: MemberSearchCondition,
    ) -> list[MemberTeamDto]:
        """검색 조건에 맞는 모든 회원을 조회합니다."""
        return await member_repository.search(db, condition)

    async def search_members_page(
        self,
        db: AsyncSession,
        condition: MemberSearchCondition,
        page_request: PageRequest,
        strategy: CountStrategy | None = None,
    ) -> PageResult[MemberTeamDto]:
        """검색 조건으로 한 페이지를 조회합니다.

        Query one page of members with the given count strategy.

        Args:
            db: 비동기 DB 세션 (Async database session)
            condition: 검색 조건 (Search condition)
            page_request: 페이지 요청 (Offset/limit)
            strategy: 카운트 전략, None이면 설정값 (Count strategy; defaults to
                COUNT_STRATEGY from settings)

        Returns:
            PageResult[MemberTeamDto]: 페이지 결과 (Page result)
        """
        if strategy is None:
            strategy = CountStrategy(settings.COUNT_STRATEGY)
        page: PageResult[MemberTeamDto] = await member_repository.search_page(
            db, condition, page_request, strategy
        )
        logger.info(
            "member page searched: strategy=%s offset=%d limit=%d items=%d total=%s",
            strategy.value,
            page.offset,
            page.limit,
            len(page.items),
            page.total_count,
        )
        return page

    # 벌크 연산 후 세션의 identity map을 만료시켜 오래된 값이 남지 않도록 한다.
    # Bulk statements bypass the identity map; expire it after commit.

    async def rename_younger_than(
        self,
        db: AsyncSession,
        new_username: str,
        age_less_than: int,
    ) -> int:
        """나이 기준 미만 회원 이름 일괄 변경 후 커밋 (Returns affected rows)."""
        affected: int = await member_repository.bulk_update_username(db, new_username, age_less_than)
        await db.commit()
        db.expire_all()
        logger.info("bulk username update: age<%d affected=%d", age_less_than, affected)
        return affected

    async def increment_ages(self, db: AsyncSession, delta: int = 1) -> int:
        """전체 회원 나이 일괄 증가 후 커밋 (Returns affected rows)."""
        affected: int = await member_repository.bulk_increment_age(db, delta)
        await db.commit()
        db.expire_all()
        logger.info("bulk age increment: delta=%d affected=%d", delta, affected)
        return affected

    async def delete_older_than(self, db: AsyncSession, age_greater_than: int) -> int:
        """나이 기준 초과 회원 일괄 삭제 후 커밋 (Returns affected rows)."""
        affected: int = await member_repository.bulk_delete(db, age_greater_than)
        await db.commit()
        db.expire_all()
        logger.info("bulk delete: age>%d affected=%d", age_greater_than, affected)
        return affected


# 싱글턴 인스턴스 — Singleton instance
member_service: MemberService = MemberService()
