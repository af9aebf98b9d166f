"""회원 검색 라우터 — 목록/페이지 검색 및 단건 조회 엔드포인트.

Member Search Router — List and paged search endpoints plus single lookup.
v1 returns the full match list, v2 pages with the simple count strategy,
v3 pages with the optimized (count-skipping) strategy.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from memberquery.config import settings
from memberquery.database import get_db
from memberquery.schemas.member import MemberResponse, MemberSearchCondition, MemberTeamDto
from memberquery.services.member_service import member_service
from memberquery.utils.pagination import CountStrategy, PageRequest, PageResult

router: APIRouter = APIRouter()


def search_condition(
    username: Annotated[str | None, Query(description="회원 이름 일치")] = None,
    team_name: Annotated[str | None, Query(description="팀 이름 일치")] = None,
    age_goe: Annotated[int | None, Query(description="최소 나이 (이상)")] = None,
    age_loe: Annotated[int | None, Query(description="최대 나이 (이하)")] = None,
) -> MemberSearchCondition:
    """쿼리 파라미터로 검색 조건을 구성합니다."""
    return MemberSearchCondition(
        username=username,
        team_name=team_name,
        age_goe=age_goe,
        age_loe=age_loe,
    )


def page_request(
    page: Annotated[int, Query(description="페이지 번호, 0부터 시작")] = 0,
    size: Annotated[int, Query(le=settings.MAX_PAGE_SIZE, description="페이지 크기")] = settings.DEFAULT_PAGE_SIZE,
) -> PageRequest:
    """페이지 파라미터로 페이지 요청을 구성합니다.

    Non-positive sizes are rejected by the executor with a 400.
    """
    return PageRequest.of(page, size)


@router.get("/v1/members", response_model=list[MemberTeamDto])
async def search_members(
    db: Annotated[AsyncSession, Depends(get_db)],
    condition: Annotated[MemberSearchCondition, Depends(search_condition)],
) -> list[MemberTeamDto]:
    """검색 조건에 맞는 회원 전체를 조회합니다.

    List every member matching the optional filters.
    """
    return await member_service.search_members(db, condition)


@router.get("/v2/members", response_model=PageResult[MemberTeamDto])
async def search_members_page_simple(
    db: Annotated[AsyncSession, Depends(get_db)],
    condition: Annotated[MemberSearchCondition, Depends(search_condition)],
    paging: Annotated[PageRequest, Depends(page_request)],
) -> PageResult[MemberTeamDto]:
    """페이지 검색 — 카운트 쿼리를 항상 실행합니다."""
    return await member_service.search_members_page(db, condition, paging, CountStrategy.SIMPLE)


@router.get("/v3/members", response_model=PageResult[MemberTeamDto])
async def search_members_page_optimized(
    db: Annotated[AsyncSession, Depends(get_db)],
    condition: Annotated[MemberSearchCondition, Depends(search_condition)],
    paging: Annotated[PageRequest, Depends(page_request)],
) -> PageResult[MemberTeamDto]:
    """페이지 검색 — 마지막 페이지면 카운트 쿼리를 생략합니다."""
    return await member_service.search_members_page(db, condition, paging, CountStrategy.OPTIMIZED)


@router.get("/v1/members/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> MemberResponse:
    """회원 단건 조회 — 없으면 404."""
    return await member_service.get_member(db, member_id)
