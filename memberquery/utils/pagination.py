"""페이지네이션 유틸리티 모듈.

Pagination utility module for SQLAlchemy async queries.
Provides the page request/result models, the two total-count strategies,
and a generic ``paginate`` function used by every paged listing.

Count strategies:
    - SIMPLE: 항상 카운트 쿼리를 실행 (always run the count query)
    - OPTIMIZED: 마지막 페이지임이 확실하면 카운트 쿼리를 생략
      (skip the count query when the page is provably the last one)

The listing read and the count read are two separate statements. They see
the same snapshot only when the caller runs both inside one transaction.
"""

import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, computed_field
from sqlalchemy import Row, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memberquery.utils.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CountStrategy(str, Enum):
    """전체 개수 계산 전략 — Total-count strategy."""

    SIMPLE = "simple"
    OPTIMIZED = "optimized"


class PageRequest(BaseModel):
    """페이지 요청 모델.

    Page request: skip ``offset`` rows, take at most ``limit`` rows.
    Validity (``offset >= 0``, ``limit > 0``) is checked by ``paginate``
    before any query runs.

    Attributes:
        offset: 건너뛸 행 수 (Rows to skip)
        limit: 최대 반환 행 수 (Maximum rows to return)
    """

    model_config = ConfigDict(frozen=True)

    offset: int = 0
    limit: int = 20

    @classmethod
    def of(cls, page: int, size: int) -> "PageRequest":
        """0부터 시작하는 페이지 번호로 요청을 생성합니다.

        Build a request from a zero-based page number and a page size.
        """
        return cls(offset=page * size, limit=size)


class PageResult(BaseModel, Generic[T]):
    """페이지네이션 결과 모델.

    Pagination result model for typed responses.
    Contains the page items and metadata for client-side pagination controls.

    Attributes:
        items: 현재 페이지 항목 목록 (Items for the current page)
        total_count: 전체 항목 수 (Total count across all pages, None if deferred)
        offset: 건너뛴 행 수 (Rows skipped)
        limit: 페이지 크기 (Page size)
    """

    items: list[T]
    total_count: int | None
    offset: int
    limit: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def page(self) -> int:
        """현재 페이지 번호 — 0부터 시작 (Current page, 0-indexed)."""
        return self.offset // self.limit

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pages(self) -> int | None:
        """전체 페이지 수 (Total pages, computed: ceil(total/limit))."""
        if self.total_count is None:
            return None
        return math.ceil(self.total_count / self.limit)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next(self) -> bool | None:
        if self.total_count is None:
            return None
        return self.offset + len(self.items) < self.total_count


def check_page_request(page_request: PageRequest) -> None:
    """페이지 요청의 유효성을 검사합니다.

    Raises:
        InvalidArgumentError: limit이 0 이하이거나 offset이 음수일 때
            (limit is not positive or offset is negative)
    """
    if page_request.limit <= 0:
        raise InvalidArgumentError(f"limit must be positive, got {page_request.limit}")
    if page_request.offset < 0:
        raise InvalidArgumentError(f"offset must not be negative, got {page_request.offset}")


def can_skip_count(page_request: PageRequest, content_size: int) -> bool:
    """카운트 쿼리 생략 가능 여부를 판단합니다.

    Decide whether the total is already known from the page itself.
    A short page is the last page, so ``total == offset + content_size``.
    At offset 0 an empty page also qualifies; at a later offset an empty
    page may simply be past the end, so the count must run.
    """
    if page_request.offset == 0:
        return content_size < page_request.limit
    return 0 < content_size < page_request.limit


async def build_page(
    items: Sequence[T],
    page_request: PageRequest,
    count: Callable[[], Awaitable[int]],
    strategy: CountStrategy = CountStrategy.OPTIMIZED,
) -> PageResult[T]:
    """조회된 항목과 카운트 전략으로 페이지 결과를 구성합니다.

    Assemble a ``PageResult`` from already-fetched items. ``count`` is only
    awaited when the strategy requires it.

    Args:
        items: 현재 페이지 항목 (Items of the current page)
        page_request: 페이지 요청 (Page request the items were fetched with)
        count: 전체 개수를 반환하는 코루틴 함수 (Coroutine function returning the total)
        strategy: 카운트 전략 (Count strategy)

    Returns:
        PageResult[T]: 페이지 결과 (Page result)
    """
    if strategy is CountStrategy.OPTIMIZED and can_skip_count(page_request, len(items)):
        total: int = page_request.offset + len(items)
        logger.debug("count query skipped: offset=%d size=%d", page_request.offset, len(items))
    else:
        total = await count()

    return PageResult(
        items=list(items),
        total_count=total,
        offset=page_request.offset,
        limit=page_request.limit,
    )


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    page_request: PageRequest,
    strategy: CountStrategy = CountStrategy.OPTIMIZED,
    count_query: Select[Any] | None = None,
    row_factory: Callable[[Row[Any]], Any] | None = None,
) -> PageResult[Any]:
    """SQLAlchemy 쿼리에 대한 페이지네이션을 수행합니다.

    Execute a paginated SQLAlchemy query, returning items and total count.
    The page request is validated before anything is executed. Storage
    errors propagate unchanged and no partial result is returned.

    Args:
        db: 비동기 DB 세션 (Async database session)
        query: SQLAlchemy Select 쿼리, 정렬 포함 (Base query, already ordered)
        page_request: 페이지 요청 (Offset/limit request)
        strategy: 카운트 전략 (Count strategy)
        count_query: 별도 카운트 쿼리 (Dedicated count query; defaults to
            counting the base query as a subquery)
        row_factory: 행 변환 함수 (Row mapper for multi-column selects;
            entity selects return scalars when omitted)

    Returns:
        PageResult[Any]: 페이지 결과 (Page result)
    """
    check_page_request(page_request)

    # 페이지 항목 조회 — OFFSET/LIMIT 적용 (Fetch page items with offset/limit)
    result = await db.execute(query.offset(page_request.offset).limit(page_request.limit))
    if row_factory is None:
        items: Sequence[Any] = result.scalars().all()
    else:
        items = [row_factory(row) for row in result.all()]

    if count_query is None:
        # 서브쿼리로 감싸서 COUNT 실행 (Count total via subquery)
        count_query = select(func.count()).select_from(query.order_by(None).subquery())

    async def _count() -> int:
        return (await db.execute(count_query)).scalar() or 0

    return await build_page(items, page_request, _count, strategy)
