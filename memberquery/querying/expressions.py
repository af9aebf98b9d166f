"""필드/연산자 기반 쿼리 표현식 모듈.

Field and operator based query expression module.
Expresses filter and sort intent over named entity fields using a small,
closed operator set (eq, ne, lt, lte, gt, gte, between). Expressions are
frozen value objects: two predicates built from the same input compare
equal, and nothing here touches a database.

Translation to SQL happens at the edge through ``to_sql(catalog)``, where
``catalog`` maps field names (``"member.age"``) to SQLAlchemy columns.

Usage:
    from memberquery.querying.expressions import member

    predicate = member.age.between(20, 40) & member.username.ne("member1")
    stmt = select(Member).where(predicate.to_sql(MEMBER_CATALOG))
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy import ColumnElement, and_, true

from memberquery.utils.exceptions import InvalidArgumentError

# 필드 이름 → SQLAlchemy 컬럼 매핑 — Field name to column mapping
Catalog = Mapping[str, ColumnElement[Any]]


class Operator(str, Enum):
    """비교 연산자 — Closed set of comparison operators."""

    EQ = "eq"
    NE = "ne"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    BETWEEN = "between"


def _resolve(catalog: Catalog, field_name: str) -> ColumnElement[Any]:
    try:
        return catalog[field_name]
    except KeyError:
        raise InvalidArgumentError(f"Unknown field: {field_name}") from None


@dataclass(frozen=True)
class Clause:
    """단일 비교 조건.

    A single comparison of one field against a value.
    For ``BETWEEN`` the value is an inclusive ``(low, high)`` tuple.
    """

    field: str
    op: Operator
    value: Any

    def __and__(self, other: Clause | Predicate) -> Predicate:
        return Predicate((self,)) & other

    def to_sql(self, catalog: Catalog) -> ColumnElement[bool]:
        column = _resolve(catalog, self.field)
        if self.op is Operator.EQ:
            return column == self.value
        if self.op is Operator.NE:
            return column != self.value
        if self.op is Operator.LT:
            return column < self.value
        if self.op is Operator.LTE:
            return column <= self.value
        if self.op is Operator.GT:
            return column > self.value
        if self.op is Operator.GTE:
            return column >= self.value
        low, high = self.value
        return column.between(low, high)


@dataclass(frozen=True)
class Predicate:
    """AND으로 결합된 조건 목록.

    Ordered conjunction of clauses. An empty predicate matches every row.
    """

    clauses: tuple[Clause, ...] = ()

    @classmethod
    def of(cls, *clauses: Clause | None) -> Predicate:
        """None 항목을 제외하고 조건을 결합합니다.

        Conjoin the given clauses, skipping ``None`` entries so optional
        filters can be passed without guard clauses.
        """
        return cls(tuple(c for c in clauses if c is not None))

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    def __and__(self, other: Clause | Predicate) -> Predicate:
        if isinstance(other, Clause):
            return Predicate(self.clauses + (other,))
        return Predicate(self.clauses + other.clauses)

    def to_sql(self, catalog: Catalog) -> ColumnElement[bool]:
        """SQLAlchemy 불리언 표현식으로 변환합니다.

        Translate to a SQLAlchemy boolean expression. An empty predicate
        becomes ``true()`` so it can be passed to ``where()`` unconditionally.
        """
        if self.is_empty:
            return true()
        return and_(*(clause.to_sql(catalog) for clause in self.clauses))


@dataclass(frozen=True)
class SortOrder:
    """정렬 기준 — Sort key on one field."""

    field: str
    descending: bool = False
    nulls_last: bool = False

    def to_sql(self, catalog: Catalog) -> ColumnElement[Any]:
        column = _resolve(catalog, self.field)
        ordered = column.desc() if self.descending else column.asc()
        return ordered.nulls_last() if self.nulls_last else ordered


@dataclass(frozen=True)
class Field:
    """이름이 지정된 엔티티 필드.

    A named entity field. Each comparison method returns a ``Clause``.
    """

    name: str

    def eq(self, value: Any) -> Clause:
        return Clause(self.name, Operator.EQ, value)

    def ne(self, value: Any) -> Clause:
        return Clause(self.name, Operator.NE, value)

    def lt(self, value: Any) -> Clause:
        return Clause(self.name, Operator.LT, value)

    def lte(self, value: Any) -> Clause:
        return Clause(self.name, Operator.LTE, value)

    def gt(self, value: Any) -> Clause:
        return Clause(self.name, Operator.GT, value)

    def gte(self, value: Any) -> Clause:
        return Clause(self.name, Operator.GTE, value)

    def between(self, low: Any, high: Any) -> Clause:
        return Clause(self.name, Operator.BETWEEN, (low, high))

    def asc(self, nulls_last: bool = False) -> SortOrder:
        return SortOrder(self.name, descending=False, nulls_last=nulls_last)

    def desc(self, nulls_last: bool = False) -> SortOrder:
        return SortOrder(self.name, descending=True, nulls_last=nulls_last)


class MemberPath:
    """회원 엔티티 필드 — Fields of the member entity."""

    id = Field("member.id")
    username = Field("member.username")
    age = Field("member.age")
    team_id = Field("member.team_id")


class TeamPath:
    """팀 엔티티 필드 — Fields of the team entity."""

    id = Field("team.id")
    name = Field("team.name")


member = MemberPath()
team = TeamPath()
