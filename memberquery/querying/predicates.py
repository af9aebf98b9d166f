"""회원 검색 조건 → 조건식 변환 모듈.

Builds a ``Predicate`` from a ``MemberSearchCondition`` and holds the
catalog that maps expression field names to ORM columns.
"""

from typing import Any

from sqlalchemy import ColumnElement

from memberquery.models.member import Member, Team
from memberquery.querying.expressions import Clause, Predicate, member, team
from memberquery.schemas.member import MemberSearchCondition

# 필드 카탈로그 — 표현식 필드 이름과 ORM 컬럼 매핑
# Field catalog for the member LEFT JOIN team query shape
MEMBER_CATALOG: dict[str, ColumnElement[Any]] = {
    member.id.name: Member.id,
    member.username.name: Member.username,
    member.age.name: Member.age,
    member.team_id.name: Member.team_id,
    team.id.name: Team.id,
    team.name.name: Team.name,
}


def username_eq(username: str | None) -> Clause | None:
    return member.username.eq(username) if username else None


def team_name_eq(team_name: str | None) -> Clause | None:
    return team.name.eq(team_name) if team_name else None


def age_goe(age: int | None) -> Clause | None:
    return member.age.gte(age) if age is not None else None


def age_loe(age: int | None) -> Clause | None:
    return member.age.lte(age) if age is not None else None


def build_member_predicate(condition: MemberSearchCondition) -> Predicate:
    """검색 조건을 조건식으로 변환합니다.

    Emit one clause per present field, in the order username, team name,
    minimum age, maximum age. Absent fields contribute nothing, and a
    condition with no fields yields the empty (match-all) predicate.
    Never raises.
    """
    return Predicate.of(
        username_eq(condition.username),
        team_name_eq(condition.team_name),
        age_goe(condition.age_goe),
        age_loe(condition.age_loe),
    )
