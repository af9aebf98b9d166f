"""회원 검색 관련 Pydantic 요청/응답 스키마 정의.

Member search Pydantic request/response schema definitions.
Covers the optional search condition, the member/team projection returned
by search queries, the tutorial projections (MemberDto, UserDto), and
aggregate results.
"""

from pydantic import BaseModel, ConfigDict, field_validator


# === 검색 조건 (Search Condition) 스키마 ===

class MemberSearchCondition(BaseModel):
    """회원 검색 조건 스키마.

    Optional member search filters. Every field is independently optional;
    an absent field imposes no restriction. Blank strings are folded into
    ``None`` so ``""`` and a missing value behave the same.

    Attributes:
        username: 회원 이름 일치 (Exact username match)
        team_name: 팀 이름 일치 (Exact team name match)
        age_goe: 최소 나이, 이상 (Minimum age, inclusive)
        age_loe: 최대 나이, 이하 (Maximum age, inclusive)
    """

    model_config = ConfigDict(frozen=True)

    username: str | None = None
    team_name: str | None = None
    age_goe: int | None = None
    age_loe: int | None = None

    @field_validator("username", "team_name", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        """빈 문자열을 None으로 변환 — whitespace-only input is folded to None too."""
        if isinstance(value, str) and not value.strip():
            return None
        return value


# === 프로젝션 (Projection) 스키마 ===

class MemberTeamDto(BaseModel):
    """회원-팀 프로젝션 스키마.

    Flat read-only record combining member and team fields.
    Team fields are nullable because search queries left-join the team.

    Attributes:
        member_id: 회원 ID (Member identifier)
        username: 회원 이름 (Username)
        age: 나이 (Age)
        team_id: 팀 ID (Team identifier, nullable)
        team_name: 팀 이름 (Team name, nullable)
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    member_id: int
    username: str | None
    age: int
    team_id: int | None = None
    team_name: str | None = None


class MemberDto(BaseModel):
    """회원 이름/나이 프로젝션."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    username: str | None
    age: int


class UserDto(BaseModel):
    """별칭 프로젝션 — username을 name으로 노출 (username exposed as ``name``)."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    name: str | None
    age: int


class MemberResponse(BaseModel):
    """회원 단건 응답 스키마.

    Single member response schema.

    Attributes:
        id: 회원 ID (Member identifier)
        username: 회원 이름 (Username)
        age: 나이 (Age)
        team_id: 팀 ID (Team identifier, nullable)
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str | None
    age: int
    team_id: int | None = None


# === 집계 (Aggregation) 스키마 ===

class AgeStatistics(BaseModel):
    """회원 나이 집계 결과.

    Aggregate over member ages. ``sum``/``avg``/``max``/``min`` are ``None``
    when there are no members.
    """

    count: int
    sum: int | None = None
    avg: float | None = None
    max: int | None = None
    min: int | None = None


class TeamAverageAge(BaseModel):
    """팀별 평균 나이 — Average member age per team."""

    team_name: str
    average_age: float

