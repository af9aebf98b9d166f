"""회원 및 팀 관련 SQLAlchemy ORM 모델 정의.

Member and Team SQLAlchemy ORM model definitions.
A member optionally belongs to one team; a team has many members.

Relationships are declared with ``lazy="raise"``: related rows are never
loaded implicitly, so every query that needs team data must request it
with an explicit join or loader option.

Tables:
    - teams: 팀 (Teams)
    - members: 회원 (Members, optional team membership)
"""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memberquery.database import Base


class Team(Base):
    """팀 모델.

    Team model — Groups members under a display name.

    Attributes:
        id: 고유 식별자 (Autoincrement primary key)
        name: 팀 이름 (Team display name)

    Relationships:
        members: 소속 회원 목록 (Members belonging to this team)
    """

    __tablename__ = "teams"

    # 팀 고유 식별자 — Team identifier (autoincrement)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 팀 이름 — Team display name
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # 관계 — Relationships
    members = relationship("Member", back_populates="team", lazy="raise", passive_deletes=True)

    def __repr__(self) -> str:
        return f"Team(id={self.id!r}, name={self.name!r})"


class Member(Base):
    """회원 모델.

    Member model — A person with a username and an age, optionally on a team.
    Insertion order follows the autoincrement id, which list queries use
    as their stable ordering key.

    Attributes:
        id: 고유 식별자 (Autoincrement primary key)
        username: 회원 이름 (Username, nullable)
        age: 나이 (Age)
        team_id: 소속 팀 FK (Team foreign key, nullable)

    Relationships:
        team: 소속 팀 (Owning team, explicit fetch only)
    """

    __tablename__ = "members"

    # 회원 고유 식별자 — Member identifier (autoincrement, insertion order)
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # 회원 이름 — Username (NULL 허용, nullable)
    username: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    # 나이 — Age
    age: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # 소속 팀 FK — Team (팀 삭제 시 NULL, set to NULL when the team is deleted)
    team_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)

    # 관계 — Relationships
    team = relationship("Team", back_populates="members", lazy="raise")

    def __repr__(self) -> str:
        return f"Member(id={self.id!r}, username={self.username!r}, age={self.age!r})"
