from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.event import Event


class TeamStatus(str, Enum):
    active = "active"
    disqualified = "disqualified"


class Team(SQLModel, table=True):
    __table_args__ = (
        # Enforce unique seeds within an event (where seed is not null)
        SAUniqueConstraint("event_id", "seed", name="uq_event_seed"),
        SAUniqueConstraint("event_id", "name", name="uq_event_team_name"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    name: str
    seed: Optional[int] = Field(default=None)  # 1-based seed (1=strongest)
    status: TeamStatus = Field(default=TeamStatus.active, sa_column=Column(String, nullable=False))

    # Assigned by group-phase generation, e.g. "group-A"
    group_id: Optional[str] = Field(default=None, index=True)

    # Relationships
    event: "Event" = Relationship(back_populates="teams")
