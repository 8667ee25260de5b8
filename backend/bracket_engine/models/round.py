from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.event import Event
    from bracket_engine.models.match import Match


class RoundPhase(str, Enum):
    group = "group"
    winners = "winners"
    losers = "losers"
    finals = "finals"


class RoundStatus(str, Enum):
    pending = "pending"
    active = "active"
    completed = "completed"


class Round(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("event_id", "round_number", name="uq_event_round_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    round_number: int  # Event-scoped, establishes global ordering
    phase: RoundPhase = Field(sa_column=Column(String, nullable=False))
    name: str
    status: RoundStatus = Field(default=RoundStatus.pending, sa_column=Column(String, nullable=False))

    # Relationships
    event: "Event" = Relationship(back_populates="rounds")
    matches: List["Match"] = Relationship(back_populates="round")
