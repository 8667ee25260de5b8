from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.match import Match
    from bracket_engine.models.round import Round
    from bracket_engine.models.team import Team


class EventMode(str, Enum):
    group = "group"
    single_elimination = "single_elimination"
    double_elimination = "double_elimination"


class KnockoutMode(str, Enum):
    single_elimination = "single_elimination"
    double_elimination = "double_elimination"


class EventStatus(str, Enum):
    draft = "draft"
    active = "active"
    completed = "completed"


class Event(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    mode: EventMode = Field(sa_column=Column(String, nullable=False))
    status: EventStatus = Field(default=EventStatus.draft, sa_column=Column(String, nullable=False))
    table_count: int = Field(default=1)

    # Group mode settings (defaults applied at build time when null)
    group_count: Optional[int] = Field(default=None)
    teams_advance_per_group: Optional[int] = Field(default=None)
    knockout_mode: Optional[KnockoutMode] = Field(default=None, sa_column=Column(String, nullable=True))

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    teams: List["Team"] = Relationship(back_populates="event")
    rounds: List["Round"] = Relationship(back_populates="event")
    matches: List["Match"] = Relationship(back_populates="event")
