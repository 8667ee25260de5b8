from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from bracket_engine.models.event import Event
    from bracket_engine.models.round import Round


class MatchStatus(str, Enum):
    pending = "pending"
    scheduled = "scheduled"
    in_progress = "in_progress"
    completed = "completed"


class Match(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    round_id: int = Field(foreign_key="round.id", index=True)
    match_number: int = Field(default=0)  # Global sequence; 0 = bye (never scheduled)

    # Team slots (nullable - populated by generation or progression)
    team1_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team2_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team1_score: Optional[int] = Field(default=None)
    team2_score: Optional[int] = Field(default=None)
    winner_id: Optional[int] = Field(default=None, foreign_key="team.id")

    is_bye: bool = Field(default=False)
    status: MatchStatus = Field(default=MatchStatus.pending, sa_column=Column(String, nullable=False))
    table_number: Optional[int] = Field(default=None)
    scheduled_round: Optional[int] = Field(default=None)  # Playing round; 0 = bye
    bracket_position: Optional[str] = Field(default=None)  # W-R1-M1 | L-R2-M1 | GF-M1 | GA-R1-M1

    # Graph edges: winner advances to next_match_id, loser drops to loser_next_match_id
    next_match_id: Optional[int] = Field(default=None, foreign_key="match.id")
    loser_next_match_id: Optional[int] = Field(default=None, foreign_key="match.id")

    group_id: Optional[str] = Field(default=None, index=True)

    # Relationships
    event: "Event" = Relationship(back_populates="matches")
    round: "Round" = Relationship(back_populates="matches")

    @property
    def team_ids(self) -> list:
        return [t for t in (self.team1_id, self.team2_id) if t is not None]

    @property
    def loser_id(self) -> Optional[int]:
        if self.winner_id is None:
            return None
        if self.winner_id == self.team1_id:
            return self.team2_id
        if self.winner_id == self.team2_id:
            return self.team1_id
        return None
