"""
Event and team registration with validated payloads.

Disqualification goes through the progression engine so that forfeits are
applied; a disqualified team can never be reactivated.
"""

import logging
from typing import List, Optional

from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from bracket_engine.exceptions import IllegalStateTransition, InvalidInput, NotFound
from bracket_engine.models.event import Event, EventMode, KnockoutMode
from bracket_engine.models.team import Team, TeamStatus
from bracket_engine.services.progression import disqualify_team

logger = logging.getLogger(__name__)

MAX_TABLES = 20
MIN_GROUPS, MAX_GROUPS = 2, 16
MIN_ADVANCE, MAX_ADVANCE = 1, 8


class EventCreate(BaseModel):
    name: str
    mode: EventMode
    table_count: int = 1
    group_count: Optional[int] = None
    teams_advance_per_group: Optional[int] = None
    knockout_mode: Optional[KnockoutMode] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v or len(v) > 100:
            raise ValueError("name must be 1-100 characters")
        return v

    @field_validator("table_count")
    @classmethod
    def validate_table_count(cls, v):
        if v < 1 or v > MAX_TABLES:
            raise ValueError(f"table_count must be between 1 and {MAX_TABLES}")
        return v

    @model_validator(mode="after")
    def validate_group_settings(self):
        if self.group_count is not None and not MIN_GROUPS <= self.group_count <= MAX_GROUPS:
            raise ValueError(f"group_count must be between {MIN_GROUPS} and {MAX_GROUPS}")
        if self.teams_advance_per_group is not None and not MIN_ADVANCE <= self.teams_advance_per_group <= MAX_ADVANCE:
            raise ValueError(f"teams_advance_per_group must be between {MIN_ADVANCE} and {MAX_ADVANCE}")
        return self


class TeamCreate(BaseModel):
    name: str
    seed: Optional[int] = None

    @field_validator("seed")
    @classmethod
    def validate_seed(cls, v):
        if v is not None and v < 1:
            raise ValueError("seed must be >= 1")
        return v


def create_event(session: Session, payload: EventCreate) -> Event:
    event = Event(
        name=payload.name,
        mode=payload.mode,
        table_count=payload.table_count,
        group_count=payload.group_count,
        teams_advance_per_group=payload.teams_advance_per_group,
        knockout_mode=payload.knockout_mode,
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    logger.info("Created %s event %d (%s)", EventMode(event.mode).value, event.id, event.name)
    return event


def add_team(session: Session, event_id: int, payload: TeamCreate) -> Team:
    """
    Register a team in an event.

    Raises:
        NotFound: Event does not exist
        InvalidInput: Duplicate name or seed within the event
    """
    if session.get(Event, event_id) is None:
        raise NotFound(f"Event {event_id} not found")

    team = Team(event_id=event_id, name=payload.name, seed=payload.seed)
    session.add(team)
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        raise InvalidInput(f"Team name or seed already used in event {event_id}") from exc
    session.refresh(team)
    return team


def list_teams(session: Session, event_id: int) -> List[Team]:
    return session.exec(select(Team).where(Team.event_id == event_id).order_by(Team.id)).all()


def set_team_status(session: Session, team_id: int, status: TeamStatus) -> Team:
    """
    Change a team's lifecycle status.

    Raises:
        NotFound: Team does not exist
        IllegalStateTransition: Reactivating a disqualified team
    """
    team = session.get(Team, team_id)
    if team is None:
        raise NotFound(f"Team {team_id} not found")

    status = TeamStatus(status)
    current = TeamStatus(team.status)
    if current == status:
        return team
    if current == TeamStatus.disqualified:
        raise IllegalStateTransition(f"Team {team_id} is disqualified and cannot return to active")

    disqualify_team(session, team_id, team.event_id)
    session.refresh(team)
    return team
