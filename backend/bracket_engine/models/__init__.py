from bracket_engine.models.event import Event, EventMode, EventStatus, KnockoutMode
from bracket_engine.models.event_log import EventLogEntry
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.round import Round, RoundPhase, RoundStatus
from bracket_engine.models.team import Team, TeamStatus

__all__ = [
    "Event",
    "EventMode",
    "EventStatus",
    "KnockoutMode",
    "EventLogEntry",
    "Match",
    "MatchStatus",
    "Round",
    "RoundPhase",
    "RoundStatus",
    "Team",
    "TeamStatus",
]
