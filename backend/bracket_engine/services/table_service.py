"""
Table assignment for matches that are ready to play.

A table is busy while an in-progress match holds it. Tables are numbered
1..event.table_count.
"""

import logging
from typing import List, Optional

from sqlmodel import Session, select

from bracket_engine.exceptions import IllegalStateTransition, InvalidInput, NotFound
from bracket_engine.models.event import Event
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.services.round_service import refresh_round_statuses

logger = logging.getLogger(__name__)

READY_STATUSES = (MatchStatus.pending, MatchStatus.scheduled)


def _get_event(session: Session, event_id: int) -> Event:
    event = session.get(Event, event_id)
    if event is None:
        raise NotFound(f"Event {event_id} not found")
    return event


def get_available_tables(session: Session, event_id: int) -> List[int]:
    """Table numbers not held by an in-progress match, ascending."""
    event = _get_event(session, event_id)
    in_use = session.exec(
        select(Match.table_number).where(
            Match.event_id == event_id,
            Match.status == MatchStatus.in_progress,
            Match.table_number.is_not(None),
        )
    ).all()
    used = set(in_use)
    return [n for n in range(1, event.table_count + 1) if n not in used]


def _check_ready(match: Match) -> None:
    if match.is_bye:
        raise IllegalStateTransition(f"Match {match.id} is a bye and is never played")
    if match.status not in READY_STATUSES:
        raise IllegalStateTransition(f"Match {match.id} is {match.status}, cannot start")
    if match.team1_id is None or match.team2_id is None:
        raise IllegalStateTransition(f"Match {match.id} is waiting for teams")


def assign_table(session: Session, match_id: int, table_number: int) -> Match:
    """
    Put a ready match on a free table and mark it in progress.

    Raises:
        NotFound: Match does not exist
        InvalidInput: Table number outside 1..table_count
        IllegalStateTransition: Match not ready, or table busy
    """
    match = session.get(Match, match_id)
    if match is None:
        raise NotFound(f"Match {match_id} not found")
    event = _get_event(session, match.event_id)
    if table_number < 1 or table_number > event.table_count:
        raise InvalidInput(f"Table {table_number} outside 1..{event.table_count}")
    _check_ready(match)
    if table_number not in get_available_tables(session, match.event_id):
        raise IllegalStateTransition(f"Table {table_number} is in use")

    match.table_number = table_number
    match.status = MatchStatus.in_progress
    session.add(match)
    refresh_round_statuses(session, match.event_id)
    session.commit()
    session.refresh(match)
    logger.info("Match %d started on table %d", match.id, table_number)
    return match


def auto_assign_tables(session: Session, event_id: int) -> int:
    """
    Fill free tables with ready matches in schedule order.

    Ready: both teams present, pending or scheduled, no table, not a bye.
    Ordered by (scheduled_round, match_number).

    Returns:
        Number of matches started
    """
    available = get_available_tables(session, event_id)
    if not available:
        return 0

    candidates = session.exec(
        select(Match)
        .where(
            Match.event_id == event_id,
            Match.team1_id.is_not(None),
            Match.team2_id.is_not(None),
            Match.table_number.is_(None),
            Match.is_bye == False,  # noqa: E712
        )
        .order_by(Match.scheduled_round, Match.match_number, Match.id)
    ).all()
    ready = [m for m in candidates if m.status in READY_STATUSES]

    assigned = 0
    for match, table_number in zip(ready, available):
        match.table_number = table_number
        match.status = MatchStatus.in_progress
        session.add(match)
        assigned += 1

    if assigned:
        refresh_round_statuses(session, event_id)
        session.commit()
        logger.info("Auto-assigned %d tables for event %d", assigned, event_id)
    return assigned


def free_table(session: Session, match_id: int) -> Match:
    """Release a match's table (typically once it is completed)."""
    match = session.get(Match, match_id)
    if match is None:
        raise NotFound(f"Match {match_id} not found")
    match.table_number = None
    session.add(match)
    session.commit()
    session.refresh(match)
    return match


def get_current_playing_round(session: Session, event_id: int) -> Optional[int]:
    """
    Playing round of the first in-progress match, else the lowest playing
    round still waiting to be played. None when nothing remains.
    """
    matches = session.exec(
        select(Match)
        .where(Match.event_id == event_id, Match.is_bye == False)  # noqa: E712
        .order_by(Match.scheduled_round, Match.match_number)
    ).all()

    in_progress = [m for m in matches if m.status == MatchStatus.in_progress]
    if in_progress:
        return in_progress[0].scheduled_round
    upcoming = [m for m in matches if m.status in READY_STATUSES]
    if upcoming:
        return upcoming[0].scheduled_round
    return None
