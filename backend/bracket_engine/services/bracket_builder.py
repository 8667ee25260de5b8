"""
Bracket Builder

Session-level orchestration around the pure generators:

build_bracket:
  1. Load event and active teams, rank them into a seed list
  2. Replace existing rounds/matches for the event
  3. Generate the graph for the event's mode
  4. Assign playing schedule for the event's table count
  5. Persist rounds and matches, swapping graph keys for database ids
  6. Single commit, then resolve byes to a fixed point

build_knockout_phase:
  Same pipeline for the knockout that follows a completed group phase, with
  round numbers, match numbers and playing rounds offset past the existing
  group phase.
"""

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel
from sqlmodel import Session, select

from bracket_engine.exceptions import IllegalStateTransition, InvalidInput, NotFound
from bracket_engine.models.event import Event, EventMode, EventStatus, KnockoutMode
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.round import Round, RoundPhase
from bracket_engine.models.team import Team, TeamStatus
from bracket_engine.services.bracket_graph import BracketGraph
from bracket_engine.services.double_elimination import generate_double_elimination
from bracket_engine.services.event_log import (
    ACTION_BRACKET_GENERATED,
    ACTION_KNOCKOUT_GENERATED,
    log_event,
)
from bracket_engine.services.group_phase import generate_group_phase
from bracket_engine.services.knockout import generate_knockout_from_groups
from bracket_engine.services.progression import resolve_byes
from bracket_engine.services.scheduler import assign_schedule
from bracket_engine.services.single_elimination import generate_single_elimination
from bracket_engine.services.standings import are_all_group_matches_completed, compute_event_group_standings
from bracket_engine.utils.seeding import TeamSeed

logger = logging.getLogger(__name__)

DEFAULT_GROUP_COUNT = 2
DEFAULT_TEAMS_ADVANCE_PER_GROUP = 2


class BuildSummary(BaseModel):
    event_id: int
    rounds: int
    matches: int
    byes_resolved: int
    advancing_teams: Optional[int] = None


def rank_team_seeds(teams: List[Team]) -> List[TeamSeed]:
    """
    Seed list from team rows: seeded teams by seed, then unseeded by id.

    Seeds are renumbered 1..n so gaps and missing seeds never leave holes.
    """
    ordered = sorted(teams, key=lambda t: (t.seed is None, t.seed if t.seed is not None else 0, t.id))
    return [TeamSeed(id=t.id, seed=i + 1, name=t.name) for i, t in enumerate(ordered)]


def persist_graph(session: Session, event_id: int, graph: BracketGraph) -> Dict[str, Match]:
    """Insert rounds and matches for a graph; returns matches keyed by bracket position."""
    rounds_by_key: Dict[str, Round] = {}
    for graph_round in graph.rounds:
        round_ = Round(
            event_id=event_id,
            round_number=graph_round.round_number,
            phase=graph_round.phase,
            name=graph_round.name,
        )
        session.add(round_)
        rounds_by_key[graph_round.key] = round_
    session.flush()

    matches_by_key: Dict[str, Match] = {}
    for gm in graph.matches.values():
        match = Match(
            event_id=event_id,
            round_id=rounds_by_key[gm.round_key].id,
            match_number=gm.match_number,
            team1_id=gm.team1_id,
            team2_id=gm.team2_id,
            is_bye=gm.is_bye,
            status=MatchStatus.pending,
            scheduled_round=gm.scheduled_round,
            bracket_position=gm.key,
            group_id=gm.group_id,
        )
        session.add(match)
        matches_by_key[gm.key] = match
    session.flush()

    # Edges need every id assigned first
    for gm in graph.matches.values():
        match = matches_by_key[gm.key]
        if gm.next_key is not None:
            match.next_match_id = matches_by_key[gm.next_key].id
        if gm.loser_next_key is not None:
            match.loser_next_match_id = matches_by_key[gm.loser_next_key].id
        session.add(match)

    return matches_by_key


def _delete_event_graph(session: Session, event_id: int) -> None:
    matches = session.exec(select(Match).where(Match.event_id == event_id)).all()
    for match in matches:
        match.next_match_id = None
        match.loser_next_match_id = None
        session.add(match)
    session.flush()
    for match in matches:
        session.delete(match)
    session.flush()
    for round_ in session.exec(select(Round).where(Round.event_id == event_id)).all():
        session.delete(round_)
    session.flush()


def build_bracket(session: Session, event_id: int) -> BuildSummary:
    """
    Generate, schedule and persist the bracket for an event's mode.

    Existing rounds and matches of the event are replaced.

    Raises:
        NotFound: Event does not exist
        InvalidInput: Fewer than two active teams, or too few for the group count
    """
    event = session.get(Event, event_id)
    if event is None:
        raise NotFound(f"Event {event_id} not found")

    teams = session.exec(
        select(Team).where(Team.event_id == event_id, Team.status == TeamStatus.active).order_by(Team.id)
    ).all()
    if len(teams) < 2:
        raise InvalidInput(f"Need at least 2 active teams, event {event_id} has {len(teams)}")
    seeds = rank_team_seeds(list(teams))

    # Generate before touching the database so invalid input leaves it intact
    mode = EventMode(event.mode)
    if mode == EventMode.single_elimination:
        graph = generate_single_elimination(seeds)
    elif mode == EventMode.double_elimination:
        graph = generate_double_elimination(seeds)
    elif mode == EventMode.group:
        graph = generate_group_phase(seeds, event.group_count or DEFAULT_GROUP_COUNT)
    else:
        raise InvalidInput(f"Unsupported event mode {event.mode}")

    assign_schedule(graph, event.table_count)

    try:
        _delete_event_graph(session, event_id)
        persist_graph(session, event_id, graph)

        for team in teams:
            team.group_id = graph.team_groups.get(team.id)
            session.add(team)

        event.status = EventStatus.active
        session.add(event)
        log_event(
            session,
            event_id,
            ACTION_BRACKET_GENERATED,
            {"mode": mode.value, "team_count": len(seeds)},
        )
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Bracket build failed for event %d, transaction rolled back", event_id)
        raise

    byes_resolved = resolve_byes(session, event_id)

    logger.info(
        "Built %s bracket for event %d: %d rounds, %d matches",
        mode.value,
        event_id,
        len(graph.rounds),
        len(graph.matches),
    )
    return BuildSummary(
        event_id=event_id,
        rounds=len(graph.rounds),
        matches=len(graph.matches),
        byes_resolved=byes_resolved,
    )


def build_knockout_phase(session: Session, event_id: int) -> BuildSummary:
    """
    Append the knockout bracket after a completed group phase.

    Raises:
        NotFound: Event does not exist
        IllegalStateTransition: Not a group event, group matches unfinished,
            or knockout rounds already exist
        InvalidInput: Fewer than two qualifiers
    """
    event = session.get(Event, event_id)
    if event is None:
        raise NotFound(f"Event {event_id} not found")
    if EventMode(event.mode) != EventMode.group:
        raise IllegalStateTransition(f"Event {event_id} is not in group mode")

    rounds = session.exec(select(Round).where(Round.event_id == event_id)).all()
    if any(r.phase != RoundPhase.group for r in rounds):
        raise IllegalStateTransition(f"Knockout rounds already exist for event {event_id}")

    matches = session.exec(select(Match).where(Match.event_id == event_id)).all()
    if not are_all_group_matches_completed(matches):
        raise IllegalStateTransition(f"Not all group matches are completed for event {event_id}")

    disqualified = set(
        session.exec(
            select(Team.id).where(Team.event_id == event_id, Team.status == TeamStatus.disqualified)
        ).all()
    )
    standings = {
        group_id: [s for s in group_standings if s.team_id not in disqualified]
        for group_id, group_standings in compute_event_group_standings(session, event_id).items()
    }

    advance = event.teams_advance_per_group or DEFAULT_TEAMS_ADVANCE_PER_GROUP
    knockout_mode = KnockoutMode(event.knockout_mode or KnockoutMode.single_elimination)
    max_round = max((r.round_number for r in rounds), default=0)
    graph = generate_knockout_from_groups(standings, advance, knockout_mode, round_offset=max_round)

    max_match_number = max((m.match_number for m in matches), default=0)
    max_playing_round = max((m.scheduled_round or 0 for m in matches), default=0)
    assign_schedule(
        graph,
        event.table_count,
        first_match_number=max_match_number + 1,
        first_playing_round=max_playing_round + 1,
    )

    advancing = len({m.team1_id for m in graph.matches.values() if m.team1_id} | {
        m.team2_id for m in graph.matches.values() if m.team2_id
    })

    try:
        persist_graph(session, event_id, graph)
        log_event(
            session,
            event_id,
            ACTION_KNOCKOUT_GENERATED,
            {"knockout_mode": knockout_mode.value, "advancing_teams": advancing},
        )
        session.commit()
    except Exception:
        session.rollback()
        logger.exception("Knockout build failed for event %d, transaction rolled back", event_id)
        raise

    byes_resolved = resolve_byes(session, event_id)

    return BuildSummary(
        event_id=event_id,
        rounds=len(graph.rounds),
        matches=len(graph.matches),
        byes_resolved=byes_resolved,
        advancing_teams=advancing,
    )
