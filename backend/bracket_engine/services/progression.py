"""
Match Progression Engine

Runtime state machine over a persisted event graph:
    pending -> (scheduled -> in_progress ->)? completed
    completed -> pending only through clear_result

Advancement follows graph edges:
- winner -> first empty slot of next_match_id (team1 preferred)
- loser  -> first empty slot of loser_next_match_id (double elimination)
- disqualified teams are never placed downstream

Cascades (byes, walkovers, forfeits) run as an explicit work queue until no
resolvable match remains. A knockout match is resolvable when it is a
pending bye, or when every feeder is completed but it still holds fewer than
two teams. Byes complete 0-0 for their lone team. The second case is a
walkover: it completes 0-0 for the lone team (or with no winner when empty)
but is not flagged is_bye and keeps its schedule numbers. This also closes
the grand-finals reset when it is not needed.

Grand-finals reset rule:
- the winners-side finalist is the winner of the winners-phase match feeding
  grand finals through next_match_id
- if the losers-side finalist wins grand finals against an active
  winners-side finalist, both are placed in the reset (winners-side as
  team1); otherwise the reset stays empty and is closed as a walkover

clear_result undoes what the cascade built on top of the cleared match:
walkovers it closed are reopened and forfeit walkovers it credited are taken
back, following placements downstream until a pending match is reached. A
placement into a match that was actually played blocks the clear.

Every call validates before mutating and commits once; on any error the
session is rolled back. Callers serialize calls per event.
"""

import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Set, Tuple

from pydantic import BaseModel, ValidationError, model_validator
from sqlmodel import Session, select

from bracket_engine.exceptions import IllegalStateTransition, InvalidInput, NotFound
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.round import Round, RoundPhase
from bracket_engine.models.team import Team, TeamStatus
from bracket_engine.services.event_log import (
    ACTION_RESULT_CLEARED,
    ACTION_RESULT_RECORDED,
    ACTION_TEAM_DISQUALIFIED,
    log_event,
)
from bracket_engine.services.round_service import refresh_round_statuses

logger = logging.getLogger(__name__)


class MatchResultInput(BaseModel):
    team1_score: int
    team2_score: int

    @model_validator(mode="after")
    def validate_scores(self):
        if self.team1_score < 0 or self.team2_score < 0:
            raise ValueError("Scores must be >= 0")
        if self.team1_score == self.team2_score:
            raise ValueError("Scores cannot be equal - there must be a winner")
        return self


# ============================================================================
# Event graph arena
# ============================================================================

class EventGraph:
    """Id-indexed view of one event's matches, rounds and disqualified teams."""

    def __init__(self, session: Session, event_id: int):
        self.event_id = event_id
        matches = session.exec(
            select(Match).where(Match.event_id == event_id).order_by(Match.id)
        ).all()
        rounds = session.exec(select(Round).where(Round.event_id == event_id)).all()
        self.matches: Dict[int, Match] = {m.id: m for m in matches}
        self.round_by_id: Dict[int, Round] = {r.id: r for r in rounds}
        self.disqualified: Set[int] = set(
            session.exec(
                select(Team.id).where(Team.event_id == event_id, Team.status == TeamStatus.disqualified)
            ).all()
        )

        self.feeders: Dict[int, List[int]] = {}
        for match in matches:
            for target in (match.next_match_id, match.loser_next_match_id):
                if target is not None:
                    self.feeders.setdefault(target, []).append(match.id)

    def phase(self, match: Match) -> Optional[RoundPhase]:
        round_ = self.round_by_id.get(match.round_id)
        return RoundPhase(round_.phase) if round_ is not None else None

    def ordered(self) -> List[Match]:
        """Matches in bracket order: round number, then match number, then id."""
        def key(m: Match):
            round_ = self.round_by_id.get(m.round_id)
            return (round_.round_number if round_ else 0, m.match_number, m.id)

        return sorted(self.matches.values(), key=key)

    def is_grand_final(self, match: Match) -> bool:
        if match.next_match_id is None or self.phase(match) != RoundPhase.finals:
            return False
        target = self.matches.get(match.next_match_id)
        return target is not None and self.phase(target) == RoundPhase.finals

    def winners_side_finalist(self, grand_final: Match) -> Optional[int]:
        for feeder_id in self.feeders.get(grand_final.id, []):
            feeder = self.matches[feeder_id]
            if feeder.next_match_id == grand_final.id and self.phase(feeder) == RoundPhase.winners:
                return feeder.winner_id
        return None


def _place_team(graph: EventGraph, target_id: int, team_id: int, queue: Deque[int]) -> None:
    """Put team_id into the first empty slot of target_id."""
    if team_id in graph.disqualified:
        return
    target = graph.matches.get(target_id)
    if target is None:
        return
    if team_id in (target.team1_id, target.team2_id):
        return
    if target.team1_id is None:
        target.team1_id = team_id
    elif target.team2_id is None:
        target.team2_id = team_id
    else:
        raise IllegalStateTransition(f"Match {target.id} has no open slot for team {team_id}")

    # A forfeit with no opponent left the slot open: the arriving team takes the walkover
    if target.status == MatchStatus.completed and target.winner_id is None and _holds_disqualified(graph, target):
        target.winner_id = team_id
        queue.append(target.id)
        logger.debug("Team %d credited walkover in match %d", team_id, target.id)


def _holds_disqualified(graph: EventGraph, match: Match) -> bool:
    return bool(graph.disqualified.intersection(match.team_ids))


def _advance(graph: EventGraph, match: Match, queue: Deque[int]) -> None:
    if match.winner_id is not None and match.next_match_id is not None:
        if graph.is_grand_final(match):
            winners_side = graph.winners_side_finalist(match)
            if (
                winners_side is not None
                and winners_side not in graph.disqualified
                and match.winner_id != winners_side
            ):
                _place_team(graph, match.next_match_id, winners_side, queue)
                _place_team(graph, match.next_match_id, match.winner_id, queue)
        else:
            _place_team(graph, match.next_match_id, match.winner_id, queue)

    loser_id = match.loser_id
    if loser_id is not None and match.loser_next_match_id is not None:
        _place_team(graph, match.loser_next_match_id, loser_id, queue)


def _is_resolvable(graph: EventGraph, match: Match) -> bool:
    if match.status == MatchStatus.completed:
        return False
    if match.is_bye:
        return True
    if match.group_id is not None:
        return False
    feeder_ids = graph.feeders.get(match.id, [])
    if not feeder_ids:
        return False
    if any(graph.matches[f].status != MatchStatus.completed for f in feeder_ids):
        return False
    return match.team1_id is None or match.team2_id is None


def _close_unplayed(graph: EventGraph, match: Match) -> None:
    """Complete a bye or walkover 0-0 for its lone active team (no winner when empty)."""
    present = [t for t in (match.team1_id, match.team2_id) if t is not None and t not in graph.disqualified]
    match.status = MatchStatus.completed
    match.team1_score = 0
    match.team2_score = 0
    match.winner_id = present[0] if len(present) == 1 else None
    logger.debug(
        "Resolved match %d (%s) as %s, winner=%s",
        match.id,
        match.bracket_position,
        "bye" if match.is_bye else "walkover",
        match.winner_id,
    )


def _is_walkover(graph: EventGraph, match: Match) -> bool:
    """Completed by the cascade for lack of teams rather than played."""
    return (
        match.status == MatchStatus.completed
        and not match.is_bye
        and len(match.team_ids) < 2
        and not _holds_disqualified(graph, match)
    )


def _is_credited_forfeit(graph: EventGraph, match: Match, team_id: int) -> bool:
    """A forfeit whose open slot was later filled by team_id, who took the walkover."""
    if match.status != MatchStatus.completed or match.winner_id != team_id:
        return False
    other = match.team2_id if match.team1_id == team_id else match.team1_id
    return other is not None and other in graph.disqualified


def _outgoing(match: Match) -> List[Tuple[Optional[int], Optional[int]]]:
    """(target match, team placed there) for each edge a completed match fed."""
    edges = [(match.next_match_id, match.winner_id), (match.loser_next_match_id, match.loser_id)]
    if match.winner_id is not None and match.loser_id is not None:
        # Grand finals may have placed both finalists in the reset
        edges.append((match.next_match_id, match.loser_id))
    return edges


class UndoPlan:
    """Changes clear_result applies once every downstream placement checks out."""

    def __init__(self):
        self.removals: List[Tuple[Match, int]] = []
        self.reopened: List[Match] = []
        self.uncredited: List[Match] = []
        self.visited: Set[int] = set()
        self.placed: Set[Tuple[int, int]] = set()

    def apply(self) -> None:
        for target, team_id in self.removals:
            if target.team1_id == team_id:
                target.team1_id = None
            elif target.team2_id == team_id:
                target.team2_id = None
        for match in self.reopened:
            match.status = MatchStatus.pending
            match.team1_score = None
            match.team2_score = None
            match.winner_id = None
        for match in self.uncredited:
            match.winner_id = None


def _plan_undo(graph: EventGraph, match: Match) -> UndoPlan:
    """
    Walk the placements made from match and collect what must be taken back.

    Raises:
        IllegalStateTransition: A placed team sits in a match that was played
    """
    plan = UndoPlan()
    queue: Deque[Tuple[Optional[int], Optional[int]]] = deque(_outgoing(match))
    while queue:
        target_id, team_id = queue.popleft()
        target = graph.matches.get(target_id) if target_id is not None else None
        if target is None:
            continue
        placed = team_id is not None and team_id in target.team_ids
        if placed and (target.id, team_id) not in plan.placed:
            plan.placed.add((target.id, team_id))
            plan.removals.append((target, team_id))
        if target.status != MatchStatus.completed or target.id in plan.visited:
            continue

        if _is_walkover(graph, target):
            # Its feeder reopens, so the walkover no longer stands
            plan.visited.add(target.id)
            plan.reopened.append(target)
            queue.extend(_outgoing(target))
        elif placed and _is_credited_forfeit(graph, target, team_id):
            plan.visited.add(target.id)
            plan.uncredited.append(target)
            queue.append((target.next_match_id, team_id))
        elif placed:
            raise IllegalStateTransition(
                f"Downstream match {target.id} is already completed; clear it first"
            )
    return plan


def _settle(graph: EventGraph, queue: Deque[int]) -> int:
    """Advance queued matches and close resolvable ones until a fixed point. Returns matches closed."""
    closed = 0
    while True:
        while queue:
            _advance(graph, graph.matches[queue.popleft()], queue)

        resolvable = [m for m in graph.ordered() if _is_resolvable(graph, m)]
        if not resolvable:
            return closed
        for match in resolvable:
            # An earlier close in this pass may have filled it
            if not _is_resolvable(graph, match):
                continue
            _close_unplayed(graph, match)
            queue.append(match.id)
            closed += 1


def _commit(session: Session, graph: EventGraph) -> None:
    for match in graph.matches.values():
        session.add(match)
    refresh_round_statuses(session, graph.event_id)
    session.commit()


# ============================================================================
# Operations
# ============================================================================

def record_result(session: Session, match_id: int, team1_score: Optional[int], team2_score: Optional[int]) -> Match:
    """
    Complete a match and advance winner and loser along its edges.

    Raises:
        NotFound: Match does not exist
        InvalidInput: Missing, negative or equal scores; empty team slot
        IllegalStateTransition: Match already completed
    """
    try:
        result = MatchResultInput(team1_score=team1_score, team2_score=team2_score)
    except ValidationError as exc:
        raise InvalidInput(f"Invalid result for match {match_id}: {exc.errors()[0]['msg']}") from exc

    match = session.get(Match, match_id)
    if match is None:
        raise NotFound(f"Match {match_id} not found")
    if match.status == MatchStatus.completed:
        raise IllegalStateTransition(f"Match {match_id} is already completed")
    if match.team1_id is None or match.team2_id is None:
        raise InvalidInput(f"Match {match_id} needs both teams before a result can be recorded")

    try:
        graph = EventGraph(session, match.event_id)
        match = graph.matches[match_id]
        match.team1_score = result.team1_score
        match.team2_score = result.team2_score
        match.winner_id = match.team1_id if result.team1_score > result.team2_score else match.team2_id
        match.status = MatchStatus.completed
        match.table_number = None

        _settle(graph, deque([match.id]))
        log_event(
            session,
            match.event_id,
            ACTION_RESULT_RECORDED,
            {"match_id": match.id, "team1_score": match.team1_score, "team2_score": match.team2_score},
        )
        _commit(session, graph)
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    logger.info("Recorded match %d: %d-%d, winner %d", match.id, match.team1_score, match.team2_score, match.winner_id)
    return match


def clear_result(session: Session, match_id: int) -> Match:
    """
    Undo a recorded result while nothing downstream has been played.

    Removes the teams this match placed downstream, reopens walkovers and
    takes back forfeit walkovers the cascade derived from it, and returns
    the match to pending with null scores and winner.

    Raises:
        NotFound: Match does not exist
        IllegalStateTransition: Match not completed, is a bye or a forfeit, or
            a downstream match holding a placed team was played
    """
    match = session.get(Match, match_id)
    if match is None:
        raise NotFound(f"Match {match_id} not found")
    if match.status != MatchStatus.completed:
        raise IllegalStateTransition(f"Match {match_id} has no result to clear")
    if match.is_bye:
        raise IllegalStateTransition(f"Match {match_id} is a bye and is resolved automatically")

    graph = EventGraph(session, match.event_id)
    match = graph.matches[match_id]
    if _holds_disqualified(graph, match):
        raise IllegalStateTransition(f"Match {match_id} was decided by disqualification")
    if len(match.team_ids) < 2:
        raise IllegalStateTransition(f"Match {match_id} is a walkover and is resolved automatically")

    # Validated before any mutation
    plan = _plan_undo(graph, match)

    try:
        plan.apply()
        match.team1_score = None
        match.team2_score = None
        match.winner_id = None
        match.status = MatchStatus.pending

        log_event(session, match.event_id, ACTION_RESULT_CLEARED, {"match_id": match.id})
        _commit(session, graph)
    except Exception:
        session.rollback()
        raise

    session.refresh(match)
    logger.info(
        "Cleared result of match %d (%d walkovers reopened, %d walkovers taken back)",
        match.id,
        len(plan.reopened),
        len(plan.uncredited),
    )
    return match


def resolve_byes(session: Session, event_id: int) -> int:
    """
    Close every resolvable bye to a fixed point. Idempotent.

    Returns:
        Number of matches closed (0 when nothing was left to resolve)
    """
    try:
        graph = EventGraph(session, event_id)
        closed = _settle(graph, deque())
        if closed:
            _commit(session, graph)
    except Exception:
        session.rollback()
        raise

    if closed:
        logger.info("Resolved %d byes for event %d", closed, event_id)
    return closed


def disqualify_team(session: Session, team_id: int, event_id: int) -> List[Match]:
    """
    Disqualify a team and forfeit its unfinished matches.

    With an opponent present the match completes 0-0 for the opponent, who
    advances as in a normal win. Without one it completes 0-0 with no winner
    and the open slot goes to whoever the other feeder produces. Completed
    matches are never touched.

    Returns:
        Matches forfeited by this call (empty when already disqualified)

    Raises:
        NotFound: Team does not exist in the event
    """
    team = session.get(Team, team_id)
    if team is None or team.event_id != event_id:
        raise NotFound(f"Team {team_id} not found in event {event_id}")
    if team.status == TeamStatus.disqualified:
        return []

    try:
        team.status = TeamStatus.disqualified
        session.add(team)

        graph = EventGraph(session, event_id)
        graph.disqualified.add(team_id)

        forfeited: List[Match] = []
        queue: Deque[int] = deque()
        for match in graph.ordered():
            if match.status == MatchStatus.completed:
                continue
            if team_id not in (match.team1_id, match.team2_id):
                continue
            opponent = match.team2_id if match.team1_id == team_id else match.team1_id
            match.team1_score = 0
            match.team2_score = 0
            match.status = MatchStatus.completed
            match.table_number = None
            match.winner_id = opponent if opponent is not None and opponent not in graph.disqualified else None
            forfeited.append(match)
            queue.append(match.id)

        _settle(graph, queue)
        log_event(
            session,
            event_id,
            ACTION_TEAM_DISQUALIFIED,
            {"team_id": team_id, "forfeited_match_ids": [m.id for m in forfeited]},
        )
        _commit(session, graph)
    except Exception:
        session.rollback()
        raise

    logger.info("Disqualified team %d in event %d; forfeited %d matches", team_id, event_id, len(forfeited))
    return forfeited
