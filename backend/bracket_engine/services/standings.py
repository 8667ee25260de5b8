"""
Standings and Podium

Read-only views derived from the current match set on every call; nothing
here is cached or persisted.

Group standings:
  - only completed, non-bye matches with both teams count
  - points = 2 per win + 1 per loss
  - order: wins desc, point differential desc, points scored desc (stable)

Podium:
  - the final is the completed, non-bye knockout match with a winner whose
    next match is absent, unknown, or a completed match that never received
    a team (an unneeded grand-finals reset)
  - 1st = final winner, 2nd = final loser
  - 3rd = loser of the losers-bracket final (double elimination) or every
    loser of the matches feeding the final (single elimination)
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel
from sqlmodel import Session, select

from bracket_engine.exceptions import NotFound
from bracket_engine.models.event import Event
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.round import Round, RoundPhase
from bracket_engine.models.team import Team

logger = logging.getLogger(__name__)

POINTS_PER_WIN = 2
POINTS_PER_LOSS = 1


# ============================================================================
# Pydantic Response Models
# ============================================================================

class Standing(BaseModel):
    team_id: int
    team_name: str
    group_id: Optional[str] = None
    played: int = 0
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    point_diff: int = 0
    points: int = 0


class PodiumEntry(BaseModel):
    place: int  # 1, 2 or 3 (3 may repeat for shared third place)
    team_id: int


# ============================================================================
# Group standings
# ============================================================================

def standing_sort_key(standing: Standing):
    return (-standing.wins, -standing.point_diff, -standing.points_for)


def compute_group_standings(group_teams: Sequence[Team], group_matches: Iterable[Match]) -> List[Standing]:
    """
    Tally and rank one group.

    Args:
        group_teams: Teams in the group (every team appears, even with no games)
        group_matches: The group's matches; incomplete and bye matches are ignored

    Returns:
        Standings sorted by wins, point differential, points scored
    """
    table: Dict[int, Standing] = {
        team.id: Standing(team_id=team.id, team_name=team.name, group_id=team.group_id)
        for team in group_teams
    }

    for match in group_matches:
        if match.status != MatchStatus.completed or match.is_bye:
            continue
        if match.team1_id is None or match.team2_id is None:
            continue
        s1 = match.team1_score or 0
        s2 = match.team2_score or 0

        for team_id, scored, conceded in (
            (match.team1_id, s1, s2),
            (match.team2_id, s2, s1),
        ):
            standing = table.get(team_id)
            if standing is None:
                continue
            standing.played += 1
            standing.points_for += scored
            standing.points_against += conceded
            if match.winner_id == team_id:
                standing.wins += 1
            else:
                standing.losses += 1

    standings = list(table.values())
    for standing in standings:
        standing.point_diff = standing.points_for - standing.points_against
        standing.points = standing.wins * POINTS_PER_WIN + standing.losses * POINTS_PER_LOSS

    return sorted(standings, key=standing_sort_key)


def are_all_group_matches_completed(matches: Iterable[Match]) -> bool:
    """True when every non-bye group match is completed."""
    return all(
        m.status == MatchStatus.completed
        for m in matches
        if m.group_id is not None and not m.is_bye
    )


def compute_event_group_standings(session: Session, event_id: int) -> Dict[str, List[Standing]]:
    """Standings for every group of an event, keyed by group id in label order."""
    if session.get(Event, event_id) is None:
        raise NotFound(f"Event {event_id} not found")

    teams = session.exec(select(Team).where(Team.event_id == event_id).order_by(Team.id)).all()
    matches = session.exec(
        select(Match).where(Match.event_id == event_id, Match.group_id.is_not(None))
    ).all()

    teams_by_group: Dict[str, List[Team]] = defaultdict(list)
    for team in teams:
        if team.group_id:
            teams_by_group[team.group_id].append(team)
    matches_by_group: Dict[str, List[Match]] = defaultdict(list)
    for match in matches:
        matches_by_group[match.group_id].append(match)

    return {
        group_id: compute_group_standings(teams_by_group[group_id], matches_by_group[group_id])
        for group_id in sorted(teams_by_group)
    }


# ============================================================================
# Podium
# ============================================================================

def _is_vacated(match: Match) -> bool:
    return match.status == MatchStatus.completed and match.team1_id is None and match.team2_id is None


def find_final(matches: Sequence[Match], rounds: Sequence[Round]) -> Optional[Match]:
    """The decided knockout match that nothing downstream can overturn."""
    by_id = {m.id: m for m in matches}
    round_by_id = {r.id: r for r in rounds}

    candidates = []
    for match in matches:
        round_ = round_by_id.get(match.round_id)
        if round_ is None or round_.phase == RoundPhase.group:
            continue
        if match.status != MatchStatus.completed or match.is_bye or match.winner_id is None:
            continue
        nxt = by_id.get(match.next_match_id) if match.next_match_id is not None else None
        if nxt is None or _is_vacated(nxt):
            candidates.append(match)

    if not candidates:
        return None
    if len(candidates) > 1:
        logger.warning("Multiple podium finals found: %s", [m.id for m in candidates])
    return max(candidates, key=lambda m: (round_by_id[m.round_id].round_number, m.match_number))


def compute_podium(matches: Sequence[Match], rounds: Sequence[Round]) -> List[PodiumEntry]:
    """
    Placements derived from the current match graph.

    Returns an empty list until the final is decided. Third place is a list
    of entries: one for double elimination, one per final feeder otherwise.
    """
    final = find_final(matches, rounds)
    if final is None:
        return []

    phase_by_round = {r.id: r.phase for r in rounds}
    entries = [PodiumEntry(place=1, team_id=final.winner_id)]
    if final.loser_id is not None:
        entries.append(PodiumEntry(place=2, team_id=final.loser_id))

    def feeders_of(target: Match) -> List[Match]:
        return [m for m in matches if m.next_match_id == target.id]

    has_losers_phase = any(r.phase == RoundPhase.losers for r in rounds)
    if has_losers_phase:
        # Climb grand finals -> reset chain back to grand finals
        head = final
        while True:
            upstream = next(
                (m for m in feeders_of(head) if phase_by_round.get(m.round_id) == RoundPhase.finals),
                None,
            )
            if upstream is None:
                break
            head = upstream
        for feeder in feeders_of(head):
            if phase_by_round.get(feeder.round_id) != RoundPhase.losers:
                continue
            if feeder.status == MatchStatus.completed and not feeder.is_bye and feeder.loser_id is not None:
                entries.append(PodiumEntry(place=3, team_id=feeder.loser_id))
    else:
        for feeder in feeders_of(final):
            if feeder.status == MatchStatus.completed and not feeder.is_bye and feeder.loser_id is not None:
                entries.append(PodiumEntry(place=3, team_id=feeder.loser_id))

    return entries


def get_event_podium(session: Session, event_id: int) -> List[PodiumEntry]:
    if session.get(Event, event_id) is None:
        raise NotFound(f"Event {event_id} not found")
    matches = session.exec(select(Match).where(Match.event_id == event_id).order_by(Match.id)).all()
    rounds = session.exec(select(Round).where(Round.event_id == event_id)).all()
    return compute_podium(matches, rounds)
