"""
Single elimination bracket generation.

Bracket size is the next power of two >= team count; round 0 is filled in
recursive seed order, and first-round matches that receive only one team are
flagged as byes for the progression engine to resolve.
"""

import logging
from typing import Callable, List, Sequence

from bracket_engine.exceptions import InvalidInput
from bracket_engine.models.round import RoundPhase
from bracket_engine.services.bracket_graph import BracketGraph, GraphMatch
from bracket_engine.utils.seeding import (
    TeamSeed,
    bracket_round_count,
    calculate_bracket_size,
    elimination_round_name,
    place_seeded_slots,
)

logger = logging.getLogger(__name__)

MIN_TEAMS = 2


def validate_team_count(teams: Sequence[TeamSeed]) -> None:
    if len(teams) < MIN_TEAMS:
        raise InvalidInput(f"Need at least {MIN_TEAMS} teams, got {len(teams)}")
    ids = [t.id for t in teams]
    if len(set(ids)) != len(ids):
        raise InvalidInput("Team list contains duplicate ids")


def build_elimination_tree(
    graph: BracketGraph,
    teams: Sequence[TeamSeed],
    prefix: str,
    round_name: Callable[[int, int], str],
    first_round_number: int = 1,
) -> List[List[str]]:
    """
    Add a seeded elimination tree to graph.

    Match m of round r feeds match m // 2 of round r + 1. Returns the match
    keys per round so callers can wire extra edges (losers drops, finals).
    """
    size = calculate_bracket_size(len(teams))
    total_rounds = bracket_round_count(size)

    keys_by_round: List[List[str]] = []
    for r in range(total_rounds):
        round_key = f"{prefix}R{r + 1}"
        graph.add_round(round_key, first_round_number + r, RoundPhase.winners, round_name(r, total_rounds))
        match_count = size // (2 ** (r + 1))
        keys = []
        for m in range(match_count):
            key = f"{prefix}R{r + 1}-M{m + 1}"
            graph.add_match(GraphMatch(key=key, round_key=round_key))
            keys.append(key)
        keys_by_round.append(keys)

    for r in range(total_rounds - 1):
        for m, key in enumerate(keys_by_round[r]):
            graph.match(key).next_key = keys_by_round[r + 1][m // 2]

    # Slot i -> match i // 2, team1 on even slots
    slots = place_seeded_slots(teams, size)
    for i, team in enumerate(slots):
        if team is None:
            continue
        match = graph.match(keys_by_round[0][i // 2])
        if i % 2 == 0:
            match.team1_id = team.id
        else:
            match.team2_id = team.id

    for key in keys_by_round[0]:
        match = graph.match(key)
        present = [t for t in (match.team1_id, match.team2_id) if t is not None]
        if len(present) == 1:
            match.is_bye = True

    return keys_by_round


def generate_single_elimination(teams: Sequence[TeamSeed]) -> BracketGraph:
    """
    Build a single elimination bracket.

    Args:
        teams: Team seeds (at least two)

    Returns:
        BracketGraph with log2(bracket_size) winners-phase rounds

    Raises:
        InvalidInput: Fewer than two teams or duplicate team ids
    """
    validate_team_count(teams)

    graph = BracketGraph()
    build_elimination_tree(graph, teams, prefix="", round_name=elimination_round_name)

    logger.info(
        "Generated single elimination bracket: %d teams, %d rounds, %d byes",
        len(teams),
        len(graph.rounds),
        sum(1 for m in graph.matches.values() if m.is_bye),
    )
    return graph
