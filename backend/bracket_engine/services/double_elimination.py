"""
Double elimination bracket generation.

Three graphs glued together:
1. Winners bracket - same tree as single elimination (positions W-R#-M#)
2. Losers bracket - 2 * (W - 1) rounds absorbing winners-bracket losers
3. Finals - grand finals (GF-M1) followed by a reset match (GF-M2)

Losers round sizing:
- L0 has bracket_size / 4 matches (pairs of first-round losers)
- odd rounds are drop-down rounds: same count as the previous round, one slot
  per match receives a winners-bracket loser
- even rounds (>= 2) are internal rounds: half the previous count

Drop edges (loser_next):
- winners round 0, match m -> L0[m // 2]
- winners round r >= 1, match m -> L(2r - 1)[m]

The reset match is always created; whether it is contested is decided when
grand finals is recorded (see progression).
"""

import logging
from typing import List, Sequence

from bracket_engine.models.round import RoundPhase
from bracket_engine.services.bracket_graph import BracketGraph, GraphMatch
from bracket_engine.services.single_elimination import build_elimination_tree, validate_team_count
from bracket_engine.utils.seeding import TeamSeed, bracket_round_count, calculate_bracket_size

logger = logging.getLogger(__name__)

GRAND_FINAL_KEY = "GF-M1"
RESET_KEY = "GF-M2"


def losers_round_sizes(bracket_size: int) -> List[int]:
    """Match count of every losers-bracket round, in order."""
    winners_rounds = bracket_round_count(bracket_size)
    sizes: List[int] = []
    for lr in range(2 * (winners_rounds - 1)):
        if lr == 0:
            sizes.append(bracket_size // 4)
        elif lr % 2 == 1:
            sizes.append(sizes[-1])
        else:
            sizes.append(sizes[-1] // 2)
    return sizes


def generate_double_elimination(teams: Sequence[TeamSeed]) -> BracketGraph:
    """
    Build a double elimination bracket.

    Round numbers run winners rounds first, then losers rounds, then grand
    finals, then the reset match.

    Raises:
        InvalidInput: Fewer than two teams or duplicate team ids
    """
    validate_team_count(teams)

    size = calculate_bracket_size(len(teams))
    winners_count = bracket_round_count(size)

    graph = BracketGraph()
    winners = build_elimination_tree(
        graph,
        teams,
        prefix="W-",
        round_name=lambda r, _total: f"Winners Round {r + 1}",
    )

    # ========================================================================
    # Losers bracket
    # ========================================================================
    losers: List[List[str]] = []
    next_round_number = winners_count + 1
    for lr, match_count in enumerate(losers_round_sizes(size)):
        round_key = f"L-R{lr + 1}"
        graph.add_round(round_key, next_round_number, RoundPhase.losers, f"Losers Round {lr + 1}")
        next_round_number += 1
        keys = []
        for m in range(match_count):
            key = f"L-R{lr + 1}-M{m + 1}"
            graph.add_match(GraphMatch(key=key, round_key=round_key))
            keys.append(key)
        losers.append(keys)

    for lr in range(len(losers) - 1):
        for m, key in enumerate(losers[lr]):
            target = m if lr % 2 == 0 else m // 2
            graph.match(key).next_key = losers[lr + 1][target]

    # ========================================================================
    # Finals
    # ========================================================================
    graph.add_round("GF", next_round_number, RoundPhase.finals, "Grand Finals")
    graph.add_round("GF-RESET", next_round_number + 1, RoundPhase.finals, "Reset Match")
    graph.add_match(GraphMatch(key=GRAND_FINAL_KEY, round_key="GF", next_key=RESET_KEY))
    graph.add_match(GraphMatch(key=RESET_KEY, round_key="GF-RESET"))

    graph.match(winners[-1][0]).next_key = GRAND_FINAL_KEY
    if losers:
        graph.match(losers[-1][0]).next_key = GRAND_FINAL_KEY

    # ========================================================================
    # Drop edges
    # ========================================================================
    if not losers:
        # Two teams: the only winners match drops its loser straight into grand finals
        graph.match(winners[0][0]).loser_next_key = GRAND_FINAL_KEY
    else:
        for r, keys in enumerate(winners):
            for m, key in enumerate(keys):
                if r == 0:
                    target = losers[0][m // 2]
                else:
                    target = losers[2 * r - 1][m]
                graph.match(key).loser_next_key = target

    logger.info(
        "Generated double elimination bracket: %d teams, %d winners rounds, %d losers rounds",
        len(teams),
        winners_count,
        len(losers),
    )
    return graph
