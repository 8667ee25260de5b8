"""
Knockout seeding from group standings.

Top K of every group are interleaved by rank tier, alternating direction per
tier (A1, B1, B2, A2 for two groups advancing two), so teams from the same
group land in opposite halves of the knockout bracket.
"""

import logging
from typing import Dict, List, Sequence

from bracket_engine.exceptions import InvalidInput
from bracket_engine.models.event import KnockoutMode
from bracket_engine.services.bracket_graph import BracketGraph
from bracket_engine.services.double_elimination import generate_double_elimination
from bracket_engine.services.single_elimination import generate_single_elimination
from bracket_engine.services.standings import Standing
from bracket_engine.utils.seeding import TeamSeed

logger = logging.getLogger(__name__)

KNOCKOUT_GENERATORS = {
    KnockoutMode.single_elimination: generate_single_elimination,
    KnockoutMode.double_elimination: generate_double_elimination,
}


def interleave_group_qualifiers(
    standings_per_group: Dict[str, Sequence[Standing]], advance_per_group: int
) -> List[TeamSeed]:
    """
    Seed list for the knockout: tier by tier, forward on even tiers and
    backward on odd tiers. Groups with fewer teams than a tier are skipped.
    """
    group_ids = sorted(standings_per_group)
    seeded: List[TeamSeed] = []
    for rank in range(advance_per_group):
        order = group_ids if rank % 2 == 0 else list(reversed(group_ids))
        for group_id in order:
            standings = standings_per_group[group_id]
            if rank < len(standings):
                standing = standings[rank]
                seeded.append(
                    TeamSeed(id=standing.team_id, seed=len(seeded) + 1, name=standing.team_name)
                )
    return seeded


def generate_knockout_from_groups(
    standings_per_group: Dict[str, Sequence[Standing]],
    advance_per_group: int,
    knockout_mode: KnockoutMode,
    round_offset: int = 0,
) -> BracketGraph:
    """
    Build the knockout bracket that follows a group phase.

    Args:
        standings_per_group: Ordered standings keyed by group id
        advance_per_group: Teams taken from the top of each group
        knockout_mode: Single or double elimination
        round_offset: Added to every round number so knockout rounds follow
            the existing group rounds

    Raises:
        InvalidInput: advance_per_group < 1 or fewer than two qualifiers
    """
    if advance_per_group < 1:
        raise InvalidInput(f"advance_per_group must be >= 1, got {advance_per_group}")

    seeded = interleave_group_qualifiers(standings_per_group, advance_per_group)
    if len(seeded) < 2:
        raise InvalidInput("Not enough advancing teams for a knockout phase")

    graph = KNOCKOUT_GENERATORS[KnockoutMode(knockout_mode)](seeded)
    graph.offset_round_numbers(round_offset)

    logger.info(
        "Seeded %s knockout from %d groups: %s",
        KnockoutMode(knockout_mode).value,
        len(standings_per_group),
        [t.id for t in seeded],
    )
    return graph
