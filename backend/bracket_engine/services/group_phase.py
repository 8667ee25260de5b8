"""
Group phase generation.

Teams are sorted by seed and dealt into groups serpentine-style, then each
group plays a circle-method round robin. All groups share one set of rounds
(the maximum any group needs) so they stay synchronized round by round.
"""

import logging
from typing import List, Sequence

from bracket_engine.exceptions import InvalidInput
from bracket_engine.models.round import RoundPhase
from bracket_engine.services.bracket_graph import BracketGraph, GraphMatch
from bracket_engine.services.single_elimination import validate_team_count
from bracket_engine.utils.round_robin import rr_pairings_by_round
from bracket_engine.utils.seeding import TeamSeed, group_label, serpentine_groups, sort_by_seed

logger = logging.getLogger(__name__)


def group_id_for(index: int) -> str:
    return f"group-{group_label(index)}"


def generate_group_phase(teams: Sequence[TeamSeed], group_count: int) -> BracketGraph:
    """
    Build a group phase: serpentine groups, round robin within each group.

    Args:
        teams: Team seeds
        group_count: Number of groups (each group needs at least two teams)

    Returns:
        BracketGraph with group-phase rounds; graph.team_groups maps every
        team id to its group id

    Raises:
        InvalidInput: group_count < 1 or fewer than 2 * group_count teams
    """
    if group_count < 1:
        raise InvalidInput(f"group_count must be >= 1, got {group_count}")
    validate_team_count(teams)
    if len(teams) < group_count * 2:
        raise InvalidInput(
            f"Need at least {group_count * 2} teams for {group_count} groups, got {len(teams)}"
        )

    groups: List[List[TeamSeed]] = serpentine_groups(sort_by_seed(teams), group_count)
    schedules = [rr_pairings_by_round(len(members)) for members in groups]
    total_rounds = max(len(schedule) for schedule in schedules)

    graph = BracketGraph()
    for gi, members in enumerate(groups):
        for team in members:
            graph.team_groups[team.id] = group_id_for(gi)

    for r in range(total_rounds):
        round_key = f"G-R{r + 1}"
        graph.add_round(round_key, r + 1, RoundPhase.group, f"Round {r + 1}")

        for gi, members in enumerate(groups):
            schedule = schedules[gi]
            if r >= len(schedule):
                continue
            label = group_label(gi)
            for m, (idx_a, idx_b) in enumerate(schedule[r]):
                graph.add_match(
                    GraphMatch(
                        key=f"G{label}-R{r + 1}-M{m + 1}",
                        round_key=round_key,
                        team1_id=members[idx_a].id,
                        team2_id=members[idx_b].id if idx_b is not None else None,
                        is_bye=idx_b is None,
                        group_id=group_id_for(gi),
                    )
                )

    logger.info(
        "Generated group phase: %d teams, %d groups, %d rounds",
        len(teams),
        group_count,
        total_rounds,
    )
    return graph
