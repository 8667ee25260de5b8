"""
Playing-round scheduler.

Assigns every non-bye match a global match number and a playing round (a
batch of matches that can run at once on the available tables). Bracket
rounds never share a playing round, so no match is scheduled alongside one
of its feeders.
"""

import logging

from bracket_engine.services.bracket_graph import BracketGraph

logger = logging.getLogger(__name__)

BYE_MATCH_NUMBER = 0
BYE_SCHEDULED_ROUND = 0


def assign_schedule(
    graph: BracketGraph,
    table_count: int,
    first_match_number: int = 1,
    first_playing_round: int = 1,
) -> None:
    """
    Number matches and batch them into playing rounds, in place.

    Args:
        graph: Generated bracket graph
        table_count: Tables available (clamped to >= 1)
        first_match_number: Number given to the first scheduled match
        first_playing_round: Playing round given to the first batch
    """
    tables = max(1, table_count)
    match_number = first_match_number
    playing_round = first_playing_round

    for graph_round in graph.rounds_in_order():
        slots_used = 0
        for match in graph.round_matches(graph_round.key):
            if match.is_bye:
                match.match_number = BYE_MATCH_NUMBER
                match.scheduled_round = BYE_SCHEDULED_ROUND
                continue
            match.match_number = match_number
            match.scheduled_round = playing_round
            match_number += 1
            slots_used += 1
            if slots_used >= tables:
                slots_used = 0
                playing_round += 1
        # A bracket round always starts a fresh playing round
        if slots_used > 0:
            playing_round += 1

    logger.debug(
        "Scheduled %d matches over playing rounds %d..%d on %d tables",
        match_number - first_match_number,
        first_playing_round,
        playing_round - 1,
        tables,
    )
