"""
In-memory bracket graph produced by the generators.

Rounds and matches live in an arena keyed by structural identifiers
(bracket positions such as "W-R1-M2"); edges between matches are keys, never
object references, so a graph can be persisted as-is by swapping keys for
database ids.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from bracket_engine.models.round import RoundPhase


@dataclass
class GraphRound:
    key: str
    round_number: int
    phase: RoundPhase
    name: str


@dataclass
class GraphMatch:
    key: str  # Also used as the persisted bracket_position
    round_key: str
    team1_id: Optional[int] = None
    team2_id: Optional[int] = None
    is_bye: bool = False
    next_key: Optional[str] = None
    loser_next_key: Optional[str] = None
    group_id: Optional[str] = None
    # Filled by the scheduler
    match_number: int = 0
    scheduled_round: int = 0


@dataclass
class BracketGraph:
    rounds: List[GraphRound] = field(default_factory=list)
    matches: Dict[str, GraphMatch] = field(default_factory=dict)  # insertion order = generation order
    team_groups: Dict[int, str] = field(default_factory=dict)  # team_id -> group_id (group phase only)

    def add_round(self, key: str, round_number: int, phase: RoundPhase, name: str) -> GraphRound:
        graph_round = GraphRound(key=key, round_number=round_number, phase=phase, name=name)
        self.rounds.append(graph_round)
        return graph_round

    def add_match(self, match: GraphMatch) -> GraphMatch:
        if match.key in self.matches:
            raise ValueError(f"Duplicate match key {match.key}")
        self.matches[match.key] = match
        return match

    def match(self, key: str) -> GraphMatch:
        return self.matches[key]

    def round_matches(self, round_key: str) -> List[GraphMatch]:
        """Matches of one round in generation order."""
        return [m for m in self.matches.values() if m.round_key == round_key]

    def rounds_in_order(self) -> List[GraphRound]:
        return sorted(self.rounds, key=lambda r: r.round_number)

    def non_bye_matches(self) -> List[GraphMatch]:
        return [m for m in self.matches.values() if not m.is_bye]

    def feeders(self, key: str) -> List[GraphMatch]:
        """Matches whose winner or loser edge points at key."""
        return [m for m in self.matches.values() if m.next_key == key or m.loser_next_key == key]

    def offset_round_numbers(self, offset: int) -> None:
        for graph_round in self.rounds:
            graph_round.round_number += offset

    def walk_from(self, key: str) -> Iterator[GraphMatch]:
        """Follow next_key from key until the graph's sink (inclusive)."""
        seen = set()
        current: Optional[str] = key
        while current is not None:
            if current in seen:
                raise ValueError(f"Cycle detected at {current}")
            seen.add(current)
            node = self.matches[current]
            yield node
            current = node.next_key
