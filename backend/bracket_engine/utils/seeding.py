"""
Seeding helpers shared by the bracket generators.

- Bracket sizing (next power of two)
- Recursive seed order so top seeds meet as late as possible
- Serpentine (snake) dealing of ranked teams into groups
- Round display names
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


@dataclass
class TeamSeed:
    """Team as seen by the generators: identity plus rank (1 = strongest)."""
    id: int
    seed: int
    name: str = ""


def sort_by_seed(teams: Sequence[TeamSeed]) -> List[TeamSeed]:
    """Stable sort by seed ascending; equal seeds keep input order."""
    return sorted(teams, key=lambda t: t.seed)


def calculate_bracket_size(team_count: int) -> int:
    """Smallest power of two >= team_count (minimum 2)."""
    size = 2
    while size < team_count:
        size *= 2
    return size


def bracket_round_count(bracket_size: int) -> int:
    """log2(bracket_size) for a power-of-two bracket."""
    return bracket_size.bit_length() - 1


def generate_seed_order(bracket_size: int) -> List[int]:
    """
    Seed placed at each slot of the first round.

    Starts from [1, 2]; each pass expands seed s into (s, sum - s) where
    sum = 2 * len + 1, so seed i always meets seed N+1-i first and the two
    halves of every sub-bracket mirror each other.

    Example (size 8): [1, 8, 4, 5, 2, 7, 3, 6]
    """
    if bracket_size < 2:
        return [1]

    order = [1, 2]
    while len(order) < bracket_size:
        total = len(order) * 2 + 1
        expanded: List[int] = []
        for seed in order:
            expanded.append(seed)
            expanded.append(total - seed)
        order = expanded
    return order


def place_seeded_slots(teams: Sequence[TeamSeed], bracket_size: int) -> List[Optional[TeamSeed]]:
    """
    Fill every first-round slot with the team holding that seed rank.

    Rank is the team's position after sorting by seed, so gaps in the seed
    numbers do not leave holes. Slots ranked beyond the team count stay None.
    """
    ranked = sort_by_seed(teams)
    slots: List[Optional[TeamSeed]] = []
    for rank in generate_seed_order(bracket_size):
        slots.append(ranked[rank - 1] if rank <= len(ranked) else None)
    return slots


def serpentine_groups(items: Sequence[T], group_count: int) -> List[List[T]]:
    """
    Deal ranked items into groups back and forth: A B B A A B ...

    The group at each end receives two in a row when the direction flips.
    """
    groups: List[List[T]] = [[] for _ in range(group_count)]
    if group_count <= 0:
        return groups

    index = 0
    step = 1
    for item in items:
        groups[index].append(item)
        if group_count == 1:
            continue
        nxt = index + step
        if nxt < 0 or nxt >= group_count:
            step = -step
        else:
            index = nxt
    return groups


def group_label(index: int) -> str:
    """0 -> "A", 1 -> "B", ... 26 -> "AA"."""
    label = ""
    n = index
    while True:
        label = chr(ord("A") + n % 26) + label
        n = n // 26 - 1
        if n < 0:
            return label


def elimination_round_name(round_index: int, total_rounds: int) -> str:
    """Name a single-elimination round by its distance from the final."""
    from_end = total_rounds - round_index
    if from_end == 1:
        return "Final"
    if from_end == 2:
        return "Semifinal"
    if from_end == 3:
        return "Quarterfinal"
    if from_end == 4:
        return "Round of 16"
    return f"Round {round_index + 1}"
