"""
Round-robin pairings via the circle method.

Positions are 0-based indices into a group's member list. For an odd group
size a synthetic BYE position is appended; the team drawn against it gets a
bye pairing (idx, None) for that round instead of being dropped.
"""

from typing import List, Optional, Tuple

Pairing = Tuple[int, Optional[int]]


def rr_round_count(group_size: int) -> int:
    """Rounds needed for a full round robin of group_size teams."""
    if group_size < 2:
        return 0
    return group_size - 1 if group_size % 2 == 0 else group_size


def rr_pairings_by_round(group_size: int) -> List[List[Pairing]]:
    """
    Circle method: fix position 0, rotate the rest one step per round.

    Round k pairs slot i with slot n-1-i. Returns one list per round; each
    pairing is (idx_a, idx_b) with idx_b None when idx_a draws the BYE.
    """
    if group_size < 2:
        return []

    n = group_size + 1 if group_size % 2 == 1 else group_size
    bye_idx = group_size if group_size % 2 == 1 else -1
    half = n // 2

    rounds: List[List[Pairing]] = []
    positions = list(range(n))

    for _ in range(n - 1):
        pairings: List[Pairing] = []
        for i in range(half):
            a, b = positions[i], positions[n - 1 - i]
            if a == bye_idx:
                pairings.append((b, None))
            elif b == bye_idx:
                pairings.append((a, None))
            else:
                pairings.append((a, b))
        rounds.append(pairings)
        # Rotate: keep 0, move last to second, shift others
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]

    return rounds
