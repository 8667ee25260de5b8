"""
Round views: display names, derived status, current round.

Round status is re-derived from the match set after every mutation rather
than tracked incrementally.
"""

from typing import Dict, List, Optional, Sequence

from sqlmodel import Session, select

from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.round import Round, RoundPhase, RoundStatus


def round_display_name(round_: Round, all_rounds: Sequence[Round]) -> str:
    """Name a round from its phase and its position within that phase."""
    phase_rounds = sorted(
        (r for r in all_rounds if r.phase == round_.phase), key=lambda r: r.round_number
    )
    index = next((i for i, r in enumerate(phase_rounds) if r.id == round_.id), None)
    if index is None:
        return round_.name

    phase = RoundPhase(round_.phase)
    if phase == RoundPhase.finals:
        return "Grand Finals" if index == 0 else "Reset Match"
    if phase == RoundPhase.losers:
        return f"Losers Round {index + 1}"
    if phase == RoundPhase.winners:
        if any(r.phase == RoundPhase.losers for r in all_rounds):
            return f"Winners Round {index + 1}"
        from_end = len(phase_rounds) - index
        names = {1: "Final", 2: "Semifinal", 3: "Quarterfinal", 4: "Round of 16"}
        return names.get(from_end, f"Round {index + 1}")
    return f"Round {index + 1}"


def _was_played(match: Match) -> bool:
    """In progress, or completed with both slots filled (byes and walkovers never are)."""
    if match.status == MatchStatus.in_progress:
        return True
    return match.status == MatchStatus.completed and not match.is_bye and len(match.team_ids) == 2


def derive_round_status(matches: Sequence[Match]) -> RoundStatus:
    if matches and all(m.status == MatchStatus.completed for m in matches):
        return RoundStatus.completed
    if any(_was_played(m) for m in matches):
        return RoundStatus.active
    return RoundStatus.pending


def refresh_round_statuses(session: Session, event_id: int) -> int:
    """Recompute every round's status from its matches. Returns rounds changed (staged, not committed)."""
    rounds = session.exec(select(Round).where(Round.event_id == event_id)).all()
    matches = session.exec(select(Match).where(Match.event_id == event_id)).all()

    by_round: Dict[int, List[Match]] = {r.id: [] for r in rounds}
    for match in matches:
        by_round.setdefault(match.round_id, []).append(match)

    changed = 0
    for round_ in rounds:
        status = derive_round_status(by_round[round_.id])
        if round_.status != status:
            round_.status = status
            session.add(round_)
            changed += 1
    return changed


def get_current_round(session: Session, event_id: int) -> Optional[Round]:
    """Lowest-numbered bracket round that still has unfinished matches."""
    rounds = session.exec(
        select(Round).where(Round.event_id == event_id).order_by(Round.round_number)
    ).all()
    for round_ in rounds:
        pending = session.exec(
            select(Match).where(Match.round_id == round_.id, Match.status != MatchStatus.completed)
        ).first()
        if pending is not None:
            return round_
    return None
