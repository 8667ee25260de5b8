"""Group standings and podium derivation."""

import pytest
from sqlmodel import Session

from bracket_engine.exceptions import NotFound
from bracket_engine.models.event import EventMode
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.team import Team
from bracket_engine.services.bracket_builder import build_bracket
from bracket_engine.services.progression import clear_result, record_result
from bracket_engine.services.standings import (
    are_all_group_matches_completed,
    compute_event_group_standings,
    compute_group_standings,
    get_event_podium,
)


def team(team_id, name):
    return Team(id=team_id, event_id=1, name=name, group_id="group-A")


def played(match_id, team1_id, team2_id, s1, s2, **kwargs):
    return Match(
        id=match_id,
        event_id=1,
        round_id=1,
        team1_id=team1_id,
        team2_id=team2_id,
        team1_score=s1,
        team2_score=s2,
        winner_id=team1_id if s1 > s2 else team2_id,
        status=MatchStatus.completed,
        group_id="group-A",
        **kwargs,
    )


# ============================================================================
# Group standings (pure)
# ============================================================================

def test_group_standings_tally_and_order():
    teams = [team(1, "A"), team(2, "B"), team(3, "C"), team(4, "D")]
    matches = [
        played(1, 1, 2, 21, 10),
        played(2, 1, 3, 21, 19),
        played(3, 2, 3, 21, 5),
    ]

    standings = compute_group_standings(teams, matches)

    assert [s.team_id for s in standings] == [1, 2, 4, 3]
    a, b, d, c = standings
    assert (a.played, a.wins, a.losses, a.points_for, a.points_against) == (2, 2, 0, 42, 29)
    assert (a.point_diff, a.points) == (13, 4)
    assert (b.wins, b.losses, b.point_diff, b.points) == (1, 1, 5, 3)
    assert (c.wins, c.losses, c.point_diff, c.points) == (0, 2, -18, 2)
    # A team with no games still appears, all zeros
    assert (d.played, d.points, d.point_diff) == (0, 0, 0)


def test_group_standings_points_scored_breaks_ties():
    teams = [team(1, "A"), team(2, "B"), team(3, "C"), team(4, "D")]
    matches = [
        played(1, 1, 3, 15, 10),
        played(2, 2, 4, 25, 20),
    ]

    standings = compute_group_standings(teams, matches)

    # Same wins and differential; more points scored ranks higher
    assert [s.team_id for s in standings[:2]] == [2, 1]


def test_group_standings_ignore_byes_and_unfinished_matches():
    teams = [team(1, "A"), team(2, "B")]
    bye = Match(
        id=1, event_id=1, round_id=1, team1_id=1, is_bye=True, winner_id=1,
        team1_score=0, team2_score=0, status=MatchStatus.completed, group_id="group-A",
    )
    unfinished = Match(id=2, event_id=1, round_id=1, team1_id=1, team2_id=2, group_id="group-A")

    standings = compute_group_standings(teams, [bye, unfinished])

    assert all(s.played == 0 and s.wins == 0 for s in standings)


def test_all_group_matches_completed_skips_byes():
    bye = Match(id=1, event_id=1, round_id=1, team1_id=1, is_bye=True, group_id="group-A")
    done = played(2, 1, 2, 21, 3)
    assert are_all_group_matches_completed([bye, done])
    assert not are_all_group_matches_completed(
        [done, Match(id=3, event_id=1, round_id=1, team1_id=1, team2_id=2, group_id="group-A")]
    )


def test_event_group_standings(session: Session, make_event, by_position):
    event, teams = make_event(EventMode.group, 6, group_count=2)
    build_bracket(session, event.id)

    standings = compute_event_group_standings(session, event.id)

    assert list(standings) == ["group-A", "group-B"]
    assert sorted(s.team_id for s in standings["group-A"]) == sorted(
        [teams[0].id, teams[3].id, teams[4].id]
    )
    assert all(s.played == 0 for group in standings.values() for s in group)


def test_event_group_standings_unknown_event(session: Session):
    with pytest.raises(NotFound):
        compute_event_group_standings(session, 404)


# ============================================================================
# Podium
# ============================================================================

def test_single_elimination_podium(session: Session, make_event, by_position):
    event, teams = make_event(EventMode.single_elimination, 4)
    build_bracket(session, event.id)
    m = by_position(event.id)

    record_result(session, m["R1-M1"].id, 21, 10)
    record_result(session, m["R1-M2"].id, 21, 10)
    assert get_event_podium(session, event.id) == []

    record_result(session, m["R2-M1"].id, 15, 21)

    podium = [(p.place, p.team_id) for p in get_event_podium(session, event.id)]
    assert podium[:2] == [(1, teams[1].id), (2, teams[0].id)]
    assert sorted(podium[2:]) == sorted([(3, teams[3].id), (3, teams[2].id)])


def play_double_elimination_to_grand_final(session, event, by_position):
    """Four teams, higher seed wins everything until grand finals (seed1 v seed2)."""
    m = by_position(event.id)
    record_result(session, m["W-R1-M1"].id, 21, 10)
    record_result(session, m["W-R1-M2"].id, 21, 10)
    record_result(session, m["L-R1-M1"].id, 10, 21)
    record_result(session, m["W-R2-M1"].id, 21, 10)
    record_result(session, by_position(event.id)["L-R2-M1"].id, 10, 21)
    return by_position(event.id)


def test_double_elimination_podium_without_reset(session: Session, make_event, by_position):
    event, teams = make_event(EventMode.double_elimination, 4)
    build_bracket(session, event.id)
    m = play_double_elimination_to_grand_final(session, event, by_position)
    assert (m["GF-M1"].team1_id, m["GF-M1"].team2_id) == (teams[0].id, teams[1].id)

    record_result(session, m["GF-M1"].id, 21, 17)

    reset = by_position(event.id)["GF-M2"]
    assert reset.status == MatchStatus.completed
    assert not reset.is_bye and reset.team1_id is None and reset.winner_id is None

    podium = [(p.place, p.team_id) for p in get_event_podium(session, event.id)]
    assert podium == [(1, teams[0].id), (2, teams[1].id), (3, teams[2].id)]


def test_double_elimination_podium_after_reset(session: Session, make_event, by_position):
    event, teams = make_event(EventMode.double_elimination, 4)
    build_bracket(session, event.id)
    m = play_double_elimination_to_grand_final(session, event, by_position)

    record_result(session, m["GF-M1"].id, 17, 21)

    reset = by_position(event.id)["GF-M2"]
    assert (reset.team1_id, reset.team2_id) == (teams[0].id, teams[1].id)
    assert reset.status == MatchStatus.pending
    assert get_event_podium(session, event.id) == []

    record_result(session, reset.id, 21, 19)

    podium = [(p.place, p.team_id) for p in get_event_podium(session, event.id)]
    assert podium == [(1, teams[0].id), (2, teams[1].id), (3, teams[2].id)]


def test_clearing_grand_final_reopens_unneeded_reset(session: Session, make_event, by_position):
    event, teams = make_event(EventMode.double_elimination, 4)
    build_bracket(session, event.id)
    m = play_double_elimination_to_grand_final(session, event, by_position)
    record_result(session, m["GF-M1"].id, 21, 17)

    clear_result(session, m["GF-M1"].id)

    m = by_position(event.id)
    assert m["GF-M1"].status == MatchStatus.pending
    assert m["GF-M2"].status == MatchStatus.pending
    assert not m["GF-M2"].is_bye
    assert get_event_podium(session, event.id) == []

    # Now the losers-side finalist takes grand finals and the reset is contested
    record_result(session, m["GF-M1"].id, 10, 21)
    reset = by_position(event.id)["GF-M2"]
    assert (reset.team1_id, reset.team2_id) == (teams[0].id, teams[1].id)


def test_podium_unknown_event(session: Session):
    with pytest.raises(NotFound):
        get_event_podium(session, 404)
