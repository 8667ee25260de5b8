"""Knockout phase seeded from group standings."""

import pytest
from sqlmodel import Session, select

from bracket_engine.exceptions import IllegalStateTransition, InvalidInput
from bracket_engine.models.event import EventMode, KnockoutMode
from bracket_engine.models.match import Match, MatchStatus
from bracket_engine.models.round import Round, RoundPhase
from bracket_engine.services.bracket_builder import build_bracket, build_knockout_phase
from bracket_engine.services.knockout import generate_knockout_from_groups, interleave_group_qualifiers
from bracket_engine.services.progression import disqualify_team, record_result
from bracket_engine.services.standings import Standing


def play_group_phase(session: Session, event_id: int, seed_of):
    """Complete every group match; the better seed always wins."""
    pending = session.exec(
        select(Match).where(
            Match.event_id == event_id,
            Match.group_id.is_not(None),
            Match.status != MatchStatus.completed,
        )
    ).all()
    for match_id, team1_id, team2_id in [(m.id, m.team1_id, m.team2_id) for m in pending]:
        if seed_of[team1_id] < seed_of[team2_id]:
            record_result(session, match_id, 21, 10)
        else:
            record_result(session, match_id, 10, 21)


@pytest.fixture
def six_team_groups(session: Session, make_event):
    event, teams = make_event(EventMode.group, 6, group_count=2, teams_advance_per_group=2)
    build_bracket(session, event.id)
    return event, teams, {t.id: t.seed for t in teams}


def test_knockout_seeds_interleave_group_winners(session: Session, six_team_groups, by_position):
    event, teams, seed_of = six_team_groups
    play_group_phase(session, event.id, seed_of)

    summary = build_knockout_phase(session, event.id)
    assert summary.advancing_teams == 4

    m = by_position(event.id)
    # Qualifier order A1, B1, B2, A2 = seeds 1, 2, 3, 4
    assert (m["R1-M1"].team1_id, m["R1-M1"].team2_id) == (teams[0].id, teams[3].id)
    assert (m["R1-M2"].team1_id, m["R1-M2"].team2_id) == (teams[1].id, teams[2].id)
    assert m["R1-M1"].next_match_id == m["R2-M1"].id


def test_knockout_numbering_follows_group_phase(session: Session, six_team_groups, by_position):
    event, _, seed_of = six_team_groups
    play_group_phase(session, event.id, seed_of)
    build_knockout_phase(session, event.id)

    session.expire_all()
    rounds = session.exec(select(Round).where(Round.event_id == event.id).order_by(Round.round_number)).all()
    assert [(r.round_number, RoundPhase(r.phase)) for r in rounds] == [
        (1, RoundPhase.group),
        (2, RoundPhase.group),
        (3, RoundPhase.group),
        (4, RoundPhase.winners),
        (5, RoundPhase.winners),
    ]
    assert [r.name for r in rounds[3:]] == ["Semifinal", "Final"]

    m = by_position(event.id)
    group_numbers = sorted(x.match_number for x in m.values() if x.group_id and not x.is_bye)
    assert group_numbers == [1, 2, 3, 4, 5, 6]
    assert (m["R1-M1"].match_number, m["R1-M2"].match_number, m["R2-M1"].match_number) == (7, 8, 9)
    assert m["R1-M1"].scheduled_round > max(x.scheduled_round for x in m.values() if x.group_id)


def test_knockout_requires_completed_groups(session: Session, six_team_groups):
    event, _, _ = six_team_groups
    with pytest.raises(IllegalStateTransition):
        build_knockout_phase(session, event.id)


def test_knockout_cannot_be_built_twice(session: Session, six_team_groups):
    event, _, seed_of = six_team_groups
    play_group_phase(session, event.id, seed_of)
    build_knockout_phase(session, event.id)
    with pytest.raises(IllegalStateTransition):
        build_knockout_phase(session, event.id)


def test_knockout_only_for_group_events(session: Session, make_event):
    event, _ = make_event(EventMode.single_elimination, 4)
    build_bracket(session, event.id)
    with pytest.raises(IllegalStateTransition):
        build_knockout_phase(session, event.id)


def test_knockout_skips_disqualified_qualifier(session: Session, six_team_groups, by_position):
    event, teams, seed_of = six_team_groups
    play_group_phase(session, event.id, seed_of)
    # Seed 4 finished second in group A
    disqualify_team(session, teams[3].id, event.id)

    build_knockout_phase(session, event.id)

    knockout_teams = set()
    for position, match in by_position(event.id).items():
        if match.group_id is None:
            knockout_teams.update(match.team_ids)
    assert teams[3].id not in knockout_teams
    assert teams[4].id in knockout_teams


def test_double_elimination_knockout(session: Session, make_event, by_position):
    event, teams = make_event(
        EventMode.group, 8, group_count=2, teams_advance_per_group=2,
        knockout_mode=KnockoutMode.double_elimination,
    )
    build_bracket(session, event.id)
    play_group_phase(session, event.id, {t.id: t.seed for t in teams})

    build_knockout_phase(session, event.id)

    m = by_position(event.id)
    assert {"W-R1-M1", "W-R2-M1", "L-R1-M1", "L-R2-M1", "GF-M1", "GF-M2"} <= set(m)
    assert m["W-R1-M1"].loser_next_match_id == m["L-R1-M1"].id


# ============================================================================
# Pure seeding helpers
# ============================================================================

def standings_for(group_id, team_ids):
    return [Standing(team_id=t, team_name=f"T{t}", group_id=group_id) for t in team_ids]


def test_interleave_alternates_direction_per_tier():
    standings = {
        "group-A": standings_for("group-A", [1, 4, 7]),
        "group-B": standings_for("group-B", [2, 5, 8]),
        "group-C": standings_for("group-C", [3, 6, 9]),
    }
    seeded = interleave_group_qualifiers(standings, 3)
    assert [t.id for t in seeded] == [1, 2, 3, 6, 5, 4, 7, 8, 9]
    assert [t.seed for t in seeded] == list(range(1, 10))


def test_interleave_skips_short_groups():
    standings = {
        "group-A": standings_for("group-A", [1, 3]),
        "group-B": standings_for("group-B", [2]),
    }
    assert [t.id for t in interleave_group_qualifiers(standings, 2)] == [1, 2, 3]


def test_generate_knockout_offsets_rounds():
    standings = {
        "group-A": standings_for("group-A", [1, 3]),
        "group-B": standings_for("group-B", [2, 4]),
    }
    graph = generate_knockout_from_groups(standings, 2, KnockoutMode.single_elimination, round_offset=3)
    assert [r.round_number for r in graph.rounds_in_order()] == [4, 5]


def test_generate_knockout_rejects_bad_input():
    standings = {"group-A": standings_for("group-A", [1, 2])}
    with pytest.raises(InvalidInput):
        generate_knockout_from_groups(standings, 0, KnockoutMode.single_elimination)
    with pytest.raises(InvalidInput):
        generate_knockout_from_groups(standings, 1, KnockoutMode.single_elimination)
