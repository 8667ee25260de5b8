"""Round status, current round and display names."""

from sqlmodel import Session, select

from bracket_engine.models.event import EventMode
from bracket_engine.models.round import Round, RoundPhase, RoundStatus
from bracket_engine.services.bracket_builder import build_bracket
from bracket_engine.services.progression import record_result
from bracket_engine.services.round_service import get_current_round, round_display_name
from bracket_engine.services.table_service import assign_table


def rounds_by_number(session: Session, event_id: int):
    session.expire_all()
    rounds = session.exec(select(Round).where(Round.event_id == event_id)).all()
    return {r.round_number: r for r in rounds}


def test_round_status_follows_matches(session: Session, make_event, by_position):
    event, _ = make_event(EventMode.single_elimination, 4, table_count=2)
    build_bracket(session, event.id)
    m = by_position(event.id)
    assert rounds_by_number(session, event.id)[1].status == RoundStatus.pending

    assign_table(session, m["R1-M1"].id, 1)
    assert rounds_by_number(session, event.id)[1].status == RoundStatus.active

    record_result(session, m["R1-M1"].id, 21, 10)
    record_result(session, m["R1-M2"].id, 21, 10)
    rounds = rounds_by_number(session, event.id)
    assert rounds[1].status == RoundStatus.completed
    assert rounds[2].status == RoundStatus.pending


def test_byes_alone_do_not_activate_a_round(session: Session, make_event):
    event, _ = make_event(EventMode.single_elimination, 5)
    build_bracket(session, event.id)
    assert rounds_by_number(session, event.id)[1].status == RoundStatus.pending


def test_current_round(session: Session, make_event, by_position):
    event, _ = make_event(EventMode.single_elimination, 4)
    build_bracket(session, event.id)
    m = by_position(event.id)
    assert get_current_round(session, event.id).round_number == 1

    record_result(session, m["R1-M1"].id, 21, 10)
    record_result(session, m["R1-M2"].id, 21, 10)
    assert get_current_round(session, event.id).round_number == 2

    record_result(session, m["R2-M1"].id, 21, 10)
    assert get_current_round(session, event.id) is None


def make_rounds(*phases):
    return [
        Round(id=i + 1, event_id=1, round_number=i + 1, phase=phase, name="")
        for i, phase in enumerate(phases)
    ]


def test_display_names_single_elimination():
    rounds = make_rounds(*[RoundPhase.winners] * 5)
    assert [round_display_name(r, rounds) for r in rounds] == [
        "Round 1", "Round of 16", "Quarterfinal", "Semifinal", "Final",
    ]


def test_display_names_double_elimination():
    rounds = make_rounds(
        RoundPhase.winners, RoundPhase.winners,
        RoundPhase.losers, RoundPhase.losers,
        RoundPhase.finals, RoundPhase.finals,
    )
    assert [round_display_name(r, rounds) for r in rounds] == [
        "Winners Round 1", "Winners Round 2",
        "Losers Round 1", "Losers Round 2",
        "Grand Finals", "Reset Match",
    ]


def test_display_names_after_group_phase():
    rounds = make_rounds(RoundPhase.group, RoundPhase.group, RoundPhase.winners, RoundPhase.winners)
    assert [round_display_name(r, rounds) for r in rounds] == [
        "Round 1", "Round 2", "Semifinal", "Final",
    ]
