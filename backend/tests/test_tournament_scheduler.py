"""Registration, draw ordering, knockout and round-robin generation."""
import json
from datetime import date, datetime
from decimal import Decimal
from itertools import combinations

import pytest
from sqlmodel import Session, select

from courtclub.errors import InsufficientFunds, InsufficientParticipants, InvalidState, NotFound
from courtclub.models.match import Match, MatchStatus, WinningSide
from courtclub.models.tournament import TournamentFormat, TournamentStatus
from courtclub.models.wallet_transaction import WalletTransaction
from courtclub.services import match_service, tournament_service

START = date(2026, 3, 2)


# ============================================================================
# Pure helpers
# ============================================================================


@pytest.mark.parametrize("n, size", [(2, 2), (3, 4), (4, 4), (5, 8), (8, 8), (9, 16), (17, 32)])
def test_bracket_size(n, size):
    assert tournament_service.bracket_size(n) == size


@pytest.mark.parametrize(
    "size, name",
    [(2, "Final"), (4, "Semi Final"), (8, "Quarter Final"), (16, "Round of 16"), (32, "Round of 32"), (64, "Round 6")],
)
def test_knockout_round_name(size, name):
    assert tournament_service.knockout_round_name(size) == name


def test_knockout_pairings_of_five_have_byes():
    pairs = tournament_service.knockout_pairings(["a", "b", "c", "d", "e"])
    assert pairs == [("a", None), ("b", None), ("c", None), ("d", "e")]


def test_knockout_pairings_full_bracket():
    assert tournament_service.knockout_pairings([1, 2, 3, 4]) == [(1, 4), (2, 3)]


def test_round_robin_pairings_complete():
    entries = list(range(6))
    pairs = tournament_service.round_robin_pairings(entries)
    assert len(pairs) == 6 * 5 // 2
    assert {frozenset(p) for p in pairs} == {frozenset(p) for p in combinations(entries, 2)}


def test_order_participants_seeded_first(session: Session, make_tournament, add_participants):
    tournament = make_tournament()
    p = add_participants(tournament, 5, seeds=[None, 2, None, 1, 3])

    ordered = tournament_service.order_participants(p)

    assert [x.id for x in ordered] == [p[3].id, p[1].id, p[4].id, p[0].id, p[2].id]


# ============================================================================
# Registration
# ============================================================================


def test_join_charges_fee_and_opens_registration(session: Session, make_member, make_tournament):
    tournament = make_tournament(entry_fee="200000")
    member = make_member(balance="500000")

    participant = tournament_service.join_tournament(session, tournament.id, member.id, team_name="Smash")

    assert participant.team_name == "Smash"
    assert participant.payment_status is True
    session.refresh(member)
    session.refresh(tournament)
    assert member.wallet_balance == Decimal("300000")
    assert member.total_spent == Decimal("200000")
    assert tournament.status == TournamentStatus.registering
    txn = session.exec(select(WalletTransaction)).one()
    assert txn.related_id == f"Tournament:{tournament.id}"


def test_join_rejects_duplicates_and_full(session: Session, make_member, make_tournament):
    tournament = make_tournament(settings=json.dumps({"maxParticipants": 2}))
    a, b, c = make_member(), make_member(), make_member()

    tournament_service.join_tournament(session, tournament.id, a.id)
    with pytest.raises(InvalidState):
        tournament_service.join_tournament(session, tournament.id, a.id)
    tournament_service.join_tournament(session, tournament.id, b.id)
    with pytest.raises(InvalidState):
        tournament_service.join_tournament(session, tournament.id, c.id)

    assert len(tournament_service.list_participants(session, tournament.id)) == 2


def test_join_without_funds_registers_nothing(session: Session, make_member, make_tournament):
    tournament = make_tournament(entry_fee="100000")
    member = make_member(balance="1")

    with pytest.raises(InsufficientFunds):
        tournament_service.join_tournament(session, tournament.id, member.id)

    assert tournament_service.list_participants(session, tournament.id) == []
    session.refresh(tournament)
    assert tournament.status == TournamentStatus.open


def test_join_closed_after_draw(session: Session, make_member, make_tournament):
    tournament = make_tournament(status="draw_completed")
    with pytest.raises(InvalidState):
        tournament_service.join_tournament(session, tournament.id, make_member().id)


def test_max_participants_defaults_to_16(make_tournament):
    assert tournament_service.get_max_participants(make_tournament()) == 16
    assert tournament_service.get_max_participants(make_tournament(settings="not json")) == 16
    assert tournament_service.get_max_participants(make_tournament(settings='{"maxParticipants": 8}')) == 8


# ============================================================================
# Schedule generation
# ============================================================================


def test_knockout_schedule_for_five(session: Session, make_tournament, add_participants):
    tournament = make_tournament(format=TournamentFormat.knockout)
    participants = add_participants(tournament, 5)

    matches = tournament_service.generate_schedule(session, tournament.id)

    assert len(matches) == 4
    assert all(m.round_name == "Quarter Final" for m in matches)
    assert any(m.team2_player1_id is None for m in matches)
    assert all(m.is_ranked and m.status == MatchStatus.scheduled for m in matches)
    assert [m.start_time for m in matches] == [
        datetime(2026, 3, 2, 9),
        datetime(2026, 3, 2, 11),
        datetime(2026, 3, 2, 13),
        datetime(2026, 3, 2, 15),
    ]
    ids = [p.member_id for p in participants]
    assert (matches[3].team1_player1_id, matches[3].team2_player1_id) == (ids[3], ids[4])

    session.refresh(tournament)
    assert tournament.status == TournamentStatus.draw_completed


def test_knockout_respects_seeds(session: Session, make_tournament, add_participants):
    tournament = make_tournament(format=TournamentFormat.knockout)
    p = add_participants(tournament, 4, seeds=[4, 3, 2, 1])

    matches = tournament_service.generate_schedule(session, tournament.id)

    assert len(matches) == 2
    assert matches[0].round_name == "Semi Final"
    # seed 1 meets seed 4, seed 2 meets seed 3
    assert (matches[0].team1_player1_id, matches[0].team2_player1_id) == (p[3].member_id, p[0].member_id)
    assert (matches[1].team1_player1_id, matches[1].team2_player1_id) == (p[2].member_id, p[1].member_id)


def test_round_robin_schedule(session: Session, make_tournament, add_participants):
    tournament = make_tournament(format=TournamentFormat.round_robin)
    participants = add_participants(tournament, 5)

    matches = tournament_service.generate_schedule(session, tournament.id)

    assert len(matches) == 10
    pairs = {frozenset((m.team1_player1_id, m.team2_player1_id)) for m in matches}
    assert pairs == {frozenset(c) for c in combinations([p.member_id for p in participants], 2)}
    assert all(m.round_name == "Group Stage" for m in matches)
    assert [m.start_time for m in matches[:5]] == [
        datetime(2026, 3, 2, 9),
        datetime(2026, 3, 2, 11),
        datetime(2026, 3, 2, 13),
        datetime(2026, 3, 2, 15),
        datetime(2026, 3, 3, 9),
    ]
    assert matches[-1].start_time == datetime(2026, 3, 4, 11)


def test_hybrid_generates_group_stage(session: Session, make_tournament, add_participants):
    tournament = make_tournament(format=TournamentFormat.hybrid)
    add_participants(tournament, 4)

    matches = tournament_service.generate_schedule(session, tournament.id)

    assert len(matches) == 6
    assert {m.round_name for m in matches} == {"Group Stage"}


def test_doubles_partners_fill_second_slot(session: Session, make_tournament, add_participants):
    tournament = make_tournament(format=TournamentFormat.knockout)
    p = add_participants(tournament, 2, partners=True)

    (match,) = tournament_service.generate_schedule(session, tournament.id)

    assert match.round_name == "Final"
    assert match.team1_ids() == [p[0].member_id, p[0].partner_id]
    assert match.team2_ids() == [p[1].member_id, p[1].partner_id]


def test_generate_requires_two_participants(session: Session, make_tournament, add_participants):
    tournament = make_tournament()
    add_participants(tournament, 1)
    with pytest.raises(InsufficientParticipants):
        tournament_service.generate_schedule(session, tournament.id)
    with pytest.raises(NotFound):
        tournament_service.generate_schedule(session, 424242)


def test_regeneration_replaces_matches(session: Session, make_tournament, add_participants):
    tournament = make_tournament(format=TournamentFormat.round_robin)
    add_participants(tournament, 3)
    first = tournament_service.generate_schedule(session, tournament.id)
    first_ids = {m.id for m in first}

    second = tournament_service.generate_schedule(session, tournament.id)

    stored = session.exec(select(Match).where(Match.tournament_id == tournament.id)).all()
    assert len(stored) == 3
    assert {m.id for m in stored} == {m.id for m in second}
    assert len(first_ids) == 3


def test_regeneration_after_results_is_permitted_while_draw_completed(
    session: Session, make_tournament, add_participants
):
    """Regenerating discards recorded results while the tournament is still draw_completed.

    Rank adjustments already applied are not reverted.
    """
    tournament = make_tournament(format=TournamentFormat.knockout)
    add_participants(tournament, 2)
    (match,) = tournament_service.generate_schedule(session, tournament.id)
    match_id = match.id
    match_service.record_result(session, match_id, 2, 0, "11-5, 11-7", WinningSide.team1)

    (fresh,) = tournament_service.generate_schedule(session, tournament.id)

    assert fresh.status == MatchStatus.scheduled
    assert fresh.id != match_id
    assert session.get(Match, match_id) is None
    finished = session.exec(
        select(Match).where(Match.tournament_id == tournament.id, Match.status == MatchStatus.finished)
    ).all()
    assert finished == []


def test_no_regeneration_once_ongoing(session: Session, make_tournament, add_participants):
    tournament = make_tournament(format=TournamentFormat.knockout)
    add_participants(tournament, 2)
    tournament_service.generate_schedule(session, tournament.id)
    tournament_service.advance_tournament_status(session, tournament.id, TournamentStatus.ongoing)

    with pytest.raises(InvalidState):
        tournament_service.generate_schedule(session, tournament.id)


def test_status_moves_forward_only(session: Session, make_tournament, add_participants):
    tournament = make_tournament()
    add_participants(tournament, 2)

    with pytest.raises(InvalidState):
        tournament_service.advance_tournament_status(session, tournament.id, TournamentStatus.ongoing)

    tournament_service.generate_schedule(session, tournament.id)
    tournament_service.advance_tournament_status(session, tournament.id, TournamentStatus.ongoing)
    with pytest.raises(InvalidState):
        tournament_service.advance_tournament_status(session, tournament.id, TournamentStatus.draw_completed)
    finished = tournament_service.advance_tournament_status(session, tournament.id, TournamentStatus.finished)
    assert finished.status == TournamentStatus.finished
