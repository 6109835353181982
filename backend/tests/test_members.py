"""Member directory, profiles, upcoming matches and club aggregates."""
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from courtclub.errors import Forbidden, InvalidRequest, NotFound
from courtclub.models.booking import Booking, BookingStatus
from courtclub.models.match import Match, MatchStatus, WinningSide
from courtclub.models.tournament import TournamentStatus
from courtclub.models.tournament_participant import TournamentParticipant
from courtclub.models.wallet_transaction import TransactionStatus, TransactionType, WalletTransaction
from courtclub.services import admin_service, match_service, member_service

NOW = datetime(2030, 1, 15, 8, 0)


def headers(member_id: int, *roles: str) -> dict:
    h = {"X-Member-Id": str(member_id)}
    if roles:
        h["X-Member-Roles"] = ",".join(roles)
    return h


@pytest.fixture
def add_match(session: Session):
    def _add(team1, team2, start_time=NOW, status=MatchStatus.scheduled, winning_side=None) -> Match:
        match = Match(
            start_time=start_time,
            team1_player1_id=team1,
            team2_player1_id=team2,
            status=status,
            winning_side=winning_side,
        )
        session.add(match)
        session.commit()
        session.refresh(match)
        return match

    return _add


# ============================================================================
# Directory
# ============================================================================


def test_directory_orders_by_rank_and_hides_inactive(session: Session, make_member):
    mid = make_member(rank_level=4.0, name="Linh Tran")
    top = make_member(rank_level=5.5, name="An Nguyen")
    low = make_member(rank_level=2.5, name="Bao Le")
    make_member(rank_level=7.0, name="Gone Player", is_active=False)

    items, total = member_service.list_members(session)

    assert total == 3
    assert [m.id for m in items] == [top.id, mid.id, low.id]


def test_directory_filters_and_pages(session: Session, make_member):
    make_member(rank_level=3.0, name="Minh Pham", tier="gold", total_spent="10000000")
    gold_two = make_member(rank_level=3.5, name="Minh Vo", tier="gold", total_spent="10000000")
    make_member(rank_level=6.0, name="Minh Do")

    items, total = member_service.list_members(session, search="Minh", tier="gold")
    assert total == 2
    assert items[0].id == gold_two.id

    page_two, total = member_service.list_members(session, search="Minh", page=2, page_size=2)
    assert total == 3
    assert len(page_two) == 1


# ============================================================================
# Profile
# ============================================================================


def test_profile_counts_matches_wins_and_tournaments(
    session: Session, make_member, make_tournament, add_match
):
    member, rival = make_member(), make_member()
    add_match(member.id, rival.id, datetime(2030, 1, 1, 9), MatchStatus.finished, WinningSide.team1)
    add_match(rival.id, member.id, datetime(2030, 1, 2, 9), MatchStatus.finished, WinningSide.team1)
    latest = add_match(rival.id, member.id, datetime(2030, 1, 3, 9), MatchStatus.finished, WinningSide.team2)
    add_match(rival.id, make_member().id, datetime(2030, 1, 4, 9))
    for _ in range(2):
        session.add(TournamentParticipant(tournament_id=make_tournament().id, member_id=member.id))
    session.commit()

    profile = member_service.get_profile(session, member.id)

    assert profile.total_matches == 3
    assert profile.total_wins == 2
    assert profile.total_tournaments == 2
    assert profile.recent_matches[0].id == latest.id


def test_profile_keeps_only_latest_five_matches(session: Session, make_member, add_match):
    member, rival = make_member(), make_member()
    for day in range(1, 8):
        add_match(member.id, rival.id, datetime(2030, 1, day, 9))

    profile = member_service.get_profile(session, member.id)

    assert profile.total_matches == 7
    assert [m.start_time.day for m in profile.recent_matches] == [7, 6, 5, 4, 3]


def test_update_member(session: Session, make_member):
    member, other = make_member(name="Old Name"), make_member()

    updated = member_service.update_member(session, member.id, member.id, "  New Name ", "https://img/a.png")
    assert updated.full_name == "New Name"
    assert updated.avatar_url == "https://img/a.png"

    kept = member_service.update_member(session, member.id, member.id, full_name="")
    assert kept.full_name == "New Name"

    with pytest.raises(InvalidRequest):
        member_service.update_member(session, member.id, member.id, full_name="   ")
    with pytest.raises(Forbidden):
        member_service.update_member(session, member.id, other.id, full_name="Hijack")
    by_admin = member_service.update_member(session, member.id, other.id, full_name="Set By Admin", is_admin=True)
    assert by_admin.full_name == "Set By Admin"
    with pytest.raises(NotFound):
        member_service.update_member(session, 9999, 9999, full_name="Nobody")


# ============================================================================
# Upcoming matches
# ============================================================================


def test_upcoming_matches_are_scheduled_from_today_soonest_first(session: Session, make_member, add_match):
    member, rival = make_member(), make_member()
    later = add_match(rival.id, member.id, datetime(2030, 1, 20, 9))
    today_early = add_match(member.id, rival.id, datetime(2030, 1, 15, 6))
    add_match(member.id, rival.id, datetime(2030, 1, 14, 9))
    add_match(member.id, rival.id, datetime(2030, 1, 16, 9), MatchStatus.finished, WinningSide.team1)
    add_match(rival.id, make_member().id, datetime(2030, 1, 16, 9))

    upcoming = match_service.list_upcoming_matches(session, member.id, now=NOW)

    assert [m.id for m in upcoming] == [today_early.id, later.id]


def test_upcoming_matches_are_capped(session: Session, make_member, add_match):
    member, rival = make_member(), make_member()
    for day in range(16, 28):
        add_match(member.id, rival.id, datetime(2030, 1, day, 9))

    assert len(match_service.list_upcoming_matches(session, member.id, now=NOW)) == 10


# ============================================================================
# Club aggregates
# ============================================================================


def test_club_balance_flags_negative_fund(session: Session, make_member):
    make_member(balance="150000")
    make_member(balance="-400000")

    result = admin_service.club_balance(session, now=NOW)

    assert result["total_balance"] == Decimal("-250000.00")
    assert result["is_negative"] is True
    assert result["warning"] == admin_service.NEGATIVE_FUND_WARNING
    assert result["member_count"] == 2


def test_dashboard_stats(session: Session, make_member, make_court, make_tournament):
    gold = make_member(balance="1000000", tier="gold", total_spent="10000000")
    make_member(balance="500000")
    court = make_court()
    for start, status, created in [
        (datetime(2030, 1, 20, 9), BookingStatus.confirmed, datetime(2030, 1, 3)),
        (datetime(2030, 1, 10, 9), BookingStatus.confirmed, datetime(2030, 1, 2)),
        (datetime(2030, 1, 21, 9), BookingStatus.cancelled, datetime(2029, 12, 30)),
    ]:
        session.add(
            Booking(
                court_id=court.id,
                member_id=gold.id,
                start_time=start,
                end_time=start.replace(hour=10),
                total_price=Decimal("100000"),
                status=status,
                created_at=created,
            )
        )
    for amount, txn_type, status, created in [
        ("-100000", TransactionType.payment, TransactionStatus.completed, datetime(2030, 1, 3)),
        ("300000", TransactionType.deposit, TransactionStatus.completed, datetime(2030, 1, 5)),
        ("200000", TransactionType.deposit, TransactionStatus.pending, datetime(2030, 1, 6)),
        ("50000", TransactionType.refund, TransactionStatus.completed, datetime(2030, 1, 7)),
        ("-70000", TransactionType.payment, TransactionStatus.completed, datetime(2029, 12, 28)),
    ]:
        session.add(
            WalletTransaction(
                member_id=gold.id, amount=Decimal(amount), type=txn_type, status=status, created_at=created
            )
        )
    session.commit()
    make_tournament(status=TournamentStatus.open)
    make_tournament(status=TournamentStatus.registering)
    make_tournament(status=TournamentStatus.ongoing)

    stats = admin_service.dashboard_stats(session, now=NOW)

    assert stats["members"]["total"] == 2
    assert {"tier": "gold", "count": 1} in stats["members"]["by_tier"]
    assert {"tier": "diamond", "count": 0} in stats["members"]["by_tier"]
    assert stats["bookings"] == {"total": 3, "this_month": 2, "active": 1}
    assert stats["tournaments"] == {"total": 3, "open": 2, "ongoing": 1}
    assert stats["finance"]["club_balance"] == Decimal("1500000.00")
    assert stats["finance"]["this_month_revenue"] == Decimal("400000.00")
    assert stats["finance"]["pending_deposits"] == 1


# ============================================================================
# HTTP
# ============================================================================


def test_member_routes(client: TestClient, make_member):
    member = make_member(rank_level=4.2, name="Hoa Ly")
    other = make_member(rank_level=3.1)

    directory = client.get("/api/members", params={"search": "Hoa"}, headers=headers(other.id))
    assert directory.status_code == 200
    assert [m["id"] for m in directory.json()["items"]] == [member.id]

    profile = client.get(f"/api/members/{member.id}/profile", headers=headers(other.id))
    assert profile.status_code == 200
    assert profile.json()["total_matches"] == 0
    assert profile.json()["recent_matches"] == []
    assert client.get("/api/members/9999/profile", headers=headers(other.id)).status_code == 404

    denied = client.put(f"/api/members/{member.id}", json={"full_name": "X"}, headers=headers(other.id))
    assert denied.status_code == 403
    renamed = client.put(f"/api/members/{member.id}", json={"full_name": "Hoa Ly Tran"}, headers=headers(member.id))
    assert renamed.json()["full_name"] == "Hoa Ly Tran"


def test_upcoming_route_is_not_shadowed_by_match_id(client: TestClient, make_member, add_match):
    member, rival = make_member(), make_member()
    match = add_match(member.id, rival.id, datetime(2099, 1, 1, 9))

    response = client.get("/api/matches/upcoming", headers=headers(member.id))

    assert response.status_code == 200
    assert [m["id"] for m in response.json()] == [match.id]


def test_admin_aggregate_roles(client: TestClient, make_member):
    member = make_member(balance="100000")

    assert client.get("/api/admin/club-balance", headers=headers(member.id)).status_code == 403
    balance = client.get("/api/admin/club-balance", headers=headers(1, "Treasurer"))
    assert balance.status_code == 200
    assert Decimal(str(balance.json()["total_balance"])) == Decimal("100000")
    assert balance.json()["is_negative"] is False

    assert client.get("/api/admin/dashboard/stats", headers=headers(1, "Treasurer")).status_code == 403
    stats = client.get("/api/admin/dashboard/stats", headers=headers(1, "Admin"))
    assert stats.status_code == 200
    assert stats.json()["members"]["total"] == 1
