import os

# Must be set before courtclub is imported: the app engine and sweeper read them at import/startup
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SWEEPER_ENABLED"] = "false"

from datetime import date, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402
from itertools import count  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

import courtclub.models  # noqa: E402, F401
from courtclub.database import get_session  # noqa: E402
from courtclub.main import app  # noqa: E402
from courtclub.models.court import Court  # noqa: E402
from courtclub.models.member import Member  # noqa: E402
from courtclub.models.tournament import Tournament, TournamentFormat  # noqa: E402
from courtclub.models.tournament_participant import TournamentParticipant  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share one DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Tables dropped and recreated per test (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override is set BEFORE TestClient() so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Factories
# ============================================================================

_seq = count(1)


@pytest.fixture
def make_member(session: Session):
    def _make(balance="0", total_spent="0", tier="standard", rank_level=3.0, name=None, is_active=True) -> Member:
        n = next(_seq)
        member = Member(
            user_id=f"user-{n}",
            full_name=name or f"Member {n}",
            wallet_balance=Decimal(balance),
            total_spent=Decimal(total_spent),
            tier=tier,
            rank_level=rank_level,
            is_active=is_active,
        )
        session.add(member)
        session.commit()
        session.refresh(member)
        return member

    return _make


@pytest.fixture
def make_court(session: Session):
    def _make(price_per_hour="100000", name=None, is_active=True) -> Court:
        court = Court(name=name or f"Court {next(_seq)}", price_per_hour=Decimal(price_per_hour), is_active=is_active)
        session.add(court)
        session.commit()
        session.refresh(court)
        return court

    return _make


@pytest.fixture
def make_tournament(session: Session):
    def _make(
        format=TournamentFormat.knockout,
        entry_fee="0",
        start_date=None,
        settings=None,
        status="open",
    ) -> Tournament:
        start = start_date or date(2026, 3, 2)
        tournament = Tournament(
            name=f"Cup {next(_seq)}",
            start_date=start,
            end_date=start + timedelta(days=2),
            format=format,
            entry_fee=Decimal(entry_fee),
            settings=settings,
            status=status,
        )
        session.add(tournament)
        session.commit()
        session.refresh(tournament)
        return tournament

    return _make


@pytest.fixture
def add_participants(session: Session, make_member):
    """Register n fresh members directly (no fee); seeds optional, in registration order."""

    def _add(tournament: Tournament, n: int, seeds=None, partners=False):
        participants = []
        for i in range(n):
            member = make_member()
            partner = make_member() if partners else None
            participant = TournamentParticipant(
                tournament_id=tournament.id,
                member_id=member.id,
                partner_id=partner.id if partner else None,
                seed=seeds[i] if seeds else None,
                payment_status=True,
            )
            session.add(participant)
            session.commit()
            session.refresh(participant)
            participants.append(participant)
        return participants

    return _add
