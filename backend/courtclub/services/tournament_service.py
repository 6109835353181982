"""
Tournament registration and schedule generation.

Draw rules:
- Participants ordered by seed ascending, unseeded last, ties by registration.
- Knockout: bracket padded to the next power of two; slot i meets slot
  bracket_size - 1 - i; missing slots are byes (null side). Only the first
  round is created.
- Round-robin: every unordered pair once, "Group Stage", four matches a day
  from 09:00 in 2-hour steps.
- Hybrid: the round-robin group stage.

Generation is destructive (earlier matches of the tournament are deleted) and
allowed until the tournament is ongoing.
"""
import json
import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from courtclub.database import atomic
from courtclub.errors import Forbidden, InsufficientParticipants, InvalidRequest, InvalidState, NotFound
from courtclub.models.match import Match, MatchStatus
from courtclub.models.member import Member
from courtclub.models.tournament import Tournament, TournamentFormat, TournamentStatus
from courtclub.models.tournament_participant import TournamentParticipant
from courtclub.models.wallet_transaction import TransactionType
from courtclub.services import ledger
from courtclub.utils.money import to_money

logger = logging.getLogger(__name__)

KNOCKOUT_ROUND_NAMES = ["Final", "Semi Final", "Quarter Final", "Round of 16", "Round of 32"]
GROUP_STAGE = "Group Stage"

FIRST_MATCH_HOUR = 9
MATCH_SLOT_HOURS = 2
MATCHES_PER_DAY = 4

# Pairing entry: (member_id, partner_id) or None for a bye
Side = Optional[Tuple[int, Optional[int]]]


def tournament_ref(tournament_id: int) -> str:
    return f"Tournament:{tournament_id}"


def get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise NotFound(f"Tournament {tournament_id} not found")
    return tournament


def get_max_participants(tournament: Tournament) -> int:
    return tournament.max_participants()


def create_tournament(
    session: Session,
    name: str,
    start_date: date,
    end_date: date,
    format: TournamentFormat = TournamentFormat.knockout,
    entry_fee=0,
    prize_pool=0,
    description: Optional[str] = None,
    max_participants: Optional[int] = None,
) -> Tournament:
    if end_date < start_date:
        raise InvalidRequest("end_date must be >= start_date")
    if max_participants is not None and max_participants < 2:
        raise InvalidRequest("maxParticipants must be at least 2")
    if to_money(entry_fee) < 0 or to_money(prize_pool) < 0:
        raise InvalidRequest("entry_fee and prize_pool cannot be negative")

    tournament = Tournament(
        name=name,
        description=description,
        start_date=start_date,
        end_date=end_date,
        format=format,
        entry_fee=to_money(entry_fee),
        prize_pool=to_money(prize_pool),
        settings=json.dumps({"maxParticipants": max_participants}) if max_participants else None,
    )
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    logger.info("Created tournament %d (%s, %s)", tournament.id, tournament.name, tournament.format)
    return tournament


def list_tournaments(session: Session, status: Optional[TournamentStatus] = None) -> List[Tournament]:
    query = select(Tournament)
    if status is not None:
        query = query.where(Tournament.status == status)
    return list(session.exec(query.order_by(Tournament.start_date.desc(), Tournament.id.desc())).all())


def list_participants(session: Session, tournament_id: int) -> List[TournamentParticipant]:
    return list(
        session.exec(
            select(TournamentParticipant)
            .where(TournamentParticipant.tournament_id == tournament_id)
            .order_by(TournamentParticipant.registered_at, TournamentParticipant.id)
        ).all()
    )


def list_tournament_matches(session: Session, tournament_id: int) -> List[Match]:
    return list(
        session.exec(
            select(Match).where(Match.tournament_id == tournament_id).order_by(Match.start_time, Match.id)
        ).all()
    )


def join_tournament(
    session: Session,
    tournament_id: int,
    member_id: int,
    team_name: Optional[str] = None,
    partner_id: Optional[int] = None,
) -> TournamentParticipant:
    """
    Register a member, charging the entry fee through the ledger.

    The first successful registration moves the tournament from open to
    registering.
    """
    with atomic(session):
        tournament = session.get(Tournament, tournament_id, with_for_update=True)
        if not tournament:
            raise NotFound(f"Tournament {tournament_id} not found")
        if tournament.status not in (TournamentStatus.open, TournamentStatus.registering):
            raise InvalidState(f"Tournament is {tournament.status}, registration is closed")

        member = session.get(Member, member_id)
        if not member:
            raise NotFound(f"Member {member_id} not found")
        if not member.is_active:
            raise Forbidden("Member account is deactivated")
        if partner_id is not None:
            if partner_id == member_id:
                raise InvalidRequest("A member cannot partner with themselves")
            if not session.get(Member, partner_id):
                raise NotFound(f"Partner {partner_id} not found")

        existing = list_participants(session, tournament_id)
        if any(p.member_id == member_id for p in existing):
            raise InvalidState("Member is already registered for this tournament")
        if len(existing) >= tournament.max_participants():
            raise InvalidState(f"Tournament is full ({tournament.max_participants()} participants)")

        participant = TournamentParticipant(
            tournament_id=tournament_id,
            member_id=member_id,
            team_name=team_name or member.full_name,
            partner_id=partner_id,
            payment_status=True,
        )
        if tournament.entry_fee > 0:
            ledger.debit(
                session,
                member_id,
                tournament.entry_fee,
                TransactionType.payment,
                related_id=tournament_ref(tournament_id),
                description=f"Entry fee: {tournament.name}",
            )

        session.add(participant)
        if tournament.status == TournamentStatus.open:
            tournament.status = TournamentStatus.registering
            session.add(tournament)

    session.refresh(participant)
    logger.info("Member %d joined tournament %d", member_id, tournament_id)
    return participant


# ============================================================================
# Pure draw helpers
# ============================================================================


def order_participants(participants: Sequence[TournamentParticipant]) -> List[TournamentParticipant]:
    """Seed ascending with unseeded last; ties by registration time then id."""
    return sorted(
        participants,
        key=lambda p: (p.seed is None, p.seed if p.seed is not None else 0, p.registered_at, p.id or 0),
    )


def bracket_size(n: int) -> int:
    """Smallest power of two >= n."""
    size = 1
    while size < n:
        size *= 2
    return size


def knockout_round_name(size: int) -> str:
    rounds = size.bit_length() - 1
    if 1 <= rounds <= len(KNOCKOUT_ROUND_NAMES):
        return KNOCKOUT_ROUND_NAMES[rounds - 1]
    return f"Round {rounds}"


def knockout_pairings(entries: Sequence) -> List[Tuple[object, object]]:
    """
    First-round pairs for a seeded bracket.

    Entry i meets entry size-1-i; positions past the end are byes (None).
    Pairs where both sides would be byes are dropped.
    """
    size = bracket_size(len(entries))
    pairs = []
    for i in range(size // 2):
        j = size - 1 - i
        first = entries[i] if i < len(entries) else None
        second = entries[j] if j < len(entries) else None
        if first is None and second is None:
            continue
        pairs.append((first, second))
    return pairs


def round_robin_pairings(entries: Sequence) -> List[Tuple[object, object]]:
    """Every unordered pair once, in nested-loop (i < j) order."""
    return [(entries[i], entries[j]) for i in range(len(entries)) for j in range(i + 1, len(entries))]


def _slot_start(first_day: date, index: int, roll_days: bool) -> datetime:
    day = first_day + timedelta(days=index // MATCHES_PER_DAY) if roll_days else first_day
    hour = FIRST_MATCH_HOUR + (index % MATCHES_PER_DAY) * MATCH_SLOT_HOURS
    return datetime.combine(day, time(hour=hour))


def _build_match(tournament_id: int, round_name: str, start: datetime, side1: Side, side2: Side) -> Match:
    match = Match(
        tournament_id=tournament_id,
        round_name=round_name,
        start_time=start,
        is_ranked=True,
        status=MatchStatus.scheduled,
    )
    if side1 is not None:
        match.team1_player1_id, match.team1_player2_id = side1
    if side2 is not None:
        match.team2_player1_id, match.team2_player2_id = side2
    return match


def build_matches(tournament: Tournament, participants: Sequence[TournamentParticipant]) -> List[Match]:
    """Unsaved Match rows for the tournament's format."""
    sides = [(p.member_id, p.partner_id) for p in order_participants(participants)]

    if tournament.format == TournamentFormat.knockout:
        round_name = knockout_round_name(bracket_size(len(sides)))
        return [
            _build_match(tournament.id, round_name, _slot_start(tournament.start_date, idx, False), a, b)
            for idx, (a, b) in enumerate(knockout_pairings(sides))
        ]

    # round_robin and the hybrid group stage
    return [
        _build_match(tournament.id, GROUP_STAGE, _slot_start(tournament.start_date, idx, True), a, b)
        for idx, (a, b) in enumerate(round_robin_pairings(sides))
    ]


def generate_schedule(session: Session, tournament_id: int) -> List[Match]:
    """
    (Re)generate the tournament's matches and move it to draw_completed.

    Raises:
        NotFound: unknown tournament
        InsufficientParticipants: fewer than 2 registered
        InvalidState: tournament already ongoing or finished
    """
    with atomic(session):
        tournament = session.get(Tournament, tournament_id, with_for_update=True)
        if not tournament:
            raise NotFound(f"Tournament {tournament_id} not found")
        if tournament.status in (TournamentStatus.ongoing, TournamentStatus.finished):
            raise InvalidState(f"Tournament is {tournament.status}; the draw can no longer change")

        participants = list_participants(session, tournament_id)
        if len(participants) < 2:
            raise InsufficientParticipants(f"At least 2 participants required, found {len(participants)}")

        previous = list_tournament_matches(session, tournament_id)
        for match in previous:
            session.delete(match)
        session.flush()

        matches = build_matches(tournament, participants)
        for match in matches:
            session.add(match)

        tournament.status = TournamentStatus.draw_completed
        session.add(tournament)

    for match in matches:
        session.refresh(match)
    logger.info(
        "Generated %d matches for tournament %d (%s), replaced %d",
        len(matches),
        tournament_id,
        tournament.format,
        len(previous),
    )
    return matches


def advance_tournament_status(session: Session, tournament_id: int, target: TournamentStatus) -> Tournament:
    """Forward-only: draw_completed -> ongoing -> finished."""
    allowed: Dict[TournamentStatus, TournamentStatus] = {
        TournamentStatus.draw_completed: TournamentStatus.ongoing,
        TournamentStatus.ongoing: TournamentStatus.finished,
    }
    with atomic(session):
        tournament = session.get(Tournament, tournament_id, with_for_update=True)
        if not tournament:
            raise NotFound(f"Tournament {tournament_id} not found")
        current = TournamentStatus(tournament.status)
        if allowed.get(current) != target:
            raise InvalidState(f"Cannot move tournament from {current.value} to {TournamentStatus(target).value}")
        tournament.status = target
        session.add(tournament)

    session.refresh(tournament)
    logger.info("Tournament %d is now %s", tournament_id, tournament.status)
    return tournament

