"""
Match play: start and result recording.

A finished match is immutable. Ranked matches adjust each present player's
rank_level once, in the same unit of work that flips the match to finished.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, or_, select

from courtclub.database import atomic
from courtclub.errors import InvalidRequest, InvalidState, NotFound
from courtclub.models.match import Match, MatchStatus, WinningSide
from courtclub.models.member import Member
from courtclub.models.notification import NotificationType
from courtclub.services.notification_service import notify
from courtclub.utils.clock import day_bounds, utcnow

logger = logging.getLogger(__name__)

WIN_STEP = 0.05
LOSS_STEP = 0.03
MAX_RANK = 8.0
MIN_RANK = 2.0
UPCOMING_LIMIT = 10


def get_match(session: Session, match_id: int) -> Match:
    match = session.get(Match, match_id)
    if not match:
        raise NotFound(f"Match {match_id} not found")
    return match


def match_link(match_id: int) -> str:
    return f"/matches/{match_id}"


def played_by(member_id: int):
    """Filter for matches with the member in any of the four slots."""
    return or_(
        Match.team1_player1_id == member_id,
        Match.team1_player2_id == member_id,
        Match.team2_player1_id == member_id,
        Match.team2_player2_id == member_id,
    )


def list_upcoming_matches(
    session: Session, member_id: int, now: Optional[datetime] = None, limit: int = UPCOMING_LIMIT
) -> List[Match]:
    """The member's scheduled matches from today (UTC) on, soonest first."""
    today_start, _ = day_bounds((now or utcnow()).date())
    return list(
        session.exec(
            select(Match)
            .where(
                Match.status == MatchStatus.scheduled,
                Match.start_time >= today_start,
                played_by(member_id),
            )
            .order_by(Match.start_time, Match.id)
            .limit(limit)
        ).all()
    )


def start_match(session: Session, match_id: int) -> Match:
    """scheduled -> in_progress"""
    with atomic(session):
        match = session.get(Match, match_id, with_for_update=True)
        if not match:
            raise NotFound(f"Match {match_id} not found")
        if match.status != MatchStatus.scheduled:
            raise InvalidState(f"Match {match_id} is {match.status}, not scheduled")
        match.status = MatchStatus.in_progress
        session.add(match)

    session.refresh(match)
    logger.info("Match %d started", match_id)
    return match


def apply_rank_adjustment(session: Session, match: Match) -> List[int]:
    """
    Winners min(8.0, r + 0.05), losers max(2.0, r - 0.03), per present slot.

    The cap only bounds winners and the floor only bounds losers, so a winner
    at 1.5 moves to 1.55 and a loser at 8.5 moves to 8.47.
    Returns the ids of adjusted members. Caller owns the unit of work.
    """
    if match.winning_side == WinningSide.team1:
        winners, losers = match.team1_ids(), match.team2_ids()
    else:
        winners, losers = match.team2_ids(), match.team1_ids()

    adjusted = []
    for member_id, won in [(m, True) for m in winners] + [(m, False) for m in losers]:
        member = session.get(Member, member_id, with_for_update=True)
        if member is None:
            continue
        if won:
            new_rank = min(MAX_RANK, member.rank_level + WIN_STEP)
        else:
            new_rank = max(MIN_RANK, member.rank_level - LOSS_STEP)
        member.rank_level = round(new_rank, 4)
        session.add(member)
        adjusted.append(member_id)
    return adjusted


def record_result(
    session: Session,
    match_id: int,
    score1: int,
    score2: int,
    details: Optional[str],
    winning_side: WinningSide,
    push=None,
) -> Match:
    """
    Finish a match with its result.

    Raises:
        NotFound: unknown match
        InvalidState: match already finished
        InvalidRequest: negative scores
    """
    if score1 < 0 or score2 < 0:
        raise InvalidRequest("Scores cannot be negative")
    winning_side = WinningSide(winning_side)

    with atomic(session):
        match = session.get(Match, match_id, with_for_update=True)
        if not match:
            raise NotFound(f"Match {match_id} not found")
        if match.status == MatchStatus.finished:
            raise InvalidState(f"Match {match_id} is already finished")

        match.score1 = score1
        match.score2 = score2
        match.details = details
        match.winning_side = winning_side
        match.status = MatchStatus.finished
        session.add(match)

        if match.is_ranked:
            apply_rank_adjustment(session, match)

        message = f"Match result{f' ({match.round_name})' if match.round_name else ''}: {score1} - {score2}"
        players = match.player_ids()
        for member_id in players:
            notify(session, member_id, message, NotificationType.info, match_link(match.id))

    session.refresh(match)
    logger.info("Recorded result for match %d: %d-%d (%s)", match_id, score1, score2, winning_side.value)
    if push is not None:
        for member_id in players:
            push.notify_member(member_id, message)
        push.broadcast("MatchUpdated", {"match_id": match_id, "score1": score1, "score2": score2})
    return match
