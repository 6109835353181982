"""
Member directory and profiles.

Members are never deleted; the directory lists active members only, strongest
rank first. Wallet fields stay read-only here, only the ledger changes them.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sqlmodel import Session, func, select

from courtclub.errors import Forbidden, InvalidRequest, NotFound
from courtclub.models.match import Match, WinningSide
from courtclub.models.member import Member, MemberTier
from courtclub.models.tournament_participant import TournamentParticipant
from courtclub.services.match_service import played_by

logger = logging.getLogger(__name__)

RECENT_MATCHES = 5


@dataclass
class MemberProfile:
    member: Member
    total_matches: int
    total_wins: int
    total_tournaments: int
    recent_matches: List[Match] = field(default_factory=list)


def get_member(session: Session, member_id: int) -> Member:
    member = session.get(Member, member_id)
    if not member:
        raise NotFound(f"Member {member_id} not found")
    return member


def list_members(
    session: Session,
    search: Optional[str] = None,
    tier: Optional[MemberTier] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[Member], int]:
    """One page of active members (rank_level descending) and the total count."""
    filters = [Member.is_active == True]  # noqa: E712
    if search:
        filters.append(Member.full_name.contains(search))
    if tier is not None:
        filters.append(Member.tier == tier)

    total = session.exec(select(func.count(Member.id)).where(*filters)).one()
    items = session.exec(
        select(Member)
        .where(*filters)
        .order_by(Member.rank_level.desc(), Member.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    ).all()
    return list(items), total


def _won(match: Match, member_id: int) -> bool:
    if match.winning_side == WinningSide.team1:
        return member_id in match.team1_ids()
    if match.winning_side == WinningSide.team2:
        return member_id in match.team2_ids()
    return False


def get_profile(session: Session, member_id: int) -> MemberProfile:
    """Member plus match record, tournament count and the latest matches."""
    member = get_member(session, member_id)

    matches = session.exec(
        select(Match).where(played_by(member_id)).order_by(Match.start_time.desc(), Match.id.desc())
    ).all()
    total_tournaments = session.exec(
        select(func.count(TournamentParticipant.id)).where(TournamentParticipant.member_id == member_id)
    ).one()

    return MemberProfile(
        member=member,
        total_matches=len(matches),
        total_wins=sum(1 for m in matches if _won(m, member_id)),
        total_tournaments=total_tournaments,
        recent_matches=list(matches[:RECENT_MATCHES]),
    )


def update_member(
    session: Session,
    member_id: int,
    acting_member_id: int,
    full_name: Optional[str] = None,
    avatar_url: Optional[str] = None,
    is_admin: bool = False,
) -> Member:
    """
    Update display fields. Members edit themselves; admins edit anyone.

    An empty or missing full_name keeps the current name, a whitespace-only
    one is rejected. avatar_url is replaced whenever it is given.
    """
    if member_id != acting_member_id and not is_admin:
        raise Forbidden("You can only update your own profile")

    member = get_member(session, member_id)
    if full_name:
        if not full_name.strip():
            raise InvalidRequest("full_name cannot be blank")
        member.full_name = full_name.strip()
    if avatar_url is not None:
        member.avatar_url = avatar_url

    session.add(member)
    session.commit()
    session.refresh(member)
    logger.info("Member %d profile updated by %d", member_id, acting_member_id)
    return member
