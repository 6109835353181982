from courtclub.models.booking import LIVE_BOOKING_STATUSES, Booking, BookingStatus
from courtclub.models.court import Court
from courtclub.models.match import Match, MatchStatus, WinningSide
from courtclub.models.member import Member, MemberTier
from courtclub.models.notification import Notification, NotificationType
from courtclub.models.tournament import Tournament, TournamentFormat, TournamentStatus
from courtclub.models.tournament_participant import TournamentParticipant
from courtclub.models.wallet_transaction import TransactionStatus, TransactionType, WalletTransaction

__all__ = [
    "Member",
    "MemberTier",
    "WalletTransaction",
    "TransactionType",
    "TransactionStatus",
    "Court",
    "Booking",
    "BookingStatus",
    "LIVE_BOOKING_STATUSES",
    "Tournament",
    "TournamentFormat",
    "TournamentStatus",
    "TournamentParticipant",
    "Match",
    "MatchStatus",
    "WinningSide",
    "Notification",
    "NotificationType",
]
