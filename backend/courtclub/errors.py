"""
Domain errors for the booking, wallet and tournament services.

Services raise these; the HTTP layer renders them as
``{"detail": "<CODE>: <message>"}`` with the class's status code.
"""


class ClubError(Exception):
    code = "CLUB_ERROR"
    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    @property
    def detail(self) -> str:
        if self.message:
            return f"{self.code}: {self.message}"
        return self.code


class NotFound(ClubError):
    code = "NOT_FOUND"
    status_code = 404


class Forbidden(ClubError):
    code = "FORBIDDEN"
    status_code = 403


class InvalidRequest(ClubError):
    code = "INVALID_REQUEST"
    status_code = 400


class InvalidState(ClubError):
    code = "INVALID_STATE"
    status_code = 400


class AlreadyCancelled(InvalidState):
    code = "ALREADY_CANCELLED"


class AlreadyCompleted(InvalidState):
    code = "ALREADY_COMPLETED"


class InsufficientFunds(ClubError):
    code = "INSUFFICIENT_FUNDS"
    status_code = 400


class SlotConflict(ClubError):
    code = "SLOT_CONFLICT"
    status_code = 409


class TierRestricted(ClubError):
    code = "TIER_RESTRICTED"
    status_code = 403


class NoSlotsAvailable(ClubError):
    code = "NO_SLOTS_AVAILABLE"
    status_code = 409


class InsufficientParticipants(ClubError):
    code = "INSUFFICIENT_PARTICIPANTS"
    status_code = 400


class AlreadyProcessed(ClubError):
    code = "ALREADY_PROCESSED"
    status_code = 409
