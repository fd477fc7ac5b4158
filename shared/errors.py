"""
Domain error taxonomy shared by the engines and the HTTP layer.

Every error carries a human readable ``reason`` and an HTTP ``status_code``;
``kind`` is the class name and is what clients match on.
"""


class BanroomError(Exception):
    status_code = 400
    family = "Error"

    def __init__(self, reason: str = None, **context):
        self.reason = reason or self.default_reason(**context)
        self.context = context
        super().__init__(self.reason)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def default_reason(self, **context) -> str:
        return self.family

    def to_dict(self) -> dict:
        return {
            'error': self.reason,
            'kind': self.kind,
            'family': self.family,
        }


# ==================== Families ====================

class NotFound(BanroomError):
    status_code = 404
    family = "NotFound"


class Forbidden(BanroomError):
    status_code = 403
    family = "Forbidden"


class Conflict(BanroomError):
    status_code = 400
    family = "Conflict"


class Validation(BanroomError):
    status_code = 400
    family = "Validation"


class Unauthorized(BanroomError):
    status_code = 401
    family = "Unauthorized"

    def default_reason(self, **context):
        return "Authentication required"


# ==================== NotFound ====================

class BracketNotFound(NotFound):
    def default_reason(self, bracket_id=None, **context):
        return f"Bracket {bracket_id} not found"


class MatchNotFound(NotFound):
    def default_reason(self, match_id=None, **context):
        return f"Match {match_id} not found in the bracket"


class RoomNotFound(NotFound):
    def default_reason(self, room_code=None, **context):
        return f"Room {room_code} not found"


class UserNotFound(NotFound):
    def default_reason(self, username=None, **context):
        return f"User {username} not found" if username else "User not found"


class TeamNotFound(NotFound):
    def default_reason(self, **context):
        return "Team not found"


# ==================== Conflict ====================

class AlreadyFull(Conflict):
    def default_reason(self, **context):
        return "Room is full"


class DuplicateParticipant(Conflict):
    def default_reason(self, participant_id=None, **context):
        return f"{participant_id} already holds a slot in this draft"


class AlreadyInRoom(DuplicateParticipant):
    def default_reason(self, participant_id=None, **context):
        return f"Team {participant_id} is already in this room"


class NotStarted(Conflict):
    def default_reason(self, **context):
        return "Map selection has not started yet"


class DraftComplete(Conflict):
    def default_reason(self, **context):
        return "Map selection is over, no maps left to ban"


class NotYourTurn(Conflict):
    def default_reason(self, **context):
        return "It is not your turn"


class TitleUnavailable(Conflict):
    def default_reason(self, title=None, **context):
        return f"Title {title} is not available"


class DraftNotComplete(Conflict):
    def default_reason(self, **context):
        return "You can only make this choice after the title selection is complete"


class SideAlreadyChosen(Conflict):
    def default_reason(self, choice=None, **context):
        return f"Side has already been chosen: {choice}"


class MatchAlreadyDecided(Conflict):
    def default_reason(self, match_id=None, **context):
        return f"Match {match_id} is decided and the next round already exists"


class AlreadyExists(Conflict):
    def default_reason(self, what=None, **context):
        return f"{what or 'Record'} already exists"


class StaleState(Conflict):
    status_code = 409

    def default_reason(self, **context):
        return "State changed while the request was processed, reload and retry"


# ==================== Validation ====================

class UnknownTitle(Validation):
    def default_reason(self, title=None, **context):
        return f"Unknown title {title}"


class InvalidChoice(Validation):
    def default_reason(self, choices=(), **context):
        return f"Choice must be one of: {', '.join(choices)}"


class InvalidWinner(Validation):
    def default_reason(self, winner=None, match_id=None, **context):
        return f"Winner {winner} is not in match {match_id}"


class InvalidPairings(Validation):
    pass


class RosterTooLarge(Validation):
    def default_reason(self, limit=5, **context):
        return f"Team cannot have more than {limit} members"


class NoTeam(Validation):
    def default_reason(self, **context):
        return "You have no team"


class InvalidCredentials(Validation):
    def default_reason(self, **context):
        return "Invalid credentials"


class RoundMismatch(Validation):
    def default_reason(self, match_id=None, round_num=None, **context):
        return f"Match {match_id} is not in round {round_num}"
