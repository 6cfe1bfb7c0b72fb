"""
Exceptions raised when a game command is rejected.

Every rejection happens before any write, so catching one of these means the
room is exactly as it was before the command was issued.
"""

from typing import Any, Dict


class GameError(Exception):
    """Base class for all rejected game commands."""
    code = "game_error"
    status = 400
    default_message = "Game command rejected"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class RoomNotFound(GameError):
    code = "room_not_found"
    status = 404
    default_message = "Room not found"


class PlayerNotFound(GameError):
    code = "player_not_found"
    status = 404
    default_message = "Player not found in this room"


class InsufficientPlayers(GameError):
    code = "insufficient_players"
    status = 409
    default_message = "Need at least 3 players to start"

    def __init__(self, player_count: int, min_players: int = 3):
        self.player_count = player_count
        self.min_players = min_players
        super().__init__(f"Need at least {min_players} players to start, room has {player_count}")


class Forbidden(GameError):
    code = "forbidden"
    status = 403
    default_message = "This action is not allowed for this player"


class InvalidTransition(GameError):
    code = "invalid_transition"
    status = 409
    default_message = "Action not allowed in the current phase"


class DuplicateVote(GameError):
    code = "duplicate_vote"
    status = 409
    default_message = "Player has already voted in this phase"


class InvalidTarget(GameError):
    code = "invalid_target"
    status = 422
    default_message = "Invalid target"


class InvalidInput(GameError):
    code = "invalid_input"
    status = 422
    default_message = "Invalid input"


class RoomFull(GameError):
    code = "room_full"
    status = 409
    default_message = "Room is full"


class RoomCodeTaken(GameError):
    code = "room_code_taken"
    status = 503
    default_message = "Room code already in use"


class RoomCodeExhausted(GameError):
    code = "room_code_exhausted"
    status = 503
    default_message = "Could not allocate a free room code"


class StaleState(GameError):
    """Raised by a store when a commit was computed against an outdated room version."""
    code = "stale_state"
    status = 409
    default_message = "Room changed while the command was being applied"

    def __init__(self, room_code: str, expected_version: int, actual_version: int):
        self.room_code = room_code
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Room {room_code} is at version {actual_version}, command expected {expected_version}"
        )
