"""
Error taxonomy shared by the room store, the game engines and the event handlers.

Every GameError carries a wire `code`; the WebSocket dispatcher turns it into a
failed response for the requesting connection only. Nothing here is ever
broadcast to a room.
"""
from typing import Any, Dict


class GameError(Exception):
    code = "GAME_ERROR"

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_response(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message, "code": self.code, **self.extra}


class NotFound(GameError):
    """Room, player or session absent."""
    code = "NOT_FOUND"


class InvalidState(GameError):
    """Operation illegal in the current room or session phase."""
    code = "INVALID_STATE"


class Unauthorized(GameError):
    """Non-host attempting a host-only operation, or acting as someone else."""
    code = "UNAUTHORIZED"


class AlreadyActed(GameError):
    """Duplicate answer from the same player for the same question."""
    code = "ALREADY_ACTED"


class ValidationError(GameError):
    """Malformed input, e.g. too few players for the deduction game."""
    code = "VALIDATION_ERROR"


class UpstreamFailure(GameError):
    """The question oracle failed or returned unusable data. Never leaves the question service."""
    code = "UPSTREAM_FAILURE"
