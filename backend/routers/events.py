"""
Event handler registry and the guards shared by every handler.

Handlers are registered with @on("event-name") and receive an EventContext
plus the raw `data` dict. They return the success payload for the requester
(or None) and raise GameError subclasses for anything the requester must be
told about. The dispatcher in ws_router turns both into a `response` message.

Handlers must finish their state checks and mutations before the first
`await` so that two events can never interleave inside a check-and-set.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar

import pydantic

from models.errors import InvalidState, NotFound, Unauthorized, ValidationError
from models.events import EventPayload
from models.room import ConnectionBinding, ConnectionRole, GameType, Room, RoomState
from services.game_services import GameServices


@dataclass
class EventContext:
    connection_id: str
    services: GameServices

    @property
    def binding(self) -> Optional[ConnectionBinding]:
        return self.services.room_store.find_by_connection(self.connection_id)


Handler = Callable[[EventContext, Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]

EVENT_HANDLERS: Dict[str, Handler] = {}


def on(event: str) -> Callable[[Handler], Handler]:
    def register(fn: Handler) -> Handler:
        EVENT_HANDLERS[event] = fn
        return fn
    return register


PayloadT = TypeVar("PayloadT", bound=EventPayload)


def parse(model: Type[PayloadT], data: Dict[str, Any]) -> PayloadT:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(p) for p in first.get("loc", ())) or "payload"
        raise ValidationError(f"Invalid {field}: {first.get('msg', 'bad value')}")


# ── Guards ────────────────────────────────────────────────────────────────────

def require_member(ctx: EventContext, room: Room, player_id: Optional[str] = None) -> ConnectionBinding:
    """The sender must be bound to this room; a claimed playerId must be its own."""
    binding = ctx.binding
    if not binding or binding.room_code != room.code:
        raise Unauthorized("You are not part of this room")
    if player_id and binding.role != ConnectionRole.HOST and binding.player_id != player_id:
        raise Unauthorized("Cannot act on behalf of another player")
    return binding


def require_player(ctx: EventContext, room: Room, player_id: Optional[str] = None) -> str:
    binding = require_member(ctx, room, player_id)
    if not binding.player_id or not room.get_player(binding.player_id):
        raise NotFound("Player not found in this room")
    return binding.player_id


def require_host(ctx: EventContext, room: Room, player_id: Optional[str] = None) -> ConnectionBinding:
    """
    Host-only operations are accepted from the room's display connection or
    from the connection of the player whose id is the room's host_player_id.
    """
    binding = require_member(ctx, room, player_id)
    if binding.role == ConnectionRole.HOST:
        return binding
    if binding.player_id and binding.player_id == room.host_player_id:
        return binding
    raise Unauthorized("Only the host can do that")


def require_state(room: Room, *states: RoomState) -> None:
    if room.state not in states:
        allowed = ", ".join(s.value for s in states)
        raise InvalidState(f"Room is {room.state.value} (expected {allowed})")


def require_game(room: Room, game_type: GameType) -> None:
    if room.state != RoomState.PLAYING or room.active_game != game_type:
        raise InvalidState(f"No {game_type.value} game is running in this room")


def players_public(room: Room) -> list:
    return [p.to_public() for p in room.players]
