"""
Room lifecycle events.

  create-room            — display creates a room and becomes its host transport
  join-room              — controller joins by code (first player becomes host)
  select-game            — host picks a game, room enters CONFIG
  update-quiz-settings   — host edits quiz language/category/difficulty (CONFIG)
  confirm-config         — host locks the quiz settings
  return-to-lobby        — host ends the current game, room back to WAITING
  ping                   — keep-alive

Disconnect cleanup lives here too: losing the host transport closes the room
for everyone, losing a player only removes that player.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from models.errors import InvalidState
from models.events import JoinRoomPayload, RoomPayload, SelectGamePayload, UpdateQuizSettingsPayload
from models.room import ConnectionRole, GameType, RoomState
from routers.events import (
    EventContext,
    on,
    parse,
    players_public,
    require_host,
    require_state,
)
from services.game_services import GameServices

logger = logging.getLogger(__name__)


@on("ping")
async def _on_ping(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"pong": True, "timestamp": datetime.now(timezone.utc).isoformat()}


@on("create-room")
async def _on_create_room(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    existing = ctx.binding
    if existing:
        raise InvalidState(f"This connection already belongs to room {existing.room_code}")

    room = svc.room_store.create_room(ctx.connection_id)
    svc.broadcaster.join_group(room.code, ctx.connection_id)
    return {"roomCode": room.code}


@on("join-room")
async def _on_join_room(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(JoinRoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)

    existing = ctx.binding
    if existing and not (existing.role == ConnectionRole.HOST and existing.room_code == room.code):
        raise InvalidState(f"This connection already belongs to room {existing.room_code}")
    if existing and existing.player_id:
        raise InvalidState("This connection has already joined as a player")

    player = svc.room_store.add_player(room.code, ctx.connection_id, payload.player_name)
    engine = svc.engine_for(room)
    if engine:
        engine.on_player_joined(room.code, player.id)
    svc.broadcaster.join_group(room.code, ctx.connection_id)

    await svc.broadcaster.to_room(room.code, {
        "type": "player-joined",
        "player": player.to_public(),
        "players": players_public(room),
        "hostPlayerId": room.host_player_id,
    }, exclude=ctx.connection_id)

    return {
        "playerId": player.id,
        "roomCode": room.code,
        "isHost": room.host_player_id == player.id,
        "isFirstPlayer": svc.room_store.get_first_player_id(room.code) == player.id,
        "roomState": room.state.value,
        "activeGame": room.active_game.value if room.active_game else None,
        "players": players_public(room),
    }


@on("select-game")
async def _on_select_game(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(SelectGamePayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_state(room, RoomState.WAITING, RoomState.CONFIG, RoomState.FINISHED)
    if room.start_pending:
        raise InvalidState("A game is already starting")

    svc.end_games(room.code)
    room.active_game = payload.game_type
    room.quiz_settings.confirmed = False
    svc.room_store.set_state(room.code, RoomState.CONFIG)
    logger.info(f"[{room.code}] Game selected: {payload.game_type.value}")

    await svc.broadcaster.to_room(room.code, {
        "type": "state-changed",
        "state": RoomState.CONFIG.value,
        "gameType": payload.game_type.value,
    })
    return {}


@on("update-quiz-settings")
async def _on_update_quiz_settings(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(UpdateQuizSettingsPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_state(room, RoomState.CONFIG)
    if room.active_game != GameType.QUIZ:
        raise InvalidState("The quiz is not the selected game")
    if room.quiz_settings.confirmed:
        raise InvalidState("Quiz settings are locked")

    quiz_settings = svc.room_store.update_quiz_settings(
        room.code, payload.settings.model_dump()
    )
    await svc.broadcaster.to_room(room.code, {
        "type": "quiz-settings-updated",
        "settings": quiz_settings.to_public(),
    })
    return {"settings": quiz_settings.to_public()}


@on("confirm-config")
async def _on_confirm_config(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_state(room, RoomState.CONFIG)
    if room.active_game != GameType.QUIZ:
        raise InvalidState("The quiz is not the selected game")

    quiz_settings = svc.room_store.confirm_quiz_settings(room.code)
    await svc.broadcaster.to_room(room.code, {
        "type": "config-ready",
        "settings": quiz_settings.to_public(),
    })
    return {"settings": quiz_settings.to_public()}


@on("return-to-lobby")
async def _on_return_to_lobby(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    if room.start_pending:
        raise InvalidState("A game is starting")

    svc.end_games(room.code)
    room.active_game = None
    room.quiz_settings.confirmed = False
    room.scores = {p.id: 0 for p in room.players}
    svc.room_store.set_state(room.code, RoomState.WAITING)

    await svc.broadcaster.to_room(room.code, {
        "type": "state-changed",
        "state": RoomState.WAITING.value,
        "gameType": None,
    })
    return {}


# ── Disconnect ────────────────────────────────────────────────────────────────

async def handle_disconnect(svc: GameServices, connection_id: str) -> None:
    store = svc.room_store
    binding = store.find_by_connection(connection_id)
    svc.broadcaster.disconnect(connection_id)
    if not binding:
        return

    room = store.get_room(binding.room_code)
    if not room:
        store.registry.unbind(connection_id)
        return

    if binding.role == ConnectionRole.HOST:
        svc.end_games(room.code)
        store.delete_room(room.code)
        remaining = svc.broadcaster.drop_group(room.code)
        logger.info(f"[{room.code}] Room closed (host disconnected), notifying {len(remaining)}")
        await svc.broadcaster.send_many(remaining, {
            "type": "room-closed",
            "reason": "Host disconnected",
        })
        return

    engine = svc.engine_for(room)
    destroyed = store.remove_player(room.code, binding.player_id)
    if engine:
        engine.on_player_left(room.code, binding.player_id)
    if destroyed:
        svc.end_games(room.code)
        remaining = svc.broadcaster.drop_group(room.code)
        await svc.broadcaster.send_many(remaining, {
            "type": "room-closed",
            "reason": "All players left",
        })
        return

    await svc.broadcaster.to_room(room.code, {
        "type": "player-left",
        "playerId": binding.player_id,
        "players": players_public(room),
        "hostPlayerId": room.host_player_id,
    })
