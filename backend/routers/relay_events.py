"""
Free-form relay between controllers and the host display.

  controller-input   — a player's raw input, forwarded to the display only
  host-game-state    — host pushes its own game state to everyone else
  host-start-game    — host announces a display-driven game to the room
  host-end-game      — host announces the end and records final scores

The server does not interpret relayed payloads. These events sit beside the
quiz and spy engines and never change the room state.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from models.events import (
    ControllerInputPayload,
    HostEndGamePayload,
    HostGameStatePayload,
    HostStartGamePayload,
)
from routers.events import EventContext, on, parse, require_host, require_player

logger = logging.getLogger(__name__)


@on("controller-input")
async def _on_controller_input(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(ControllerInputPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    player_id = require_player(ctx, room, payload.player_id)

    await svc.broadcaster.to_host(room, {
        "type": "game-input",
        "playerId": player_id,
        "input": payload.input,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })
    return {}


@on("host-game-state")
async def _on_host_game_state(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(HostGameStatePayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)

    await svc.broadcaster.to_room(room.code, {
        "type": "game-state-update",
        "state": payload.state,
    }, exclude=ctx.connection_id)
    return {}


@on("host-start-game")
async def _on_host_start_game(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(HostStartGamePayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    logger.info(f"[{room.code}] Display game started: {payload.game_name}")

    await svc.broadcaster.to_room(room.code, {
        "type": "game-started",
        "gameName": payload.game_name,
        "gameState": room.to_public(),
    })
    return {}


@on("host-end-game")
async def _on_host_end_game(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(HostEndGamePayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)

    # Scores for players no longer in the room are dropped
    room.scores.update({
        pid: score for pid, score in payload.final_scores.items() if room.get_player(pid)
    })
    logger.info(f"[{room.code}] Display game ended. Scores: {room.scores}")

    await svc.broadcaster.to_room(room.code, {
        "type": "game-ended",
        "finalScores": dict(room.scores),
    })
    return {"finalScores": dict(room.scores)}
