"""
"Who is the spy" events.

Roles are secret: every assignment is pushed to the assigned player's own
connection only. Room-wide pushes carry phase, timer and UI text, never the
spy's identity until the round is resolved.
"""
import logging
from typing import Any, Dict

from games.spy_catalog import SUPPORTED_LANGUAGES, get_all_ui_text
from models.errors import InvalidState, ValidationError
from models.events import (
    RoomPayload,
    SpyLanguagePayload,
    SpyStartPayload,
    SpyTimerPayload,
    SpyVotePayload,
)
from models.games import SpySession
from models.room import GameType, Room, RoomState
from routers.events import (
    EventContext,
    on,
    parse,
    players_public,
    require_game,
    require_host,
    require_player,
)
from services.game_services import GameServices

logger = logging.getLogger(__name__)


def _check_language(language: str) -> str:
    if language not in SUPPORTED_LANGUAGES:
        raise ValidationError(f"Unsupported language: {language}")
    return language


async def _push_assignments(svc: GameServices, room: Room) -> None:
    for player in list(room.players):
        assignment = svc.spy.get_player_assignment(room.code, player.id)
        if assignment and player.connection_id:
            await svc.broadcaster.send_to(player.connection_id, {
                "type": "spy-assignment",
                **assignment,
            })


async def _push_round(svc: GameServices, room: Room, game: SpySession) -> None:
    # game-started first: controllers clear the previous assignment on it
    await svc.broadcaster.to_room(room.code, {
        "type": "spy-game-started",
        "phase": game.phase.value,
        "timer": game.timer,
        "round": game.round,
        "language": game.language,
        "uiText": get_all_ui_text(game.language),
        "players": players_public(room),
    })
    await _push_assignments(svc, room)


@on("spy-start-game")
async def _on_spy_start_game(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(SpyStartPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    if room.state == RoomState.CONFIG and room.active_game != GameType.SPY:
        raise InvalidState("The spy game is not the selected game")
    if room.state not in (RoomState.WAITING, RoomState.CONFIG):
        raise InvalidState(f"Room is {room.state.value} (expected WAITING, CONFIG)")
    language = _check_language(payload.language)

    game = svc.spy.create_game(room.code, room.players, language)
    room.active_game = GameType.SPY
    svc.room_store.set_state(room.code, RoomState.PLAYING)

    await svc.broadcaster.to_room(room.code, {
        "type": "state-changed",
        "state": RoomState.PLAYING.value,
        "gameType": GameType.SPY.value,
    })
    await _push_round(svc, room, game)
    return {"gameState": game.to_public()}


@on("spy-begin-round")
async def _on_spy_begin_round(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_game(room, GameType.SPY)

    game = svc.spy.start_game(room.code)
    await svc.broadcaster.to_room(room.code, {
        "type": "spy-gameplay-started",
        "phase": game.phase.value,
        "timer": game.timer,
    })
    return {"phase": game.phase.value}


@on("spy-start-voting")
async def _on_spy_start_voting(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_game(room, GameType.SPY)

    game = svc.spy.start_voting(room.code)
    await svc.broadcaster.to_room(room.code, {
        "type": "spy-voting-started",
        "phase": game.phase.value,
        "players": players_public(room),
    })
    return {}


@on("spy-submit-vote")
async def _on_spy_submit_vote(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(SpyVotePayload, data)
    room = svc.room_store.require_room(payload.room_code)
    voter_id = require_player(ctx, room, payload.player_id)
    require_game(room, GameType.SPY)
    if not room.get_player(payload.voted_for_id):
        raise ValidationError("You can only vote for a player in this room")

    result = svc.spy.submit_vote(room.code, voter_id, payload.voted_for_id)
    if result is None:
        raise InvalidState("Voting is not open")

    await svc.broadcaster.to_room(room.code, {
        "type": "spy-vote-update",
        "totalVotes": result["totalVotes"],
    })
    return result


@on("spy-process-votes")
async def _on_spy_process_votes(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_game(room, GameType.SPY)

    result = svc.spy.process_votes(room.code)
    if result is None:
        raise InvalidState("Voting is not open")

    spy = room.get_player(result["spyId"])
    message = {
        "type": "spy-game-result",
        **result,
        "spyName": spy.name if spy else None,
        "players": players_public(room),
    }
    await svc.broadcaster.to_room(room.code, message)
    return {"result": result}


@on("spy-next-round")
async def _on_spy_next_round(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(RoomPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_game(room, GameType.SPY)

    game = svc.spy.reset_game(room.code, room.players)
    await _push_round(svc, room, game)
    return {"gameState": game.to_public()}


@on("spy-change-language")
async def _on_spy_change_language(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(SpyLanguagePayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_game(room, GameType.SPY)
    language = _check_language(payload.language)

    game = svc.spy.set_language(room.code, language)
    await svc.broadcaster.to_room(room.code, {
        "type": "spy-language-changed",
        "language": game.language,
        "uiText": get_all_ui_text(game.language),
    })
    await _push_assignments(svc, room)
    return {"language": game.language}


@on("spy-update-timer")
async def _on_spy_update_timer(ctx: EventContext, data: Dict[str, Any]) -> Dict[str, Any]:
    svc = ctx.services
    payload = parse(SpyTimerPayload, data)
    room = svc.room_store.require_room(payload.room_code)
    require_host(ctx, room, payload.player_id)
    require_game(room, GameType.SPY)

    game = svc.spy.update_timer(room.code, payload.timer)
    await svc.broadcaster.to_room(room.code, {"type": "spy-timer", "timer": game.timer}, exclude=ctx.connection_id)
    return {"timer": game.timer}
