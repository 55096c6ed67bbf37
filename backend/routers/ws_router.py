"""
WebSocket Hub: one socket per device (host display or player controller).

URL: /ws

Connection flow:
  1. Accept connection → allocate a connection handle
  2. Send private "connected" message with the handle
  3. Message loop: {type, requestId, data} → handler → "response"
  4. On disconnect: resolve the handle to its room and clean up
     (host transport → room closed for everyone, player → player-left)

Every request is answered exactly once with
  {"type": "response", "event", "requestId", "success", ...}
Errors raised by handlers go back to the requester only; they are never
broadcast to the room.
"""
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from models.errors import GameError
from routers.events import EVENT_HANDLERS, EventContext
from routers.room_events import handle_disconnect
from services.game_services import GameServices, get_game_services

# Handler modules register themselves with @on(...)
import routers.quiz_events  # noqa: F401
import routers.relay_events  # noqa: F401
import routers.spy_events  # noqa: F401

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


def _response(event: str, request_id: Optional[Any], body: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "response", "event": event, "requestId": request_id, **body}


# ── WebSocket endpoint ─────────────────────────────────────────────────────────

@router.websocket("/ws")
async def websocket_endpoint(
    ws: WebSocket,
    svc: GameServices = Depends(get_game_services),
):
    connection_id = await svc.broadcaster.connect(ws)
    await svc.broadcaster.send_to(connection_id, {
        "type": "connected",
        "connectionId": connection_id,
    })

    # ── Message loop ───────────────────────────────────────────────────────────
    try:
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await svc.broadcaster.send_to(connection_id, {
                    "type": "error",
                    "message": "Invalid JSON",
                    "code": "PARSE_ERROR",
                })
                continue
            if not isinstance(data, dict):
                await svc.broadcaster.send_to(connection_id, {
                    "type": "error",
                    "message": "Messages must be JSON objects",
                    "code": "PARSE_ERROR",
                })
                continue

            msg_type = str(data.get("type", ""))
            # Frontend sends { type, requestId, data: { ... } }; unwrap inner payload for handlers
            inner_data = data.get("data") if isinstance(data.get("data"), dict) else {}
            await _handle_message(
                EventContext(connection_id=connection_id, services=svc),
                msg_type,
                data.get("requestId"),
                inner_data,
            )

    except WebSocketDisconnect:
        pass
    finally:
        logger.debug(f"{connection_id} disconnected")
        await handle_disconnect(svc, connection_id)


# ── Message dispatcher ─────────────────────────────────────────────────────────

async def _handle_message(
    ctx: EventContext,
    msg_type: str,
    request_id: Optional[Any],
    data: Dict[str, Any],
) -> None:
    body = await dispatch_message(ctx, msg_type, data)
    await ctx.services.broadcaster.send_to(
        ctx.connection_id, _response(msg_type, request_id, body)
    )


async def dispatch_message(
    ctx: EventContext, msg_type: str, data: Dict[str, Any]
) -> Dict[str, Any]:
    """Run the handler for `msg_type` and return the response body."""
    handler = EVENT_HANDLERS.get(msg_type)
    if handler is None:
        return {
            "success": False,
            "error": f"Unknown message type: '{msg_type}'",
            "code": "UNKNOWN_TYPE",
        }
    try:
        result = await handler(ctx, data)
    except WebSocketDisconnect:
        raise
    except GameError as exc:
        logger.info("%s rejected for %s: %s (%s)", msg_type, ctx.connection_id, exc.message, exc.code)
        return exc.to_response()
    except Exception:
        logger.exception("Unhandled error in %s (connection=%s)", msg_type, ctx.connection_id)
        return {"success": False, "error": "Internal server error", "code": "SERVER_ERROR"}
    return {"success": True, **(result or {})}
