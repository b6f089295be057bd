from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from lifestock.middlewares.auth_middleware import auth_state_from_token
from lifestock.services.channels.realtime import connection_manager
from lifestock.utils.logging import get_logger

websocket_router = APIRouter()
logger = get_logger()

POLICY_VIOLATION = 1008


@websocket_router.websocket("/notifications")
async def notifications_websocket(websocket: WebSocket) -> None:
    """Join the user's private channel and stream ``{"event", "data"}`` frames.

    Clients authenticate with ``?token=<jwt>``. Incoming messages are only
    used for keepalive: ``{"type": "ping"}`` is answered with ``{"type": "pong"}``.
    """
    auth_state = auth_state_from_token(websocket.query_params.get("token"))
    if auth_state is None:
        await websocket.close(code=POLICY_VIOLATION)
        return

    user_id = auth_state.user_uuid
    await connection_manager.connect(user_id, websocket)
    try:
        while True:
            message = await websocket.receive_json()
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    except ValueError as e:
        logger.warning(f"Closing websocket for {user_id} after bad frame: {str(e)}")
    finally:
        connection_manager.disconnect(user_id, websocket)
