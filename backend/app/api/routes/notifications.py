import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from jose import JWTError
from sqlalchemy.orm import Session

from app.api.deps import get_db
from app.core.security import decode_token
from app.models.user import User
from app.services.notification_hub import notification_hub

router = APIRouter()
logger = logging.getLogger(__name__)


def _bearer_token(websocket: WebSocket) -> str | None:
    token = websocket.query_params.get("token")
    if token:
        return token
    scheme, _, value = websocket.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def _authenticate(websocket: WebSocket, db: Session) -> User | None:
    token = _bearer_token(websocket)
    if not token:
        return None
    try:
        user_id = decode_token(token).get("sub")
    except JWTError:
        return None
    user = db.get(User, user_id) if user_id else None
    if user is None or not user.is_active:
        return None
    return user


@router.websocket("/notifications/ws")
async def schedule_events_websocket(websocket: WebSocket, db: Session = Depends(get_db)) -> None:
    """Pushes schedule events addressed to the connected user; answers "ping" with "pong"."""
    user = _authenticate(websocket, db)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    user_id = user.id
    # Release the session before the long-lived receive loop.
    db.close()

    await notification_hub.connect(user_id, websocket)
    logger.debug("Schedule event stream opened for user %s", user_id)
    try:
        await websocket.send_json({"event": "connected", "user_id": user_id})
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"event": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        await notification_hub.disconnect(user_id, websocket)
        logger.debug("Schedule event stream closed for user %s", user_id)
