import logging

from fastapi import APIRouter
from fastapi import status
from fastapi import WebSocket

from chatrelay.relay import ChatSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["broadcast"])


@router.websocket("/broadcast")
async def broadcast(websocket: WebSocket):
    state = websocket.app.state

    # Refuse before accept() so the handshake fails and no session exists
    if not state.origin_policy.check(websocket):
        logger.warning("Origin %s not allowed", websocket.headers.get("origin"))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()

    session = ChatSession(
        websocket,
        pool=state.pool,
        store=state.store,
        reporter=state.reporter,
        channel_id=state.settings.default_channel_id,
        send_timeout=state.settings.send_timeout,
        identity_length=state.settings.identity_length,
    )
    await session.run()
