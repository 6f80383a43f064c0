"""
WebSocket relay for dashboard live updates.
Forwards every message published on the real-time Redis channel to the
connected client. Clients authenticate with ``?token=<access token>``.
"""

import asyncio

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.api.deps import user_id_from_token
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.redis import get_redis

router = APIRouter(tags=["Realtime"])
logger = get_logger("realtime")
settings = get_settings()


async def _relay_messages(websocket: WebSocket, pubsub) -> None:
    async for message in pubsub.listen():
        if message.get("type") != "message":
            continue
        await websocket.send_text(message["data"])


async def _drain_client(websocket: WebSocket) -> None:
    # Clients never send anything meaningful; this only detects disconnects.
    while True:
        await websocket.receive_text()


@router.websocket("/ws/analytics")
async def analytics_updates(websocket: WebSocket, token: str | None = Query(None)):
    user_id = user_id_from_token(token) if token else None
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info("Realtime client connected: user=%s", user_id)

    redis = await get_redis()
    pubsub = redis.pubsub()
    await pubsub.subscribe(settings.REALTIME_CHANNEL)

    tasks = [
        asyncio.create_task(_relay_messages(websocket, pubsub)),
        asyncio.create_task(_drain_client(websocket)),
    ]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.error("Realtime relay failed: %s", exc)
    finally:
        await pubsub.unsubscribe(settings.REALTIME_CHANNEL)
        await pubsub.aclose()
        logger.info("Realtime client disconnected: user=%s", user_id)
