import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from sostrack.alerts import AlertChannel, Subscription
from sostrack.config import settings
from sostrack.dependencies import get_alert_channel

logger = logging.getLogger(__name__)

router = APIRouter()

ALERT_EVENT = "sosAlert"


async def _forward_alerts(websocket: WebSocket, sub: Subscription, channel: AlertChannel):
    try:
        async for alert in sub:
            await websocket.send_json({
                "event": ALERT_EVENT,
                "data": alert.model_dump(by_alias=True, mode="json"),
            })
    except Exception as e:
        # transport failure is local to this connection
        logger.warning(f"Sending alert to subscriber {sub.id} failed: {e}")
        channel.unsubscribe(sub)


async def _receive(websocket: WebSocket, idle_timeout: Optional[float]):
    while True:
        if idle_timeout:
            message = await asyncio.wait_for(websocket.receive(), idle_timeout)
        else:
            message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
        # binary frames are ignored
        if message.get("text") == "ping":
            await websocket.send_text("pong")


@router.websocket("/ws/alerts")
async def alerts_socket(websocket: WebSocket, channel: AlertChannel = Depends(get_alert_channel)):
    sub = channel.subscribe(open_now=False)
    try:
        await websocket.accept()
    except Exception:
        channel.unsubscribe(sub)
        raise
    sub.open()

    sender = asyncio.create_task(_forward_alerts(websocket, sub, channel))
    try:
        await _receive(websocket, settings.ALERT_IDLE_TIMEOUT_SECONDS)
    except WebSocketDisconnect:
        logger.info(f"Alert subscriber {sub.id} disconnected")
    except asyncio.TimeoutError:
        logger.info(f"Alert subscriber {sub.id} idle, closing")
        await websocket.close(code=status.WS_1001_GOING_AWAY)
    finally:
        channel.unsubscribe(sub)
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
