from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from adapters.entry.http.deps import get_allowed_origins, get_lifecycle
from core.services.subscriber_registry import SubscriberChannel
from workers.pipeline_lifecycle import PipelineLifecycle

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])

POLICY_VIOLATION = 1008
TRY_AGAIN_LATER = 1013


class WebSocketSubscriber(SubscriberChannel):
    """
    SubscriberChannel backed by a Starlette WebSocket.
    """

    def __init__(self, websocket: WebSocket) -> None:
        super().__init__()
        self._ws = websocket

    async def send(self, message: str) -> None:
        await self._ws.send_text(message)

    def is_open(self) -> bool:
        return (
            self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )


@router.websocket("/ws/prices")
async def price_stream(
    websocket: WebSocket,
    lifecycle: PipelineLifecycle | None = Depends(get_lifecycle),
    allowed_origins: List[str] = Depends(get_allowed_origins),
) -> None:
    """
    Live PRICE_UPDATE feed.

    Connections from origins outside the allow-list are closed with 1008.
    Inbound messages are ignored; the socket is only read to detect disconnects.
    """
    origin = websocket.headers.get("origin")
    if not origin or origin not in allowed_origins:
        logger.warning("WebSocket connection rejected from invalid origin: %s", origin)
        await websocket.close(code=POLICY_VIOLATION, reason="Invalid origin")
        return

    if lifecycle is None:
        await websocket.close(code=TRY_AGAIN_LATER, reason="Price feed not ready")
        return

    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket)
    logger.info("WebSocket client connected. origin=%s", origin)

    try:
        await lifecycle.connect(subscriber)
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected. origin=%s", origin)
    except Exception as exc:
        logger.warning("WebSocket error origin=%s: %s", origin, exc)
    finally:
        await subscriber.notify_closed()
