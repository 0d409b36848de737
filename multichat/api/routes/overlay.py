"""WebSocket endpoint the overlay browser source subscribes to."""

from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from structlog import get_logger

from ...services.event_hub import EventHub
from ..dependencies import get_hub

logger = get_logger()

router = APIRouter()


class WebSocketSubscriber:
    """Adapts a FastAPI WebSocket to the event hub subscriber interface."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, frame: Dict[str, Any]) -> None:
        await self.websocket.send_json(frame)


@router.websocket("/ws")
async def overlay_socket(websocket: WebSocket, hub: EventHub = Depends(get_hub)):
    """Stream chat events to one overlay until it disconnects."""
    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket)
    await hub.subscriber_connected(subscriber)

    try:
        # Overlays never send anything meaningful; reading detects disconnects
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("overlay_disconnected")
    finally:
        await hub.unsubscribe(subscriber)
