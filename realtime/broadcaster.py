import logging
from typing import Any, Dict, List

from fastapi import WebSocket

from utils.logging import log_broadcast


NEW_USAGE_EVENT = "nuevo-uso"


class ConnectionManager:
    """Registry of connected WebSocket subscribers.

    Delivery is best effort: a subscriber only receives events published while
    it is connected, and nothing is replayed.
    """

    def __init__(self):
        self.active_connections: List[WebSocket] = []
        self.logger = logging.getLogger(f"profe_ia.{self.__class__.__name__}")

    @property
    def subscriber_count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self.active_connections.append(websocket)
        self.logger.info(f"Subscriber connected ({self.subscriber_count} active)")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self.active_connections:
            self.active_connections.remove(websocket)
            self.logger.info(f"Subscriber disconnected ({self.subscriber_count} active)")

    async def broadcast(self, event: str, payload: Dict[str, Any]) -> int:
        """Send ``payload`` under ``event`` to every current subscriber.

        Returns the number of subscribers the message was handed to. Subscribers
        whose send fails are dropped; the failure is logged, never raised.
        """
        message = {"event": event, "data": payload}
        delivered = 0
        dropped = 0
        for websocket in list(self.active_connections):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                self.logger.warning(f"Dropping subscriber after failed send: {e}")
                self.disconnect(websocket)
                dropped += 1

        log_broadcast(event, delivered, dropped)
        return delivered
