"""Base WebSocket consumer with shared functionality for all consumers."""

import logging
from typing import Dict, Any

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from realtime.presence import get_presence
from services.exceptions import ServiceError

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Base consumer with shared connection management and helper methods.

    Every connection registers itself in the presence registry so server-side
    code can reach the account by id. A later connection for the same
    account replaces the entry.

    Subclasses should override:
        - allowed_role: role required to connect
        - handle_message(msg_type, data): handle incoming messages
    """

    allowed_role = None

    async def connect(self):
        self.user = self.scope["user"]

        if self.user.is_anonymous:
            await self.close()
            return

        # Basic attributes available to all consumers
        self.user_id = getattr(self.user, "id", None)
        self.role = getattr(self.user, "role", None)
        self.registered = False

        await self.accept()

        if self.allowed_role and self.role != self.allowed_role:
            await self.send_error("This endpoint is not available for your role")
            await self.close()
            return

        await self._register()
        await self.on_connect()

    async def on_connect(self):
        """Override in subclass for custom connect logic."""
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })

    async def disconnect(self, close_code):
        """Drop the presence entry if it still points at this connection."""
        try:
            if getattr(self, "registered", False):
                await get_presence().aclear_handle(self.user_id, self.channel_name)
            await self.on_disconnect(close_code)
        except Exception:
            logger.exception("Error during disconnect for user %s", getattr(self, 'user_id', 'unknown'))

    async def on_disconnect(self, close_code):
        """Override in subclass for custom disconnect logic."""
        pass

    async def receive_json(self, data: Dict[str, Any]):
        """Route incoming messages to appropriate handlers."""
        msg_type = data.get("type")
        if not msg_type:
            await self.send_error("Message type is required")
            return

        if msg_type == "join":
            await self._register()
            await self.send_success("joined", user_id=self.user_id)
            return

        try:
            await self.handle_message(msg_type, data)
        except ServiceError as e:
            await self.send_error(e.message, kind=e.kind)
        except Exception:
            logger.exception("Error handling message type %s", msg_type)
            await self.send_error(f"Error processing {msg_type}")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Override in subclass to handle specific message types."""
        await self.send_error(f"Unknown message type: {msg_type}")

    async def _register(self):
        await get_presence().aset_handle(self.user_id, self.channel_name)
        self.registered = True

    # ---------------------- Response Helpers ----------------------

    async def send_error(self, message: str, kind: str = "ValidationError"):
        """Send an error message to the client."""
        await self.send_json({
            "type": "error",
            "error": kind,
            "message": message,
        })

    async def send_success(self, event_type: str, **kwargs):
        """Send a success response to the client."""
        await self.send_json({
            "type": event_type,
            **kwargs,
        })

    # ---------------------- Server Events ----------------------

    async def ride_event(self, event):
        """Relay a presence-addressed event (see realtime.presence)."""
        await self.send_json({
            "type": event.get("event"),
            "data": event.get("data", {}),
        })
