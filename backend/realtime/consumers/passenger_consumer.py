"""Rider WebSocket consumer for ride notifications."""

import logging

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class PassengerConsumer(BaseConsumer):
    """
    WebSocket consumer for riders.

    Riders only listen: ride-accepted, ride-started, ride-ended,
    payment-success, ride-cancelled and no-drivers-available all arrive
    through ride_event.
    """

    allowed_role = "user"

    async def on_connect(self):
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Rider connected successfully",
        })
