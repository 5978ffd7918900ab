"""Driver WebSocket consumer for location updates, availability and ride actions."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from .base import BaseConsumer
from drivers import services as driver_services
from services import ride_management
from services.exceptions import ServiceValidationError

logger = logging.getLogger(__name__)


class DriverConsumer(BaseConsumer):
    """
    WebSocket consumer for drivers.

    Handles:
        - update-location: store the driver's current position
        - set-status: go active/inactive
        - accept-ride: race for a ride request
        - start-ride: start an accepted ride with the rider's OTP

    These call the same service functions as the HTTP endpoints.
    """

    allowed_role = "driver"

    async def on_connect(self):
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Driver connected successfully",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle driver-specific messages."""

        if msg_type == "update-location":
            await self._handle_location_update(data)
        elif msg_type == "set-status":
            await self._handle_status_update(data)
        elif msg_type == "accept-ride":
            await self._handle_accept(data)
        elif msg_type == "start-ride":
            await self._handle_start(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_location_update(self, data: Dict[str, Any]):
        lat = data.get("latitude")
        lon = data.get("longitude")

        if lat is None or lon is None:
            raise ServiceValidationError("update-location requires latitude and longitude")

        await self._update_location(lat, lon)
        await self.send_success("location-updated", latitude=float(lat), longitude=float(lon))

    async def _handle_status_update(self, data: Dict[str, Any]):
        status = await self._update_status(data.get("status"))
        await self.send_success("status-updated", status=status)

    async def _handle_accept(self, data: Dict[str, Any]):
        ride_id = self._ride_id(data)
        await self._accept(ride_id)
        # Ride details follow as a ride-accepted event once committed
        await self.send_success("accept-ride-ok", ride_id=ride_id)

    async def _handle_start(self, data: Dict[str, Any]):
        ride_id = self._ride_id(data)
        await self._start(ride_id, data.get("otp"))
        await self.send_success("ride-started", data={"ride_id": ride_id, "status": "ongoing"})

    @staticmethod
    def _ride_id(data: Dict[str, Any]) -> int:
        try:
            return int(data.get("ride_id"))
        except (TypeError, ValueError):
            raise ServiceValidationError("ride_id is required")

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _update_location(self, lat, lon):
        profile = driver_services.get_driver_profile(self.user)
        driver_services.update_driver_location(profile, lat, lon)

    @database_sync_to_async
    def _update_status(self, status):
        profile = driver_services.get_driver_profile(self.user)
        return driver_services.update_driver_status(profile, status).status

    @database_sync_to_async
    def _accept(self, ride_id):
        return ride_management.accept_ride(self.user, ride_id)

    @database_sync_to_async
    def _start(self, ride_id, otp):
        return ride_management.start_ride(self.user, ride_id, otp)
