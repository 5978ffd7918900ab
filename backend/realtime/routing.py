"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers.driver_consumer import DriverConsumer
from .consumers.passenger_consumer import PassengerConsumer

websocket_urlpatterns = [
    # Driver-specific WebSocket endpoint
    # URL: ws://localhost:8000/ws/driver/?token=<access>
    re_path(
        r"ws/driver/$",
        DriverConsumer.as_asgi(),
        name="driver-ws"
    ),

    # Rider WebSocket endpoint
    # URL: ws://localhost:8000/ws/passenger/?token=<access>
    re_path(
        r"ws/passenger/$",
        PassengerConsumer.as_asgi(),
        name="passenger-ws"
    ),
]
