"""
Realtime app for WebSocket communication.

Key Components:
    - presence.py: account id -> live channel name, best-effort delivery
    - notifications.py: ride event names and payload helpers
    - consumers/: WebSocket consumers (driver, passenger)
    - middleware.py: JWT query-string authentication for WebSockets
"""
