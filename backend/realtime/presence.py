"""
Presence registry: account id -> current channel name.

Entries live in the ``presence`` cache alias (local memory in development,
Redis in production). A reconnect simply overwrites the entry; stale entries
are harmless because sends are fire-and-forget.
"""

import json
import logging
from typing import Any, Dict, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.cache import caches
from rest_framework.utils.encoders import JSONEncoder

logger = logging.getLogger(__name__)

EVENT_MESSAGE_TYPE = "ride.event"


def normalise_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Round-trip through DRF's encoder so Decimals/datetimes survive any channel layer."""
    return json.loads(json.dumps(payload or {}, cls=JSONEncoder))


class PresenceRegistry:
    def __init__(self, alias: str = "presence", channel_layer=None):
        self.alias = alias
        self._channel_layer = channel_layer

    @property
    def cache(self):
        return caches[self.alias]

    @property
    def channel_layer(self):
        return self._channel_layer or get_channel_layer()

    @staticmethod
    def key(account_id) -> str:
        return f"presence:{account_id}"

    # ---------------------- Handle Management ----------------------

    def set_handle(self, account_id, handle: str) -> None:
        self.cache.set(self.key(account_id), handle, None)

    def get_handle(self, account_id) -> Optional[str]:
        return self.cache.get(self.key(account_id))

    def clear_handle(self, account_id, handle: str) -> bool:
        """Remove the entry only if it still points at ``handle``."""
        if self.get_handle(account_id) != handle:
            return False
        self.cache.delete(self.key(account_id))
        return True

    async def aset_handle(self, account_id, handle: str) -> None:
        await self.cache.aset(self.key(account_id), handle, None)

    async def aclear_handle(self, account_id, handle: str) -> bool:
        key = self.key(account_id)
        if await self.cache.aget(key) != handle:
            return False
        await self.cache.adelete(key)
        return True

    def is_online(self, account_id) -> bool:
        return self.get_handle(account_id) is not None

    # ---------------------- Delivery ----------------------

    def send(self, account_id, event: str, payload: Dict[str, Any] = None) -> bool:
        """
        Deliver ``event`` to the account's current connection.

        Returns False when nobody is connected or the channel layer failed.
        Never raises, never retries.
        """
        if account_id is None:
            return False

        try:
            handle = self.get_handle(account_id)
        except Exception:
            logger.exception("Presence lookup failed for %s", account_id)
            return False

        if not handle:
            logger.debug("No live handle for %s, dropping %s", account_id, event)
            return False

        layer = self.channel_layer
        if layer is None:
            return False

        try:
            message = {
                "type": EVENT_MESSAGE_TYPE,
                "event": event,
                "data": normalise_payload(payload),
            }
            async_to_sync(layer.send)(handle, message)
        except Exception:
            logger.exception("Failed to send %s to %s", event, account_id)
            return False

        logger.debug("WS -> %s (%s): %s", account_id, handle, event)
        return True


_registry: Optional[PresenceRegistry] = None


def get_presence() -> PresenceRegistry:
    global _registry
    if _registry is None:
        _registry = PresenceRegistry()
    return _registry
