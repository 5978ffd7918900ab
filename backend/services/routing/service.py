"""Cached, throttled access to geocoding and route lookups."""

import logging
from typing import List, Optional

from django.conf import settings

from common.conf import ride_setting
from common.utils.geo import parse_coordinates
from services.exceptions import ProviderError, ServiceValidationError
from .cache import LookupCache, RequestThrottle
from .client import Coordinates, LocationIQClient, RateLimitedError, RouteEstimate

logger = logging.getLogger(__name__)


class RoutingService:
    def __init__(self, client: LocationIQClient, cache: LookupCache, throttle: RequestThrottle,
                 route_ttl: int = 600, suggestion_ttl: int = 300):
        self.client = client
        self.cache = cache
        self.throttle = throttle
        self.route_ttl = route_ttl
        self.suggestion_ttl = suggestion_ttl

    def geocode(self, location: str) -> Coordinates:
        """Coordinates for a descriptor; "lat,lng" strings skip the provider."""
        coords = parse_coordinates(location)
        if coords is not None:
            return Coordinates(*coords)

        key = self.cache.make_key("geo", location)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        self.throttle.wait()
        result = self.client.geocode(location)
        self.cache.set(key, result, self.route_ttl)
        return result

    def get_distance_time(self, origin: str, destination: str) -> RouteEstimate:
        if not origin or not destination:
            raise ServiceValidationError("Origin and destination are required")

        key = self.cache.make_key("route", origin, destination)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        start = self.geocode(origin)
        end = self.geocode(destination)

        self.throttle.wait()
        result = self.client.route(start, end)
        self.cache.set(key, result, self.route_ttl)
        return result

    def suggestions(self, text: str) -> List[str]:
        """Autocomplete; degrades to an empty list on provider failure."""
        if not text or len(text.strip()) < 2:
            return []

        key = self.cache.make_key("suggest", text)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        self.throttle.wait()
        try:
            result = self.client.autocomplete(text)
        except RateLimitedError:
            logger.info("Autocomplete rate limited for %r", text)
            return []
        except ProviderError:
            logger.warning("Autocomplete failed for %r", text, exc_info=True)
            return []

        if result:
            self.cache.set(key, result, self.suggestion_ttl)
        return result


_service: Optional[RoutingService] = None


def build_routing_service() -> RoutingService:
    client = LocationIQClient(
        api_key=settings.LOCATIONIQ_API_KEY,
        base_url=settings.LOCATIONIQ_BASE_URL,
        timeout=float(ride_setting("ROUTING_TIMEOUT")),
    )
    return RoutingService(
        client=client,
        cache=LookupCache("routing"),
        throttle=RequestThrottle(float(ride_setting("MIN_PROVIDER_INTERVAL"))),
        route_ttl=int(ride_setting("ROUTE_CACHE_TTL")),
        suggestion_ttl=int(ride_setting("SUGGESTION_CACHE_TTL")),
    )


def get_routing_service() -> RoutingService:
    """Process-wide instance, so the throttle is shared between requests."""
    global _service
    if _service is None:
        _service = build_routing_service()
    return _service
