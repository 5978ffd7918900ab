"""
Routing collaborator wrapper.

This module handles:
    - Geocoding addresses to coordinates
    - Route distance/duration lookups
    - Address autocomplete
"""

from .cache import LookupCache, RequestThrottle
from .client import (
    Coordinates,
    RouteEstimate,
    LocationIQClient,
    GeocodeNotFoundError,
    RateLimitedError,
    InvalidAddressError,
    NoRouteError,
)
from .service import RoutingService, build_routing_service, get_routing_service

__all__ = [
    "LookupCache",
    "RequestThrottle",
    "Coordinates",
    "RouteEstimate",
    "LocationIQClient",
    "GeocodeNotFoundError",
    "RateLimitedError",
    "InvalidAddressError",
    "NoRouteError",
    "RoutingService",
    "build_routing_service",
    "get_routing_service",
]
