"""
LocationIQ HTTP client.

Only the fields the ride flow consumes are read from the provider responses.
"""

import logging
from dataclasses import dataclass
from typing import List

import requests

from services.exceptions import ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float


@dataclass(frozen=True)
class RouteEstimate:
    distance_km: float
    duration_min: float

    def as_display(self):
        return {
            "distance": f"{self.distance_km:.2f} km",
            "duration": f"{self.duration_min:.1f} mins",
        }


class GeocodeNotFoundError(ProviderError):
    default_message = "No results found for this address"


class RateLimitedError(ProviderError):
    default_message = "Map service rate limit reached"


class InvalidAddressError(ProviderError):
    default_message = "Address is required"


class NoRouteError(ProviderError):
    default_message = "No route found"


class LocationIQClient:
    def __init__(self, api_key: str, base_url: str = "https://us1.locationiq.com/v1", timeout: float = 5.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _get(self, path: str, params: dict):
        params = {"key": self.api_key, **params}
        try:
            response = self.session.get(f"{self.base_url}/{path}", params=params, timeout=self.timeout)
        except requests.Timeout as e:
            raise ProviderError(f"Map service timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise ProviderError(f"Map service unreachable: {e}") from e

        if response.status_code == 429:
            raise RateLimitedError()
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ProviderError(f"Map service error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise ProviderError("Map service returned invalid JSON") from e

    def geocode(self, address: str) -> Coordinates:
        if not address or not address.strip():
            raise InvalidAddressError()

        data = self._get("search.php", {"q": address, "format": "json"})
        if not isinstance(data, list) or not data:
            raise GeocodeNotFoundError(details={"address": address})

        location = data[0]
        try:
            return Coordinates(lat=float(location["lat"]), lng=float(location["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodeNotFoundError(details={"address": address}) from e

    def route(self, origin: Coordinates, destination: Coordinates) -> RouteEstimate:
        path = (
            f"directions/driving/"
            f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        )
        data = self._get(path, {"overview": "false"})
        routes = data.get("routes") if isinstance(data, dict) else None
        if not isinstance(routes, list) or not routes:
            raise NoRouteError()

        route = routes[0]
        try:
            return RouteEstimate(
                distance_km=float(route["distance"]) / 1000,
                duration_min=float(route["duration"]) / 60,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise NoRouteError() from e

    def autocomplete(self, text: str, limit: int = 5) -> List[str]:
        data = self._get(
            "autocomplete.php",
            {"q": text, "limit": limit, "format": "json", "countrycodes": "in"},
        )
        if not isinstance(data, list):
            return []
        return [place["display_name"] for place in data if place.get("display_name")]
