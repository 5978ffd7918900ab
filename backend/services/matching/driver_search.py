"""
Eligible driver lookup.

Active drivers of the requested vehicle class inside a radius around the
pickup, closest first. When nothing is in range, or the pickup could not be
located at all, every active driver of the class is eligible.
"""

import logging
from typing import List, Optional, Tuple

from common.utils import bounding_box, calculate_distance
from drivers.models import DriverProfile

logger = logging.getLogger(__name__)


def _active_drivers(vehicle_class: str):
    return DriverProfile.objects.select_related("user").filter(
        status="active",
        vehicle_class=vehicle_class,
    )


def find_in_radius(pickup_coords: Tuple[float, float], radius_km: float,
                   vehicle_class: str) -> List[DriverProfile]:
    lat, lon = pickup_coords
    min_lat, max_lat, min_lon, max_lon = bounding_box(lat, lon, radius_km)

    # Box prefilter on the location index, exact haversine check after
    boxed = _active_drivers(vehicle_class).filter(
        current_latitude__isnull=False,
        current_longitude__isnull=False,
        current_latitude__gte=min_lat,
        current_latitude__lte=max_lat,
        current_longitude__gte=min_lon,
        current_longitude__lte=max_lon,
    )

    radius_m = radius_km * 1000
    candidates = []
    for profile in boxed:
        distance = calculate_distance(
            lat, lon,
            float(profile.current_latitude),
            float(profile.current_longitude),
        )
        if distance <= radius_m:
            candidates.append((distance, profile))

    candidates.sort(key=lambda item: item[0])
    return [profile for _, profile in candidates]


def find_eligible(pickup_coords: Optional[Tuple[float, float]], radius_km: float,
                  vehicle_class: str) -> List[DriverProfile]:
    """
    Drivers who should be offered a ride.

    Args:
        pickup_coords: (lat, lng) of the pickup, or None if geocoding failed
        radius_km: Search radius
        vehicle_class: Requested vehicle class

    Returns:
        DriverProfile list, nearest first when located
    """
    if pickup_coords is not None:
        drivers = find_in_radius(pickup_coords, radius_km, vehicle_class)
        if drivers:
            logger.info(
                "Found %d %s drivers within %skm of %s",
                len(drivers), vehicle_class, radius_km, pickup_coords,
            )
            return drivers
        logger.info("No %s drivers within %skm, widening to all active", vehicle_class, radius_km)
    else:
        logger.info("Pickup not located, using all active %s drivers", vehicle_class)

    return list(_active_drivers(vehicle_class).order_by("id"))
