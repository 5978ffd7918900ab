"""Common utility functions."""

from .geo import calculate_distance, bounding_box, parse_coordinates
from .money import round_half_up, to_decimal

__all__ = [
    "calculate_distance",
    "bounding_box",
    "parse_coordinates",
    "round_half_up",
    "to_decimal",
]
