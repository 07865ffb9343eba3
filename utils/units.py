"""
Pixel to real-world unit conversion.

Scale is estimated from the player's torso, assumed to be 30% of a
1.7 m person.
"""

from typing import Optional, Sequence

ASSUMED_PERSON_HEIGHT_M = 1.7
TORSO_TO_HEIGHT_RATIO = 0.30
DEFAULT_TORSO_HEIGHT_PX = 100.0
MS_TO_KMH = 3.6


def calculate_meters_per_pixel(avg_torso_height_px: float) -> float:
    """
    Meters represented by one pixel at the player's depth.

    Args:
        avg_torso_height_px: Mean torso height in pixels. Non-positive
            values fall back to DEFAULT_TORSO_HEIGHT_PX.

    Returns:
        Meters per pixel.
    """
    if avg_torso_height_px is None or avg_torso_height_px <= 0:
        avg_torso_height_px = DEFAULT_TORSO_HEIGHT_PX
    return (ASSUMED_PERSON_HEIGHT_M * TORSO_TO_HEIGHT_RATIO) / avg_torso_height_px


def convert_velocity_to_kmh(
    velocity_px_per_frame: Optional[float], meters_per_pixel: float, fps: float
) -> Optional[float]:
    """
    Convert a pixel-per-frame speed to km/h.

    Returns:
        Speed in km/h, or None when the input is None.
    """
    if velocity_px_per_frame is None:
        return None
    return velocity_px_per_frame * meters_per_pixel * fps * MS_TO_KMH


def average_torso_height(heights: Sequence[Optional[float]]) -> float:
    """
    Mean of the valid torso measurements.

    Returns:
        Average height in pixels, DEFAULT_TORSO_HEIGHT_PX when none are valid.
    """
    valid = [h for h in heights if h is not None]
    if not valid:
        return DEFAULT_TORSO_HEIGHT_PX
    return sum(valid) / len(valid)
