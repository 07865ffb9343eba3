"""
Swing phase boundary detection.

Walks outward from a swing's peak index to find where the loading
rotation began, where the wrist started accelerating, and where the
follow-through ended. All positions are indices into the analysed
frame list. A None sample stops a walk.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

SWING_START_RATIO = 0.3
FOLLOW_END_RATIO = 0.2


@dataclass(frozen=True)
class PhaseBoundaries:
    """Phase boundary indices around one peak."""

    loading_start: int
    swing_start: int
    contact: int
    follow_end: int


def find_loading_start(
    orientation_velocity: Sequence[Optional[float]],
    peak: int,
    rotation_threshold: float,
    min_index: int = 0,
) -> int:
    """
    Earliest index of the rotation run that leads into the peak.

    Returns:
        The last index walking backward whose |orientation velocity| is
        still at or above rotation_threshold, never below min_index.
    """
    loading_start = peak
    for i in range(peak - 1, min_index - 1, -1):
        value = orientation_velocity[i]
        if value is None:
            break
        if abs(value) < rotation_threshold:
            loading_start = i + 1
            break
        loading_start = i
    # A peak inside the previous follow-through still loads no later than itself
    return min(max(loading_start, min_index), peak)


def find_swing_start(
    wrist_velocity: Sequence[Optional[float]], peak: int, threshold: float, loading_start: int
) -> int:
    """Earliest index before the peak where wrist speed stays above 30% of threshold."""
    swing_start = peak
    for i in range(peak - 1, loading_start - 1, -1):
        value = wrist_velocity[i]
        if value is None:
            break
        if value < threshold * SWING_START_RATIO:
            swing_start = i + 1
            break
        swing_start = i
    return swing_start


def find_follow_end(wrist_velocity: Sequence[Optional[float]], peak: int, threshold: float) -> int:
    """
    Index where wrist speed first falls below 20% of threshold after the peak.

    The first slow frame is included; without one the walk runs to the
    last measurable frame.
    """
    follow_end = peak
    for i in range(peak + 1, len(wrist_velocity)):
        value = wrist_velocity[i]
        if value is None:
            break
        follow_end = i
        if value < threshold * FOLLOW_END_RATIO:
            break
    return follow_end


def detect_phases(
    wrist_velocity: Sequence[Optional[float]],
    orientation_velocity: Sequence[Optional[float]],
    peak: int,
    config,
    min_index: int = 0,
) -> PhaseBoundaries:
    """
    Locate the phase boundaries of one swing.

    Args:
        wrist_velocity: Processed combined wrist speed per index.
        orientation_velocity: Orientation change per index.
        peak: Index of the swing score peak (contact).
        config: Detection config (contact_velocity_ratio,
            loading_rotation_threshold).
        min_index: Follow-through end of the previous swing; loading
            never starts before it.

    Returns:
        PhaseBoundaries with loading_start <= swing_start <= contact <= follow_end.
    """
    peak_velocity = wrist_velocity[peak] or 0.0
    threshold = peak_velocity * config.contact_velocity_ratio

    loading_start = find_loading_start(
        orientation_velocity, peak, config.loading_rotation_threshold, min_index
    )
    swing_start = find_swing_start(wrist_velocity, peak, threshold, loading_start)
    follow_end = find_follow_end(wrist_velocity, peak, threshold)

    return PhaseBoundaries(
        loading_start=loading_start,
        swing_start=swing_start,
        contact=peak,
        follow_end=follow_end,
    )
