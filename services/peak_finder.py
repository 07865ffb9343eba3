"""
Swing score thresholding and peak finding.
"""

import math
from typing import List, Optional, Sequence


def compute_adaptive_threshold(
    scores: Sequence[Optional[float]], percentile: float, floor: float
) -> float:
    """
    Percentile-based threshold over the processed swing scores.

    Args:
        scores: Processed swing score per frame.
        percentile: Percentile (0-100) of the sorted non-None scores.
        floor: Lower bound on the threshold.

    Returns:
        max(score at index floor(N * percentile / 100), floor); floor when
        there are no scores.
    """
    valid = sorted(s for s in scores if s is not None)
    if not valid:
        return floor

    index = min(int(math.floor(len(valid) * percentile / 100)), len(valid) - 1)
    return max(valid[index], floor)


def min_peak_distance(min_time_between_swings: float, fps: float) -> int:
    """Minimum number of frames between two accepted peaks."""
    return int(math.floor(min_time_between_swings * fps))


def find_peaks(values: Sequence[Optional[float]], min_value: float, min_distance: int) -> List[int]:
    """
    Find well separated strict local maxima.

    Scans left to right. A candidate closer than min_distance to the last
    accepted peak replaces it only when strictly higher; otherwise it is
    dropped.

    Args:
        values: Series to search; None samples never form or neighbor a peak.
        min_value: Minimum peak height.
        min_distance: Minimum index distance between peaks.

    Returns:
        Indices of accepted peaks in ascending order.
    """
    peaks = []

    for i in range(1, len(values) - 1):
        prev, curr, nxt = values[i - 1], values[i], values[i + 1]
        if prev is None or curr is None or nxt is None:
            continue
        if curr < min_value:
            continue
        if curr <= prev or curr <= nxt:
            continue

        if peaks and i - peaks[-1] < min_distance:
            if curr > values[peaks[-1]]:
                peaks[-1] = i
            continue

        peaks.append(i)

    return peaks


def passes_rotation_gate(
    orientation_velocity: Optional[float], min_rotation_velocity: float
) -> bool:
    """True when the body is rotating at least min_rotation_velocity deg/frame."""
    if orientation_velocity is None:
        return False
    return abs(orientation_velocity) >= min_rotation_velocity
