"""
Signal processing helpers for per-frame channels.

All functions take and return plain lists where None marks a frame in
which the value could not be measured. None is never turned into 0.
"""

from typing import List, Optional, Sequence

import numpy as np

SMOOTHING_KERNEL = (0.1, 0.2, 0.4, 0.2, 0.1)
MIN_CONDITION_LENGTH = 5

DROP_RATIO = 0.3
NEIGHBOR_AGREEMENT_RATIO = 0.5
MIN_NEIGHBOR_AVERAGE = 5.0


def fill_drops(values: Sequence[Optional[float]]) -> List[Optional[float]]:
    """
    Repair isolated single-frame drops.

    A sample is replaced by the mean of its neighbors when it is below
    30% of that mean, the neighbors agree within 50% of the mean, and the
    mean exceeds 5. Sustained valleys and low readings are left alone.
    Runs once left to right, so a repaired sample is seen as the previous
    neighbor of the next one.

    Args:
        values: Channel samples, None for missing frames.

    Returns:
        New list; sequences shorter than 5 are returned as a copy.
    """
    result = list(values)
    if len(result) < MIN_CONDITION_LENGTH:
        return result

    for i in range(1, len(result) - 1):
        prev, curr, nxt = result[i - 1], result[i], result[i + 1]
        if prev is None or curr is None or nxt is None:
            continue

        neighbor_avg = (prev + nxt) / 2
        neighbor_diff = abs(prev - nxt)

        if (
            curr < neighbor_avg * DROP_RATIO
            and neighbor_diff < neighbor_avg * NEIGHBOR_AGREEMENT_RATIO
            and neighbor_avg > MIN_NEIGHBOR_AVERAGE
        ):
            result[i] = neighbor_avg

    return result


def weighted_smooth(
    values: Sequence[Optional[float]], kernel: Sequence[float] = SMOOTHING_KERNEL
) -> List[Optional[float]]:
    """
    Centered weighted moving average.

    Weights are renormalized over the taps that exist and are not None,
    which handles both sequence edges and gaps. A None sample stays None.

    Args:
        values: Channel samples.
        kernel: Odd-length weight kernel.

    Returns:
        Smoothed list of the same length.
    """
    half = len(kernel) // 2
    n = len(values)
    smoothed = []

    for i, value in enumerate(values):
        if value is None:
            smoothed.append(None)
            continue

        total = 0.0
        weight_sum = 0.0
        for k in range(-half, half + 1):
            idx = i + k
            if 0 <= idx < n and values[idx] is not None:
                weight = kernel[k + half]
                total += values[idx] * weight
                weight_sum += weight

        smoothed.append(total / weight_sum if weight_sum > 0 else value)

    return smoothed


def condition_series(values: Sequence[Optional[float]]) -> List[Optional[float]]:
    """
    Drop repair followed by weighted smoothing.

    Sequences shorter than 5 samples are returned unchanged.
    """
    if len(values) < MIN_CONDITION_LENGTH:
        return list(values)
    return weighted_smooth(fill_drops(values))


def central_difference(values: Sequence[Optional[float]], fps: float) -> List[Optional[float]]:
    """
    Time derivative by central difference.

    Args:
        values: Samples taken at a fixed frame rate.
        fps: Frames per second.

    Returns:
        (v[i+1] - v[i-1]) / (2 / fps) per sample; None at both ends and
        where either neighbor is None.
    """
    n = len(values)
    derivative = [None] * n
    dt = 2.0 / fps

    for i in range(1, n - 1):
        before, after = values[i - 1], values[i + 1]
        if before is None or after is None:
            continue
        derivative[i] = (after - before) / dt

    return derivative


def present(values: Sequence[Optional[float]]) -> np.ndarray:
    """Array of the non-None samples, for aggregate statistics."""
    return np.array([v for v in values if v is not None], dtype=float)


def null_safe_max(*values: Optional[float]) -> Optional[float]:
    """Largest of the given values ignoring None; None if all are None."""
    available = [v for v in values if v is not None]
    return max(available) if available else None


def signed_max_magnitude(left: Optional[float], right: Optional[float]) -> Optional[float]:
    """Whichever value has the larger magnitude, keeping its sign."""
    if left is None:
        return right
    if right is None:
        return left
    return left if abs(left) >= abs(right) else right
