"""
Geometry utility functions for swing detection.

Provides confidence-gated angle calculation, body center and centerline
helpers, torso measurements and angle wrapping used throughout the
swing detection pipeline. Every helper returns None instead of raising
when a keypoint is missing or the geometry is degenerate.
"""

import math
from typing import Dict, Optional, Tuple

import numpy as np

from utils.keypoints import TORSO_JOINTS, get_confident_keypoint, is_confident

MIN_RAY_LENGTH = 1.0
MIN_TORSO_HEIGHT = 20.0
MIN_POSTURE_TORSO_HEIGHT = 10.0
MIN_SHOULDER_WIDTH = 10.0
DEFAULT_SHOULDER_WIDTH = 150.0


def angle_at(
    point_a: Optional[dict],
    vertex: Optional[dict],
    point_c: Optional[dict],
    min_confidence: float = 0.3,
) -> Optional[float]:
    """
    Calculate the angle at the vertex formed by points A, vertex, C.

    Args:
        point_a: First point with 'x', 'y' and 'score' keys.
        vertex: Vertex point with 'x', 'y' and 'score' keys.
        point_c: Third point with 'x', 'y' and 'score' keys.
        min_confidence: Minimum keypoint score for all three points.

    Returns:
        Angle in degrees (0-180), 180 meaning a straight limb. None if any
        point is missing, below min_confidence, or either ray is shorter
        than one pixel.
    """
    for point in (point_a, vertex, point_c):
        if not is_confident(point, min_confidence):
            return None

    a = np.array([point_a["x"], point_a["y"]], dtype=float)
    b = np.array([vertex["x"], vertex["y"]], dtype=float)
    c = np.array([point_c["x"], point_c["y"]], dtype=float)

    ba = a - b
    bc = c - b

    norm_ba = np.linalg.norm(ba)
    norm_bc = np.linalg.norm(bc)
    if norm_ba < MIN_RAY_LENGTH or norm_bc < MIN_RAY_LENGTH:
        return None

    cosine_angle = np.dot(ba, bc) / (norm_ba * norm_bc)
    cosine_angle = np.clip(cosine_angle, -1.0, 1.0)
    angle = np.arccos(cosine_angle)

    return float(np.degrees(angle))


def calculate_distance(point_a: dict, point_b: dict) -> float:
    """Euclidean distance between two points with 'x' and 'y' keys."""
    return math.hypot(point_b["x"] - point_a["x"], point_b["y"] - point_a["y"])


def get_body_center(
    pose: Optional[dict], indices: Dict[str, int], min_confidence: float = 0.3
) -> Optional[Tuple[float, float]]:
    """
    Get the body center as the mean of the confident shoulders and hips.

    Args:
        pose: Pose frame with a 'keypoints' list.
        indices: Joint index table for the pose model.
        min_confidence: Minimum keypoint score.

    Returns:
        (x, y) tuple, or None when fewer than two torso joints are valid.
    """
    points = [
        get_confident_keypoint(pose, name, indices, min_confidence)
        for name in TORSO_JOINTS
    ]
    points = [p for p in points if p is not None]

    if len(points) < 2:
        return None

    x = sum(p["x"] for p in points) / len(points)
    y = sum(p["y"] for p in points) / len(points)
    return (x, y)


def get_centerline_x(
    pose: Optional[dict], indices: Dict[str, int], min_confidence: float = 0.3
) -> Optional[float]:
    """
    Get the x-coordinate of the shoulder midpoint.

    Returns:
        Midpoint x, or None unless both shoulders are valid.
    """
    left = get_confident_keypoint(pose, "left_shoulder", indices, min_confidence)
    right = get_confident_keypoint(pose, "right_shoulder", indices, min_confidence)
    if left is None or right is None:
        return None
    return (left["x"] + right["x"]) / 2


def wrap_angle_delta(delta: float) -> float:
    """
    Fold an angle difference into (-180, 180].

    Args:
        delta: Difference between two angles in degrees.

    Returns:
        Equivalent difference with the smallest magnitude.
    """
    wrapped = math.fmod(delta, 360.0)
    if wrapped > 180.0:
        wrapped -= 360.0
    elif wrapped <= -180.0:
        wrapped += 360.0
    return wrapped


def calculate_line_angle(start: dict, end: dict) -> float:
    """Angle of the segment start->end relative to horizontal, in degrees."""
    return math.degrees(math.atan2(end["y"] - start["y"], end["x"] - start["x"]))


def calculate_torso_height(
    pose: Optional[dict], indices: Dict[str, int], min_confidence: float = 0.3
) -> Optional[float]:
    """
    Vertical distance between the shoulder and hip midpoints.

    Used for pixel-to-meter scaling, so all four torso joints must be
    valid and the result must exceed MIN_TORSO_HEIGHT pixels.

    Returns:
        Torso height in pixels, or None.
    """
    joints = [
        get_confident_keypoint(pose, name, indices, min_confidence)
        for name in TORSO_JOINTS
    ]
    if any(j is None for j in joints):
        return None

    left_shoulder, right_shoulder, left_hip, right_hip = joints
    shoulder_mid_y = (left_shoulder["y"] + right_shoulder["y"]) / 2
    hip_mid_y = (left_hip["y"] + right_hip["y"]) / 2

    torso_height = abs(hip_mid_y - shoulder_mid_y)
    if torso_height > MIN_TORSO_HEIGHT:
        return torso_height
    return None


def calculate_shoulder_width(
    pose: Optional[dict], indices: Dict[str, int], min_confidence: float = 0.3
) -> float:
    """
    Euclidean distance between the shoulders.

    Falls back to DEFAULT_SHOULDER_WIDTH when either shoulder is invalid
    or the measured width is below MIN_SHOULDER_WIDTH.
    """
    left = get_confident_keypoint(pose, "left_shoulder", indices, min_confidence)
    right = get_confident_keypoint(pose, "right_shoulder", indices, min_confidence)
    if left is None or right is None:
        return DEFAULT_SHOULDER_WIDTH

    width = calculate_distance(left, right)
    if width < MIN_SHOULDER_WIDTH:
        return DEFAULT_SHOULDER_WIDTH
    return width


def _mean_y(points) -> Optional[float]:
    points = [p for p in points if p is not None]
    if not points:
        return None
    return sum(p["y"] for p in points) / len(points)


def max_wrist_height_ratio(
    pose: Optional[dict], indices: Dict[str, int], min_confidence: float = 0.3
) -> Optional[float]:
    """
    Highest wrist position above the shoulder line, in torso heights.

    The shoulder and hip lines are averaged over whichever side is valid,
    so one shoulder and one hip are enough. Image y grows downward, so a
    positive ratio means the wrist is above the shoulders.

    Returns:
        Largest ratio over the valid wrists, or None when the torso is
        missing, shorter than MIN_POSTURE_TORSO_HEIGHT, or no wrist is valid.
    """
    shoulder_y = _mean_y([
        get_confident_keypoint(pose, "left_shoulder", indices, min_confidence),
        get_confident_keypoint(pose, "right_shoulder", indices, min_confidence),
    ])
    hip_y = _mean_y([
        get_confident_keypoint(pose, "left_hip", indices, min_confidence),
        get_confident_keypoint(pose, "right_hip", indices, min_confidence),
    ])
    if shoulder_y is None or hip_y is None:
        return None

    torso_height = abs(hip_y - shoulder_y)
    if torso_height < MIN_POSTURE_TORSO_HEIGHT:
        return None

    ratios = []
    for name in ("left_wrist", "right_wrist"):
        wrist = get_confident_keypoint(pose, name, indices, min_confidence)
        if wrist is not None:
            ratios.append((shoulder_y - wrist["y"]) / torso_height)

    return max(ratios) if ratios else None


def arm_height_ratio(
    pose: Optional[dict], side: str, indices: Dict[str, int], min_confidence: float = 0.3
) -> Optional[float]:
    """
    Height of one wrist above its own shoulder, in shoulder-to-hip heights.

    Args:
        pose: Pose frame.
        side: 'left' or 'right'.
        indices: Joint index table.
        min_confidence: Minimum keypoint score.

    Returns:
        Height ratio, or None if a joint is invalid or the torso is degenerate.
    """
    shoulder = get_confident_keypoint(pose, f"{side}_shoulder", indices, min_confidence)
    wrist = get_confident_keypoint(pose, f"{side}_wrist", indices, min_confidence)
    hip = get_confident_keypoint(pose, f"{side}_hip", indices, min_confidence)
    if shoulder is None or wrist is None or hip is None:
        return None

    torso_height = abs(hip["y"] - shoulder["y"])
    if torso_height < MIN_POSTURE_TORSO_HEIGHT:
        return None

    return (shoulder["y"] - wrist["y"]) / torso_height
