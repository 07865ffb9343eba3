"""
Biomechanical utility functions for swing detection.

Provides per-side joint angles (knee, elbow, shoulder, hip), segment
line angles for the hips and shoulders, and the hip-shoulder separation
("X-factor") computed from a single pose frame.
"""

from typing import Dict, Optional

from utils.geometry import angle_at, calculate_line_angle, wrap_angle_delta
from utils.keypoints import get_confident_keypoint, get_keypoint

# Joint angle name -> (first point, vertex, third point)
JOINT_ANGLE_DEFINITIONS = {
    "knee": ("hip", "knee", "ankle"),
    "elbow": ("shoulder", "elbow", "wrist"),
    "shoulder": ("hip", "shoulder", "elbow"),
    "hip": ("shoulder", "hip", "knee"),
}


def calculate_joint_angle(
    pose: Optional[dict],
    joint: str,
    side: str,
    indices: Dict[str, int],
    min_confidence: float = 0.3,
) -> Optional[float]:
    """
    Calculate a joint angle for one side of the body.

    Args:
        pose: Pose frame with a 'keypoints' list.
        joint: One of 'knee', 'elbow', 'shoulder', 'hip'.
        side: 'left' or 'right'.
        indices: Joint index table for the pose model.
        min_confidence: Minimum keypoint score.

    Returns:
        Angle in degrees (180 = straight), or None if undeterminable.

    Raises:
        ValueError: If joint or side is not recognised.
    """
    if joint not in JOINT_ANGLE_DEFINITIONS:
        raise ValueError(
            f"Invalid joint: {joint}. "
            f"Must be one of: {', '.join(JOINT_ANGLE_DEFINITIONS.keys())}"
        )
    if side not in ("left", "right"):
        raise ValueError(f"side must be 'left' or 'right', got {side}")

    first, vertex, third = JOINT_ANGLE_DEFINITIONS[joint]
    return angle_at(
        get_keypoint(pose, f"{side}_{first}", indices),
        get_keypoint(pose, f"{side}_{vertex}", indices),
        get_keypoint(pose, f"{side}_{third}", indices),
        min_confidence,
    )


def calculate_joint_angles(
    pose: Optional[dict], indices: Dict[str, int], min_confidence: float = 0.3
) -> Dict[str, Optional[float]]:
    """
    Calculate every joint angle for both sides.

    Returns:
        Dict keyed like 'left_knee_bend', 'right_elbow_angle', plus
        'max_knee_bend' (the deeper of the two knee bends, i.e. the
        smaller angle, when at least one knee is measurable).
    """
    angles = {}
    for side in ("left", "right"):
        angles[f"{side}_knee_bend"] = calculate_joint_angle(
            pose, "knee", side, indices, min_confidence
        )
        angles[f"{side}_elbow_angle"] = calculate_joint_angle(
            pose, "elbow", side, indices, min_confidence
        )
        angles[f"{side}_shoulder_angle"] = calculate_joint_angle(
            pose, "shoulder", side, indices, min_confidence
        )
        angles[f"{side}_hip_angle"] = calculate_joint_angle(
            pose, "hip", side, indices, min_confidence
        )

    left_knee = angles["left_knee_bend"]
    right_knee = angles["right_knee_bend"]
    if left_knee is None and right_knee is None:
        angles["max_knee_bend"] = None
    else:
        angles["max_knee_bend"] = min(
            left_knee if left_knee is not None else 180.0,
            right_knee if right_knee is not None else 180.0,
        )

    return angles


def calculate_segment_angle(
    pose: Optional[dict],
    segment: str,
    indices: Dict[str, int],
    min_confidence: float = 0.3,
) -> Optional[float]:
    """
    Angle of the left-to-right hip or shoulder line relative to horizontal.

    Args:
        pose: Pose frame.
        segment: 'hip' or 'shoulder'.
        indices: Joint index table.
        min_confidence: Minimum keypoint score.

    Returns:
        Angle in degrees (-180 to 180), or None if either end is invalid.
    """
    left = get_confident_keypoint(pose, f"left_{segment}", indices, min_confidence)
    right = get_confident_keypoint(pose, f"right_{segment}", indices, min_confidence)
    if left is None or right is None:
        return None
    return calculate_line_angle(left, right)


def calculate_x_factor(
    hip_line_angle: Optional[float], shoulder_line_angle: Optional[float]
) -> Optional[float]:
    """
    Hip-shoulder separation angle.

    Returns:
        Shoulder line angle minus hip line angle, wrapped to (-180, 180],
        or None if either angle is missing.
    """
    if hip_line_angle is None or shoulder_line_angle is None:
        return None
    return wrap_angle_delta(shoulder_line_angle - hip_line_angle)
