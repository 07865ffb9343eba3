"""
Body orientation tracking.

Estimates the facing direction of a player from a single pose frame and
smooths it over time with rotational momentum. The smoothing state lives
on an OrientationTracker instance, so each video gets its own tracker or
calls reset() before reuse.

Angle convention: 0 = facing the camera, positive = turned toward the
player's right, negative = toward the player's left, +/-180 = facing away.
"""

import math
from typing import Dict, Optional

from utils.geometry import wrap_angle_delta
from utils.keypoints import get_confident_keypoint

EXPECTED_WIDTH_TO_TORSO_RATIO = 0.8
KNEE_BEND_RATIO = 0.15
SMOOTHING_FACTOR = 0.4
MOMENTUM_DECAY = 0.7
MOMENTUM_GAIN = 0.3
MOMENTUM_WEIGHT = 0.2

# Weights of the left/right direction cues
DIRECTION_WEIGHTS = {
    "shoulder_balance": 0.3,
    "hip_balance": 0.25,
    "torso_twist": 0.15,
    "wrist": 0.1,
    "knee_bend": 0.2,
}


def _knee_bend_signal(pose, side, hip, indices, min_confidence):
    """Negated ankle offset when the knee is visibly bent, else 0."""
    knee = get_confident_keypoint(pose, f"{side}_knee", indices, min_confidence)
    ankle = get_confident_keypoint(pose, f"{side}_ankle", indices, min_confidence)
    if knee is None or ankle is None:
        return 0.0

    horizontal = abs(ankle["x"] - knee["x"])
    thigh_drop = abs(knee["y"] - hip["y"])
    if horizontal > thigh_drop * KNEE_BEND_RATIO:
        return -(ankle["x"] - knee["x"]) * 0.8
    return 0.0


def estimate_facing_angle(
    pose: Optional[dict], indices: Dict[str, int], min_confidence: float = 0.3
) -> Optional[float]:
    """
    Estimate the unsmoothed facing angle of a single pose.

    The rotation magnitude comes from how compressed the shoulder line is
    relative to the torso; the sign comes from a weighted blend of
    shoulder/hip balance, torso twist, wrist placement and knee bend
    direction.

    Args:
        pose: Pose frame with a 'keypoints' list.
        indices: Joint index table for the pose model.
        min_confidence: Minimum keypoint score.

    Returns:
        Angle in degrees, or None unless both shoulders and both hips are valid.
    """
    left_shoulder = get_confident_keypoint(pose, "left_shoulder", indices, min_confidence)
    right_shoulder = get_confident_keypoint(pose, "right_shoulder", indices, min_confidence)
    left_hip = get_confident_keypoint(pose, "left_hip", indices, min_confidence)
    right_hip = get_confident_keypoint(pose, "right_hip", indices, min_confidence)

    if None in (left_shoulder, right_shoulder, left_hip, right_hip):
        return None

    shoulder_mid_x = (left_shoulder["x"] + right_shoulder["x"]) / 2
    shoulder_mid_y = (left_shoulder["y"] + right_shoulder["y"]) / 2
    hip_mid_x = (left_hip["x"] + right_hip["x"]) / 2
    hip_mid_y = (left_hip["y"] + right_hip["y"]) / 2

    shoulder_width_x = right_shoulder["x"] - left_shoulder["x"]
    hip_width_x = right_hip["x"] - left_hip["x"]
    shoulder_width = math.hypot(shoulder_width_x, right_shoulder["y"] - left_shoulder["y"])
    torso_length = math.hypot(shoulder_mid_x - hip_mid_x, shoulder_mid_y - hip_mid_y)

    # Seen from the front, the person's left shoulder has the larger x
    facing_camera = shoulder_width_x < 0
    hips_facing_camera = hip_width_x < 0

    compression = min(1.0, (shoulder_width / max(torso_length, 1.0)) / EXPECTED_WIDTH_TO_TORSO_RATIO)
    base_rotation = math.degrees(math.acos(max(0.0, min(1.0, compression))))

    shoulder_balance = (left_shoulder["x"] - shoulder_mid_x) + (right_shoulder["x"] - shoulder_mid_x)
    hip_balance = (left_hip["x"] - hip_mid_x) + (right_hip["x"] - hip_mid_x)
    torso_twist = shoulder_mid_x - hip_mid_x

    wrist_signal = 0.0
    left_wrist = get_confident_keypoint(pose, "left_wrist", indices, min_confidence)
    right_wrist = get_confident_keypoint(pose, "right_wrist", indices, min_confidence)
    if left_wrist is not None and right_wrist is not None:
        wrist_signal = (left_wrist["x"] - left_shoulder["x"]) - (right_wrist["x"] - right_shoulder["x"])

    knee_signal = (
        _knee_bend_signal(pose, "left", left_hip, indices, min_confidence)
        + _knee_bend_signal(pose, "right", right_hip, indices, min_confidence)
    )

    direction = (
        shoulder_balance * DIRECTION_WEIGHTS["shoulder_balance"]
        + hip_balance * DIRECTION_WEIGHTS["hip_balance"]
        + torso_twist * DIRECTION_WEIGHTS["torso_twist"]
        + wrist_signal * DIRECTION_WEIGHTS["wrist"]
        + knee_signal * DIRECTION_WEIGHTS["knee_bend"]
    )
    sign = 1.0 if direction > 0 else -1.0

    if facing_camera and hips_facing_camera:
        return sign * base_rotation
    if not facing_camera and not hips_facing_camera:
        return sign * (180.0 - base_rotation)
    return sign * 90.0


class OrientationTracker:
    """
    Momentum-smoothed body orientation estimator.

    Holds the previous angle and rotational momentum between frames.
    Call reset() when switching to a new video, then update() once per
    frame in order.
    """

    def __init__(self, min_confidence=0.3):
        """
        Initialize tracker.

        Args:
            min_confidence: Minimum keypoint score used for the estimate.
        """
        self.min_confidence = min_confidence
        self.previous_angle = None
        self.momentum = 0.0

    def reset(self):
        """Forget the smoothing state."""
        self.previous_angle = None
        self.momentum = 0.0

    def update(self, pose, indices):
        """
        Feed the next frame and get its smoothed orientation.

        Args:
            pose: Pose frame with a 'keypoints' list.
            indices: Joint index table for the pose model.

        Returns:
            Orientation angle in degrees (-180 to 180), or None when the
            torso is not visible. A None frame leaves the state unchanged.
        """
        angle = estimate_facing_angle(pose, indices, self.min_confidence)
        if angle is None:
            return None

        if self.previous_angle is not None:
            diff = wrap_angle_delta(angle - self.previous_angle)
            self.momentum = self.momentum * MOMENTUM_DECAY + diff * MOMENTUM_GAIN
            angle = self.previous_angle + diff * SMOOTHING_FACTOR + self.momentum * MOMENTUM_WEIGHT

            while angle > 180:
                angle -= 360
            while angle < -180:
                angle += 360

        self.previous_angle = angle
        return max(-180.0, min(180.0, angle))

    def __repr__(self):
        """String representation of tracker state."""
        return (
            f"OrientationTracker("
            f"previous_angle={self.previous_angle}, "
            f"momentum={self.momentum:.3f})"
        )
