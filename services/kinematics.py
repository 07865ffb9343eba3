"""
Per-frame kinematic extraction.

Walks the selected pose stream once and produces raw channels: joint
velocities relative to the body center, the combined wrist velocity,
radial (extension) velocity, body orientation and its frame-to-frame
change, joint and segment angles, keypoint confidences, and the
provisional swing score.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from services.models import ChannelSet
from utils.biomechanics import calculate_joint_angles, calculate_segment_angle, calculate_x_factor
from utils.geometry import calculate_torso_height, get_body_center, wrap_angle_delta
from utils.keypoints import LIMB_JOINTS, get_confident_keypoint, get_keypoint, select_pose
from utils.signal_processing import null_safe_max
from utils.units import average_torso_height

logger = logging.getLogger(__name__)

MIN_RADIAL_DISTANCE = 1.0

JOINT_ANGLE_CHANNELS = (
    "left_knee_bend",
    "right_knee_bend",
    "max_knee_bend",
    "left_elbow_angle",
    "right_elbow_angle",
    "left_shoulder_angle",
    "right_shoulder_angle",
    "left_hip_angle",
    "right_hip_angle",
)

VELOCITY_CHANNELS = tuple(f"{joint}_velocity" for joint in LIMB_JOINTS)
CONFIDENCE_CHANNELS = tuple(f"{joint}_confidence" for joint in LIMB_JOINTS)

CHANNEL_UNITS = {
    "wrist_velocity": "px/frame",
    "max_wrist_velocity": "px/frame",
    "radial_velocity": "px/frame",
    "body_orientation": "deg",
    "orientation_velocity": "deg/frame",
    "hip_line_angle": "deg",
    "shoulder_line_angle": "deg",
    "x_factor": "deg",
    "hip_angular_velocity": "deg/s",
    "shoulder_angular_velocity": "deg/s",
    "swing_score": "score",
}
CHANNEL_UNITS.update({name: "px/frame" for name in VELOCITY_CHANNELS})
CHANNEL_UNITS.update({name: "deg" for name in JOINT_ANGLE_CHANNELS})
CHANNEL_UNITS.update({name: "score" for name in CONFIDENCE_CHANNELS})


def relative_position(keypoint: dict, center: Tuple[float, float]) -> np.ndarray:
    """Keypoint position relative to the body center."""
    return np.array([keypoint["x"] - center[0], keypoint["y"] - center[1]], dtype=float)


def calculate_relative_velocity(
    current_pose, previous_pose, joint, current_center, previous_center, indices, min_confidence
) -> Optional[float]:
    """
    Speed of a joint after removing body translation.

    Returns:
        Distance in pixels between the joint's center-relative positions in
        the two frames, or None if the joint or either center is invalid.
    """
    if current_center is None or previous_center is None:
        return None

    current = get_confident_keypoint(current_pose, joint, indices, min_confidence)
    previous = get_confident_keypoint(previous_pose, joint, indices, min_confidence)
    if current is None or previous is None:
        return None

    delta = relative_position(current, current_center) - relative_position(previous, previous_center)
    return float(np.linalg.norm(delta))


def calculate_radial_velocity(
    current_pose, previous_pose, joint, current_center, previous_center, indices, min_confidence
) -> Optional[float]:
    """
    Signed speed of a joint along the line from the body center.

    Positive when the joint moves away from the center (extension),
    negative when it moves toward it. Zero when the joint sits on the
    center.
    """
    if current_center is None or previous_center is None:
        return None

    current = get_confident_keypoint(current_pose, joint, indices, min_confidence)
    previous = get_confident_keypoint(previous_pose, joint, indices, min_confidence)
    if current is None or previous is None:
        return None

    current_rel = relative_position(current, current_center)
    previous_rel = relative_position(previous, previous_center)

    radial_distance = np.linalg.norm(current_rel)
    if radial_distance < MIN_RADIAL_DISTANCE:
        return 0.0

    direction = current_rel / radial_distance
    return float(np.dot(current_rel - previous_rel, direction))


def combine_wrist_velocities(
    left: Optional[float], right: Optional[float], wrist_mode: str, handedness: str
) -> Optional[float]:
    """
    Combine per-wrist speeds.

    Args:
        left: Left wrist speed.
        right: Right wrist speed.
        wrist_mode: 'both' (sum), 'max', or 'dominant'.
        handedness: 'right' or 'left', used by 'dominant'.

    Returns:
        Combined speed; None only when both wrists are None. A missing
        side counts as 0 here and nowhere earlier.
    """
    if left is None and right is None:
        return None

    left_value = left if left is not None else 0.0
    right_value = right if right is not None else 0.0

    if wrist_mode == "max":
        return max(left_value, right_value)
    if wrist_mode == "dominant":
        return right if handedness == "right" else left
    return left_value + right_value


def calculate_swing_score(
    wrist_velocity: Optional[float], orientation_velocity: Optional[float], rotation_weight: float
) -> Optional[float]:
    """
    Blend wrist speed with body rotation speed.

    Returns:
        v * (1 - w) + v * |orientation_velocity| * w, or None if either
        input is None.
    """
    if wrist_velocity is None or orientation_velocity is None:
        return None
    return (
        wrist_velocity * (1 - rotation_weight)
        + wrist_velocity * abs(orientation_velocity) * rotation_weight
    )


def _confidence(pose, joint, indices) -> Optional[float]:
    keypoint = get_keypoint(pose, joint, indices)
    if keypoint is None or keypoint.get("score") is None:
        return None
    return float(keypoint["score"])


def extract_kinematics(
    poses: Dict[int, List[dict]],
    frames: Sequence[int],
    indices: Dict[str, int],
    config,
    fps: float,
    tracker,
    pose_index: int = 0,
) -> Tuple[ChannelSet, float]:
    """
    Compute the raw kinematic channels for a run.

    Args:
        poses: Frame index to candidate poses.
        frames: Sorted frame indices to analyse.
        indices: Joint index table for the pose model.
        config: Detection config (min_confidence, wrist_mode, handedness,
            rotation_weight).
        fps: Video frames per second.
        tracker: Orientation tracker, already reset; update() is called
            exactly once per frame that has a pose.
        pose_index: Tracked person within each frame.

    Returns:
        (channel set of raw channels, average torso height in pixels).
    """
    n = len(frames)
    min_conf = config.min_confidence
    series = {name: [None] * n for name in CHANNEL_UNITS}
    torso_heights = []

    previous_pose = None
    previous_center = None
    previous_orientation = None
    previous_segments = {"hip": None, "shoulder": None}

    for i, frame in enumerate(frames):
        pose = select_pose(poses, frame, pose_index)
        if pose is None:
            previous_pose = None
            previous_center = None
            previous_orientation = None
            previous_segments = {"hip": None, "shoulder": None}
            continue

        center = get_body_center(pose, indices, min_conf)
        torso_heights.append(calculate_torso_height(pose, indices, min_conf))

        for joint in LIMB_JOINTS:
            series[f"{joint}_confidence"][i] = _confidence(pose, joint, indices)

        for name, value in calculate_joint_angles(pose, indices, min_conf).items():
            series[name][i] = value

        orientation = tracker.update(pose, indices)
        series["body_orientation"][i] = orientation
        if orientation is not None and previous_orientation is not None:
            series["orientation_velocity"][i] = wrap_angle_delta(orientation - previous_orientation)

        segments = {}
        for segment in ("hip", "shoulder"):
            angle = calculate_segment_angle(pose, segment, indices, min_conf)
            segments[segment] = angle
            series[f"{segment}_line_angle"][i] = angle
            if angle is not None and previous_segments[segment] is not None:
                series[f"{segment}_angular_velocity"][i] = (
                    wrap_angle_delta(angle - previous_segments[segment]) * fps
                )
        series["x_factor"][i] = calculate_x_factor(segments["hip"], segments["shoulder"])

        if previous_pose is not None:
            for joint in LIMB_JOINTS:
                series[f"{joint}_velocity"][i] = calculate_relative_velocity(
                    pose, previous_pose, joint, center, previous_center, indices, min_conf
                )

            left = series["left_wrist_velocity"][i]
            right = series["right_wrist_velocity"][i]
            series["wrist_velocity"][i] = combine_wrist_velocities(
                left, right, config.wrist_mode, config.handedness
            )
            series["max_wrist_velocity"][i] = null_safe_max(left, right)
            series["radial_velocity"][i] = null_safe_max(
                calculate_radial_velocity(
                    pose, previous_pose, "left_wrist", center, previous_center, indices, min_conf
                ),
                calculate_radial_velocity(
                    pose, previous_pose, "right_wrist", center, previous_center, indices, min_conf
                ),
            )
            series["swing_score"][i] = calculate_swing_score(
                series["wrist_velocity"][i],
                series["orientation_velocity"][i],
                config.rotation_weight,
            )

        previous_pose = pose
        previous_center = center
        previous_orientation = orientation
        previous_segments = segments

    channels = ChannelSet(n)
    for name, unit in CHANNEL_UNITS.items():
        channels.add_values(name, unit, series[name])

    avg_torso = average_torso_height(torso_heights)
    logger.info(
        "Extracted %d channels over %d frames (avg torso %.1f px)",
        len(channels),
        n,
        avg_torso,
    )
    return channels, avg_torso
