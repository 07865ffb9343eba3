"""
Swing type classification and key position search.

Classifies a swing as serve, forehand, backhand (one- or two-handed) or
unknown from arm posture, rotation direction and body orientation, and
finds the sub-events used for coaching: loading peak for groundstrokes;
trophy, contact point and landing for serves.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from services.models import SwingType
from utils.geometry import (
    arm_height_ratio,
    calculate_distance,
    calculate_shoulder_width,
    max_wrist_height_ratio,
    wrap_angle_delta,
)
from utils.keypoints import get_confident_keypoint, select_pose

logger = logging.getLogger(__name__)

SERVE_HEIGHT_THRESHOLD = 0.4
TWO_HANDED_THRESHOLD = 0.6
ROTATION_VOTE_THRESHOLD = 0.5
ORIENTATION_THRESHOLD = 15.0
SERVE_MIN_WINDOW_BACK = 45
TROPHY_OFFSET_SECONDS = 0.4
SYMMETRY_THRESHOLD = 0.5


def _window(center: int, back: int, forward: int, length: int) -> range:
    return range(max(0, center - back), min(length - 1, center + forward) + 1)


def check_serve_posture(
    poses: Dict[int, List[dict]],
    frames: Sequence[int],
    peak: int,
    window: int,
    indices: Dict[str, int],
    min_confidence: float,
    pose_index: int = 0,
) -> Tuple[bool, float]:
    """
    Look for a wrist raised well above the shoulder line before the peak.

    The trophy position comes up to 1.5 s before contact, so the search
    reaches max(4 * window, 45) frames back and window / 2 frames forward.
    Both wrists count since the tossing arm also goes up.

    Args:
        poses: Frame index to candidate poses.
        frames: Sorted analysed frame indices.
        peak: Index of the swing peak in frames.
        window: Classification window in frames.
        indices: Joint index table.
        min_confidence: Minimum keypoint score.
        pose_index: Tracked person within each frame.

    Returns:
        (is_serve, max_height_ratio) where the ratio starts at 0.
    """
    back = max(window * 4, SERVE_MIN_WINDOW_BACK)
    forward = window // 2

    max_ratio = 0.0
    for i in _window(peak, back, forward, len(frames)):
        pose = select_pose(poses, frames[i], pose_index)
        ratio = max_wrist_height_ratio(pose, indices, min_confidence)
        if ratio is not None:
            max_ratio = max(max_ratio, ratio)

    return max_ratio >= SERVE_HEIGHT_THRESHOLD, max_ratio


def check_two_handed(
    poses: Dict[int, List[dict]],
    frames: Sequence[int],
    peak: int,
    window: int,
    indices: Dict[str, int],
    min_confidence: float,
    pose_index: int = 0,
) -> Tuple[bool, float]:
    """
    Check whether both hands stay on the racket around the peak.

    Returns:
        (is_two_handed, min_distance_ratio) where the ratio is the closest
        wrist-to-wrist distance over shoulder width, -1 if never measurable.
    """
    min_ratio = None
    for i in _window(peak, window, window, len(frames)):
        pose = select_pose(poses, frames[i], pose_index)
        left = get_confident_keypoint(pose, "left_wrist", indices, min_confidence)
        right = get_confident_keypoint(pose, "right_wrist", indices, min_confidence)
        if left is None or right is None:
            continue

        ratio = calculate_distance(left, right) / calculate_shoulder_width(pose, indices, min_confidence)
        if min_ratio is None or ratio < min_ratio:
            min_ratio = ratio

    if min_ratio is None:
        return False, -1.0
    return min_ratio <= TWO_HANDED_THRESHOLD, min_ratio


def _mean_in_window(values, center, back, forward) -> Optional[float]:
    window = [values[i] for i in _window(center, back, forward, len(values)) if values[i] is not None]
    if not window:
        return None
    return sum(window) / len(window)


def classify_swing_type(
    orientation_velocity: Sequence[Optional[float]],
    body_orientation: Sequence[Optional[float]],
    peak: int,
    config,
    poses: Dict[int, List[dict]],
    frames: Sequence[int],
    indices: Dict[str, int],
    pose_index: int = 0,
) -> SwingType:
    """
    Classify one swing.

    Order: serve posture, then average rotation velocity around the peak,
    then average body orientation leaning toward the backswing. Backhands
    are refined into one- or two-handed.

    Args:
        orientation_velocity: Orientation change per index.
        body_orientation: Processed body orientation per index.
        peak: Peak index.
        config: Detection config (classification_window, handedness,
            min_confidence).
        poses: Frame index to candidate poses.
        frames: Sorted analysed frame indices.
        indices: Joint index table.
        pose_index: Tracked person within each frame.

    Returns:
        SwingType.
    """
    window = config.classification_window
    right_handed = config.handedness == "right"

    is_serve, _ = check_serve_posture(
        poses, frames, peak, window, indices, config.min_confidence, pose_index
    )
    if is_serve:
        return SwingType.SERVE

    def classify_backhand():
        is_two_handed, _ = check_two_handed(
            poses, frames, peak, window, indices, config.min_confidence, pose_index
        )
        return SwingType.BACKHAND_TWO_HAND if is_two_handed else SwingType.BACKHAND

    avg_rotation = _mean_in_window(orientation_velocity, peak, window, window) or 0.0
    if not right_handed:
        avg_rotation = -avg_rotation

    if avg_rotation > ROTATION_VOTE_THRESHOLD:
        return SwingType.FOREHAND
    if avg_rotation < -ROTATION_VOTE_THRESHOLD:
        return classify_backhand()

    avg_orientation = _mean_in_window(body_orientation, peak, window * 2, window)
    if avg_orientation is not None:
        if not right_handed:
            avg_orientation = -avg_orientation
        if avg_orientation < -ORIENTATION_THRESHOLD:
            return classify_backhand()
        if avg_orientation > ORIENTATION_THRESHOLD:
            return SwingType.FOREHAND

    return SwingType.UNKNOWN


def determine_dominant_side(left_velocity: Optional[float], right_velocity: Optional[float]) -> str:
    """
    Decide which arm drove the swing.

    Returns:
        'left' or 'right' when the slower wrist moved at under half the
        speed of the faster one, otherwise 'both'.
    """
    left = left_velocity or 0.0
    right = right_velocity or 0.0

    symmetry = min(left, right) / max(left, right, 0.001)
    if symmetry < SYMMETRY_THRESHOLD:
        return "left" if left > right else "right"
    return "both"


def find_loading_peak(
    body_orientation: Sequence[Optional[float]],
    frames: Sequence[int],
    fps: float,
    loading_start: int,
    peak: int,
) -> Dict[str, Optional[float]]:
    """
    Frame of maximum body coil before contact.

    Searches [loading_start, peak) for the orientation furthest (wrap
    aware) from the orientation at contact.

    Returns:
        Dict with loading_peak_frame, loading_peak_timestamp and
        loading_peak_orientation; values are None when not found.
    """
    result = {
        "loading_peak_frame": None,
        "loading_peak_timestamp": None,
        "loading_peak_orientation": None,
    }

    contact_orientation = body_orientation[peak]
    if contact_orientation is None:
        return result

    max_difference = -1.0
    for i in range(loading_start, peak):
        orientation = body_orientation[i]
        if orientation is None:
            continue
        difference = abs(wrap_angle_delta(orientation - contact_orientation))
        if difference > max_difference:
            max_difference = difference
            result = {
                "loading_peak_frame": frames[i],
                "loading_peak_timestamp": frames[i] / fps,
                "loading_peak_orientation": orientation,
            }

    return result


def find_serve_key_positions(
    poses: Dict[int, List[dict]],
    frames: Sequence[int],
    fps: float,
    clip_start_frame: int,
    clip_end_frame: int,
    config,
    indices: Dict[str, int],
    pose_index: int = 0,
) -> Dict[str, Optional[float]]:
    """
    Find trophy, contact point and landing within a serve's clip.

    Contact point is the highest hitting-arm position in the whole clip.
    Trophy is the frame before contact closest to 0.4 s earlier. Landing
    is the lowest front-ankle position from contact (or the clip middle)
    to the clip end.

    Returns:
        Dict keyed by the serve fields of DetectedSwing.
    """
    side = config.handedness
    front_side = "left" if side == "right" else "right"
    min_conf = config.min_confidence
    clip_frames = [f for f in frames if clip_start_frame <= f <= clip_end_frame]

    positions = {
        "trophy_frame": None,
        "trophy_timestamp": None,
        "trophy_arm_height": None,
        "contact_point_frame": None,
        "contact_point_timestamp": None,
        "contact_point_height": None,
        "landing_frame": None,
        "landing_timestamp": None,
    }

    for frame in clip_frames:
        pose = select_pose(poses, frame, pose_index)
        height = arm_height_ratio(pose, side, indices, min_conf)
        if height is None:
            continue
        if positions["contact_point_height"] is None or height > positions["contact_point_height"]:
            positions["contact_point_frame"] = frame
            positions["contact_point_timestamp"] = frame / fps
            positions["contact_point_height"] = height

    contact_frame = positions["contact_point_frame"]
    if contact_frame is not None:
        target_time = positions["contact_point_timestamp"] - TROPHY_OFFSET_SECONDS
        candidates = [f for f in clip_frames if f < contact_frame]
        if candidates:
            trophy = min(candidates, key=lambda f: abs(f / fps - target_time))
            positions["trophy_frame"] = trophy
            positions["trophy_timestamp"] = trophy / fps
            positions["trophy_arm_height"] = arm_height_ratio(
                select_pose(poses, trophy, pose_index), side, indices, min_conf
            )

    if contact_frame is not None:
        search_start = contact_frame
    else:
        search_start = clip_start_frame + (clip_end_frame - clip_start_frame) / 2

    lowest_y = None
    for frame in clip_frames:
        if frame < search_start:
            continue
        ankle = get_confident_keypoint(
            select_pose(poses, frame, pose_index), f"{front_side}_ankle", indices, min_conf
        )
        if ankle is None:
            continue
        if lowest_y is None or ankle["y"] > lowest_y:
            lowest_y = ankle["y"]
            positions["landing_frame"] = frame
            positions["landing_timestamp"] = frame / fps

    logger.debug(
        "Serve key positions: trophy=%s contact=%s landing=%s",
        positions["trophy_frame"],
        positions["contact_point_frame"],
        positions["landing_frame"],
    )
    return positions
