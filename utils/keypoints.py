"""
Keypoint topology helpers.

Maps joint names to indices for the supported pose models and provides
confidence-gated access to keypoints inside a pose frame.
"""

from typing import Dict, List, Optional

MODEL_MOVENET = "MoveNet"
MODEL_BLAZEPOSE = "BlazePose"

SUPPORTED_MODELS = (MODEL_MOVENET, MODEL_BLAZEPOSE)

# COCO-17 numbering
MOVENET_INDICES = {
    "nose": 0,
    "left_shoulder": 5,
    "right_shoulder": 6,
    "left_elbow": 7,
    "right_elbow": 8,
    "left_wrist": 9,
    "right_wrist": 10,
    "left_hip": 11,
    "right_hip": 12,
    "left_knee": 13,
    "right_knee": 14,
    "left_ankle": 15,
    "right_ankle": 16,
}

# 33-landmark numbering
BLAZEPOSE_INDICES = {
    "nose": 0,
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_elbow": 13,
    "right_elbow": 14,
    "left_wrist": 15,
    "right_wrist": 16,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
}

LIMB_JOINTS = (
    "left_wrist",
    "right_wrist",
    "left_elbow",
    "right_elbow",
    "left_shoulder",
    "right_shoulder",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)

TORSO_JOINTS = ("left_shoulder", "right_shoulder", "left_hip", "right_hip")


def get_keypoint_indices(model: str) -> Dict[str, int]:
    """
    Get the joint index table for a pose model.

    Unknown model names fall back to MoveNet numbering.

    Args:
        model: Model discriminator ('MoveNet' or 'BlazePose').

    Returns:
        Mapping of joint name to keypoint index.
    """
    if model == MODEL_BLAZEPOSE:
        return BLAZEPOSE_INDICES
    return MOVENET_INDICES


def get_keypoint(pose: Optional[dict], name: str, indices: Dict[str, int]) -> Optional[dict]:
    """
    Look up a named keypoint in a pose frame.

    Args:
        pose: Pose frame with a 'keypoints' list, or None.
        name: Joint name (e.g. 'left_wrist').
        indices: Joint index table from get_keypoint_indices.

    Returns:
        Keypoint dict with 'x', 'y' and optional 'score', or None if absent.
    """
    if not pose:
        return None

    keypoints = pose.get("keypoints") or []
    index = indices[name]
    if index >= len(keypoints):
        return None
    return keypoints[index]


def keypoint_score(keypoint: Optional[dict]) -> float:
    """Confidence of a keypoint, treating a missing score as 0."""
    if not keypoint:
        return 0.0
    score = keypoint.get("score")
    return float(score) if score is not None else 0.0


def is_confident(keypoint: Optional[dict], min_confidence: float) -> bool:
    """True when the keypoint exists and its score passes the gate."""
    return keypoint is not None and keypoint_score(keypoint) >= min_confidence


def get_confident_keypoint(
    pose: Optional[dict], name: str, indices: Dict[str, int], min_confidence: float
) -> Optional[dict]:
    """Return the named keypoint only if it passes the confidence gate."""
    keypoint = get_keypoint(pose, name, indices)
    if is_confident(keypoint, min_confidence):
        return keypoint
    return None


def select_pose(poses: Dict[int, List[dict]], frame: int, pose_index: int) -> Optional[dict]:
    """
    Pick the selected pose for a frame.

    Args:
        poses: Frame index to list of candidate poses.
        frame: Frame index.
        pose_index: Index of the tracked person within the frame.

    Returns:
        The pose dict, or None when the frame has no pose at that index.
    """
    candidates = poses.get(frame)
    if not candidates or pose_index >= len(candidates):
        return None
    return candidates[pose_index]
