"""Pytest configuration and synthetic pose fixtures for swing detection tests."""

import pytest

from services.models import DetectedSwing, SwingType
from utils.keypoints import MOVENET_INDICES

# Upright player facing the camera, MoveNet numbering. Seen from the
# front, the person's left side has the larger x.
STANDING_JOINTS = {
    "nose": (300.0, 150.0),
    "left_shoulder": (340.0, 200.0),
    "right_shoulder": (260.0, 200.0),
    "left_elbow": (350.0, 250.0),
    "right_elbow": (250.0, 250.0),
    "left_wrist": (355.0, 300.0),
    "right_wrist": (245.0, 300.0),
    "left_hip": (330.0, 300.0),
    "right_hip": (270.0, 300.0),
    "left_knee": (330.0, 400.0),
    "right_knee": (270.0, 400.0),
    "left_ankle": (330.0, 500.0),
    "right_ankle": (270.0, 500.0),
}


def build_pose(overrides=None, score=0.9, missing=(), indices=MOVENET_INDICES):
    """
    Build a pose frame from the standing template.

    Args:
        overrides: Joint name -> (x, y) replacing template positions.
        score: Confidence assigned to every joint.
        missing: Joint names given a score of 0.
        indices: Joint index table.
    """
    joints = dict(STANDING_JOINTS)
    joints.update(overrides or {})

    size = max(indices.values()) + 1
    keypoints = [{"x": 0.0, "y": 0.0, "score": 0.0} for _ in range(size)]
    for name, (x, y) in joints.items():
        keypoints[indices[name]] = {
            "x": x,
            "y": y,
            "score": 0.0 if name in missing else score,
        }
    return {"keypoints": keypoints, "score": score}


def wrist_speed_profile(frame):
    """Right wrist speed (px/frame): ramp 30-45, hold to 48, decay to 0 by 60."""
    if 30 <= frame <= 45:
        return 20.0 * (frame - 30) / 15
    if 45 < frame <= 48:
        return 20.0
    if 48 < frame <= 60:
        return 20.0 * (60 - frame) / 12
    return 0.0


def build_swing_poses(frame_count=90, speed=wrist_speed_profile, overrides_for=None):
    """
    Pose stream where only the right wrist moves, at the given speed per frame.

    Args:
        frame_count: Number of frames.
        speed: Function frame -> right wrist speed in px/frame.
        overrides_for: Optional function frame -> extra joint overrides.
    """
    poses = {}
    x = STANDING_JOINTS["right_wrist"][0]
    y = STANDING_JOINTS["right_wrist"][1]
    for frame in range(frame_count):
        if frame > 0:
            x -= speed(frame)
        overrides = {"right_wrist": (x, y)}
        if overrides_for:
            overrides.update(overrides_for(frame))
        poses[frame] = [build_pose(overrides)]
    return poses


class ScriptedTracker:
    """Orientation tracker double returning a fixed angle per call."""

    def __init__(self, angle_for_frame):
        self.angle_for_frame = angle_for_frame
        self.calls = 0
        self.resets = 0

    def reset(self):
        self.calls = 0
        self.resets += 1

    def update(self, pose, indices):
        angle = self.angle_for_frame(self.calls)
        self.calls += 1
        return angle


def forehand_rotation(frame):
    """Body turns +2 deg/frame over frames 25-45, still otherwise."""
    if frame <= 24:
        return 0.0
    return 2.0 * (min(frame, 45) - 24)


def build_detected_swing(**overrides):
    """DetectedSwing for a right-handed forehand at frame 45, 30 fps."""
    fields = dict(
        id="swing-45",
        frame=45,
        timestamp=1.5,
        peak_velocity=20.0,
        velocity_kmh=11.0,
        orientation=30.0,
        rotation_range=40.0,
        peak_rotation_velocity=2.0,
        swing_type=SwingType.FOREHAND,
        dominant_side="right",
        confidence=0.8,
        swing_score=20.4,
        loading_start=25,
        swing_start=34,
        contact_frame=45,
        follow_end=57,
        clip_start_frame=0,
        clip_start_time=0.0,
        clip_end_frame=87,
        clip_end_time=2.9,
        clip_duration=2.9,
    )
    fields.update(overrides)
    return DetectedSwing(**fields)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks end-to-end pipeline tests (deselect with '-m \"not integration\"')"
    )


@pytest.fixture
def pose_builder():
    """Factory for single pose frames."""
    return build_pose


@pytest.fixture
def swing_poses():
    """90-frame single-swing pose stream at 30 fps."""
    return build_swing_poses()


@pytest.fixture
def forehand_tracker():
    """Tracker scripted with forehand body rotation."""
    return ScriptedTracker(forehand_rotation)


@pytest.fixture
def still_tracker():
    """Tracker reporting no body rotation at all."""
    return ScriptedTracker(lambda frame: 0.0)
