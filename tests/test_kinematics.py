"""Tests for services/kinematics.py - per-frame kinematic channels."""

import pytest

from conftest import (
    STANDING_JOINTS,
    ScriptedTracker,
    build_pose,
    build_swing_poses,
    forehand_rotation,
    wrist_speed_profile,
)
from services.kinematics import (
    CHANNEL_UNITS,
    calculate_radial_velocity,
    calculate_relative_velocity,
    calculate_swing_score,
    combine_wrist_velocities,
    extract_kinematics,
)
from services.swing_detector import SwingDetectionConfig
from utils.geometry import get_body_center
from utils.keypoints import MOVENET_INDICES


def shifted_pose(dx, dy=0.0):
    return build_pose({name: (x + dx, y + dy) for name, (x, y) in STANDING_JOINTS.items()})


class TestCombineWristVelocities:
    """Tests for combine_wrist_velocities function."""

    def test_both_sums(self):
        assert combine_wrist_velocities(3.0, 4.0, "both", "right") == 7.0

    def test_max(self):
        assert combine_wrist_velocities(3.0, 4.0, "max", "right") == 4.0

    def test_dominant(self):
        assert combine_wrist_velocities(3.0, 4.0, "dominant", "right") == 4.0
        assert combine_wrist_velocities(3.0, 4.0, "dominant", "left") == 3.0

    def test_one_side_missing(self):
        assert combine_wrist_velocities(None, 4.0, "both", "right") == 4.0

    def test_both_missing(self):
        assert combine_wrist_velocities(None, None, "both", "right") is None


class TestSwingScore:
    """Tests for calculate_swing_score function."""

    def test_blend(self):
        # 10 * 0.7 + 10 * 2 * 0.3
        assert calculate_swing_score(10.0, 2.0, 0.3) == pytest.approx(13.0)

    def test_rotation_sign_ignored(self):
        assert calculate_swing_score(10.0, -2.0, 0.3) == calculate_swing_score(10.0, 2.0, 0.3)

    def test_missing_input(self):
        assert calculate_swing_score(None, 2.0, 0.3) is None
        assert calculate_swing_score(10.0, None, 0.3) is None


class TestRelativeVelocity:
    """Tests for center-relative joint velocities."""

    def test_body_translation_removed(self):
        previous, current = build_pose(), shifted_pose(10.0, 5.0)
        velocity = calculate_relative_velocity(
            current, previous, "right_wrist",
            get_body_center(current, MOVENET_INDICES), get_body_center(previous, MOVENET_INDICES),
            MOVENET_INDICES, 0.3,
        )
        assert velocity == pytest.approx(0.0)

    def test_wrist_motion(self):
        previous = build_pose()
        current = build_pose({"right_wrist": (241.0, 303.0)})
        center = get_body_center(previous, MOVENET_INDICES)
        velocity = calculate_relative_velocity(
            current, previous, "right_wrist", center, center, MOVENET_INDICES, 0.3
        )
        assert velocity == pytest.approx(5.0)

    def test_missing_center(self):
        pose = build_pose()
        assert calculate_relative_velocity(pose, pose, "right_wrist", None, (0, 0), MOVENET_INDICES, 0.3) is None

    def test_low_confidence_joint(self):
        previous = build_pose(missing=("right_wrist",))
        current = build_pose()
        center = get_body_center(current, MOVENET_INDICES)
        assert calculate_relative_velocity(
            current, previous, "right_wrist", center, center, MOVENET_INDICES, 0.3
        ) is None


class TestRadialVelocity:
    """Tests for calculate_radial_velocity function."""

    def test_extension_is_positive(self):
        previous = build_pose()
        current = build_pose({"right_wrist": (235.0, 300.0)})
        center = get_body_center(previous, MOVENET_INDICES)
        velocity = calculate_radial_velocity(
            current, previous, "right_wrist", center, center, MOVENET_INDICES, 0.3
        )
        assert velocity > 0

    def test_retraction_is_negative(self):
        previous = build_pose()
        current = build_pose({"right_wrist": (255.0, 300.0)})
        center = get_body_center(previous, MOVENET_INDICES)
        velocity = calculate_radial_velocity(
            current, previous, "right_wrist", center, center, MOVENET_INDICES, 0.3
        )
        assert velocity < 0

    def test_joint_on_center(self):
        previous = build_pose()
        current = build_pose({"right_wrist": (300.0, 250.0)})
        center = get_body_center(previous, MOVENET_INDICES)
        assert calculate_radial_velocity(
            current, previous, "right_wrist", center, center, MOVENET_INDICES, 0.3
        ) == 0.0


class TestExtractKinematics:
    """Tests for extract_kinematics function."""

    def test_channels_aligned_with_frames(self, swing_poses, forehand_tracker):
        frames = sorted(swing_poses)
        channels, avg_torso = extract_kinematics(
            swing_poses, frames, MOVENET_INDICES, SwingDetectionConfig(), 30, forehand_tracker
        )
        assert channels.frame_count == 90
        assert set(channels.names) == set(CHANNEL_UNITS)
        assert all(len(channel) == 90 for channel in channels)
        assert avg_torso == pytest.approx(100.0)

    def test_tracker_called_once_per_frame(self, swing_poses, forehand_tracker):
        extract_kinematics(
            swing_poses, sorted(swing_poses), MOVENET_INDICES, SwingDetectionConfig(), 30, forehand_tracker
        )
        assert forehand_tracker.calls == 90

    def test_first_frame_has_no_velocity(self, swing_poses, forehand_tracker):
        channels, _ = extract_kinematics(
            swing_poses, sorted(swing_poses), MOVENET_INDICES, SwingDetectionConfig(), 30, forehand_tracker
        )
        assert channels.raw("wrist_velocity")[0] is None
        assert channels.raw("swing_score")[0] is None
        assert channels.raw("orientation_velocity")[0] is None

    def test_wrist_velocity_and_score(self, swing_poses, forehand_tracker):
        channels, _ = extract_kinematics(
            swing_poses, sorted(swing_poses), MOVENET_INDICES, SwingDetectionConfig(), 30, forehand_tracker
        )
        expected = wrist_speed_profile(40)
        assert channels.raw("right_wrist_velocity")[40] == pytest.approx(expected)
        assert channels.raw("left_wrist_velocity")[40] == pytest.approx(0.0)
        assert channels.raw("wrist_velocity")[40] == pytest.approx(expected)
        assert channels.raw("orientation_velocity")[40] == pytest.approx(2.0)
        assert channels.raw("swing_score")[40] == pytest.approx(expected * 1.3)

    def test_orientation_velocity_wraps(self):
        """Turning from 179 to -179 degrees is a 2 degree step, not -358."""
        tracker = ScriptedTracker(lambda call: 179.0 if call == 0 else -179.0)
        channels, _ = extract_kinematics(
            build_swing_poses(frame_count=3), [0, 1, 2], MOVENET_INDICES,
            SwingDetectionConfig(), 30, tracker,
        )
        assert channels.raw("body_orientation")[1] == pytest.approx(-179.0)
        assert channels.raw("orientation_velocity")[1] == pytest.approx(2.0)
        assert channels.raw("orientation_velocity")[2] == pytest.approx(0.0)

    def test_missing_pose_breaks_velocity_chain(self):
        poses = build_swing_poses(frame_count=20)
        del poses[10]
        tracker = ScriptedTracker(forehand_rotation)
        channels, _ = extract_kinematics(
            poses, list(range(20)), MOVENET_INDICES, SwingDetectionConfig(), 30, tracker
        )
        assert tracker.calls == 19
        assert channels.raw("body_orientation")[10] is None
        assert channels.raw("wrist_velocity")[10] is None
        assert channels.raw("wrist_velocity")[11] is None
        assert channels.raw("wrist_velocity")[12] is not None

    def test_unit_labels(self):
        assert CHANNEL_UNITS["right_wrist_velocity"] == "px/frame"
        assert CHANNEL_UNITS["body_orientation"] == "deg"
        assert CHANNEL_UNITS["hip_angular_velocity"] == "deg/s"
