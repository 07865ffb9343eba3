"""Tests for utils/orientation.py - facing angle estimate and momentum tracker."""

import math

import pytest

from conftest import build_pose
from utils.keypoints import MOVENET_INDICES
from utils.orientation import OrientationTracker, estimate_facing_angle

SIDEWAYS = {
    "left_shoulder": (310, 200),
    "right_shoulder": (290, 200),
    "left_hip": (310, 300),
    "right_hip": (290, 300),
}

FACING_AWAY = {
    "left_shoulder": (260, 200),
    "right_shoulder": (340, 200),
    "left_hip": (270, 300),
    "right_hip": (330, 300),
}


class TestEstimateFacingAngle:
    """Tests for estimate_facing_angle function."""

    def test_facing_camera(self):
        angle = estimate_facing_angle(build_pose(), MOVENET_INDICES)
        assert angle == pytest.approx(0.0, abs=1e-6)

    def test_facing_away(self):
        angle = estimate_facing_angle(build_pose(FACING_AWAY), MOVENET_INDICES)
        assert abs(angle) == pytest.approx(180.0)

    def test_compressed_shoulders_mean_sideways(self):
        angle = estimate_facing_angle(build_pose(SIDEWAYS), MOVENET_INDICES)
        assert angle == pytest.approx(math.degrees(math.acos(0.25)), abs=0.01)

    def test_requires_shoulders_and_hips(self):
        pose = build_pose(missing=("left_hip",))
        assert estimate_facing_angle(pose, MOVENET_INDICES) is None


class TestOrientationTracker:
    """Tests for OrientationTracker."""

    def test_first_frame_is_unsmoothed(self):
        tracker = OrientationTracker()
        assert tracker.update(build_pose(SIDEWAYS), MOVENET_INDICES) == pytest.approx(75.52, abs=0.01)

    def test_momentum_smoothing(self):
        tracker = OrientationTracker()
        tracker.update(build_pose(), MOVENET_INDICES)
        angle = tracker.update(build_pose(SIDEWAYS), MOVENET_INDICES)
        # 0 + 0.4 * 75.52 + 0.2 * (0.3 * 75.52)
        assert angle == pytest.approx(34.74, abs=0.01)

    def test_reset_clears_state(self):
        tracker = OrientationTracker()
        tracker.update(build_pose(), MOVENET_INDICES)
        tracker.update(build_pose(SIDEWAYS), MOVENET_INDICES)
        assert tracker.previous_angle is not None

        tracker.reset()
        assert tracker.previous_angle is None
        assert tracker.momentum == 0.0
        assert tracker.update(build_pose(SIDEWAYS), MOVENET_INDICES) == pytest.approx(75.52, abs=0.01)

    def test_invisible_torso_keeps_state(self):
        tracker = OrientationTracker()
        tracker.update(build_pose(), MOVENET_INDICES)
        assert tracker.update(build_pose(missing=("left_hip",)), MOVENET_INDICES) is None
        assert tracker.previous_angle == pytest.approx(0.0, abs=1e-6)

    def test_output_in_range(self):
        tracker = OrientationTracker()
        for overrides in ({}, FACING_AWAY, SIDEWAYS, FACING_AWAY, {}):
            angle = tracker.update(build_pose(overrides), MOVENET_INDICES)
            assert -180 <= angle <= 180
