"""Tests for services/swing_classifier.py - stroke type and key positions."""

import pytest

from conftest import build_pose
from services.models import SwingType
from services.swing_classifier import (
    check_serve_posture,
    check_two_handed,
    classify_swing_type,
    determine_dominant_side,
    find_loading_peak,
    find_serve_key_positions,
)
from services.swing_detector import SwingDetectionConfig
from utils.keypoints import MOVENET_INDICES

CLOSE_HANDS = {"left_wrist": (305.0, 300.0), "right_wrist": (295.0, 300.0)}
RAISED_RIGHT_WRIST = {"right_wrist": (250.0, 150.0)}


def pose_stream(frame_count=60, special=None):
    """Standing poses, with per-frame overrides from `special`."""
    special = special or {}
    return {frame: [build_pose(special.get(frame))] for frame in range(frame_count)}


def classify(poses, orientation_velocity, body_orientation, peak=30, **config):
    frames = sorted(poses)
    return classify_swing_type(
        orientation_velocity,
        body_orientation,
        peak,
        SwingDetectionConfig(**config),
        poses,
        frames,
        MOVENET_INDICES,
    )


class TestServePosture:
    """Tests for check_serve_posture function."""

    def test_raised_wrist_before_peak(self):
        poses = pose_stream(special={20: RAISED_RIGHT_WRIST})
        is_serve, ratio = check_serve_posture(poses, sorted(poses), 50, 10, MOVENET_INDICES, 0.3)
        assert is_serve
        assert ratio == pytest.approx(0.5)

    def test_raised_wrist_outside_window(self):
        poses = pose_stream(special={2: RAISED_RIGHT_WRIST})
        is_serve, ratio = check_serve_posture(poses, sorted(poses), 50, 10, MOVENET_INDICES, 0.3)
        assert not is_serve
        assert ratio == 0.0


class TestTwoHanded:
    """Tests for check_two_handed function."""

    def test_hands_together(self):
        poses = pose_stream(special={30: CLOSE_HANDS})
        is_two_handed, ratio = check_two_handed(poses, sorted(poses), 30, 10, MOVENET_INDICES, 0.3)
        assert is_two_handed
        assert ratio == pytest.approx(10 / 80)

    def test_hands_apart(self):
        poses = pose_stream()
        is_two_handed, ratio = check_two_handed(poses, sorted(poses), 30, 10, MOVENET_INDICES, 0.3)
        assert not is_two_handed
        assert ratio == pytest.approx(110 / 80)

    def test_wrists_never_visible(self):
        poses = {f: [build_pose(missing=("left_wrist",))] for f in range(60)}
        assert check_two_handed(poses, sorted(poses), 30, 10, MOVENET_INDICES, 0.3) == (False, -1.0)


class TestClassifySwingType:
    """Tests for classify_swing_type function."""

    def test_forward_rotation_is_forehand(self):
        assert classify(pose_stream(), [2.0] * 60, [0.0] * 60) == SwingType.FOREHAND

    def test_backward_rotation_is_backhand(self):
        assert classify(pose_stream(), [-2.0] * 60, [0.0] * 60) == SwingType.BACKHAND

    def test_two_handed_backhand(self):
        poses = pose_stream(special={30: CLOSE_HANDS})
        assert classify(poses, [-2.0] * 60, [0.0] * 60) == SwingType.BACKHAND_TWO_HAND

    def test_left_handed_mirrors_rotation(self):
        assert classify(pose_stream(), [2.0] * 60, [0.0] * 60, handedness="left") == SwingType.BACKHAND
        assert classify(pose_stream(), [-2.0] * 60, [0.0] * 60, handedness="left") == SwingType.FOREHAND

    def test_orientation_fallback(self):
        assert classify(pose_stream(), [0.0] * 60, [30.0] * 60) == SwingType.FOREHAND
        assert classify(pose_stream(), [0.0] * 60, [-30.0] * 60) == SwingType.BACKHAND

    def test_unknown(self):
        assert classify(pose_stream(), [0.0] * 60, [0.0] * 60) == SwingType.UNKNOWN
        assert classify(pose_stream(), [None] * 60, [None] * 60) == SwingType.UNKNOWN

    def test_serve_checked_first(self):
        poses = pose_stream(special={20: RAISED_RIGHT_WRIST})
        assert classify(poses, [2.0] * 60, [0.0] * 60) == SwingType.SERVE


class TestDominantSide:
    """Tests for determine_dominant_side function."""

    @pytest.mark.parametrize(
        "left,right,expected",
        [(2.0, 10.0, "right"), (10.0, 2.0, "left"), (8.0, 10.0, "both"), (None, 5.0, "right")],
    )
    def test_sides(self, left, right, expected):
        assert determine_dominant_side(left, right) == expected


class TestLoadingPeak:
    """Tests for find_loading_peak function."""

    def test_furthest_from_contact(self):
        frames = [100, 101, 102, 103, 104]
        result = find_loading_peak([0.0, 10.0, 60.0, 30.0, 20.0], frames, 10, 0, 4)
        assert result["loading_peak_frame"] == 102
        assert result["loading_peak_timestamp"] == pytest.approx(10.2)
        assert result["loading_peak_orientation"] == 60.0

    def test_wraps_across_branch_cut(self):
        frames = list(range(4))
        result = find_loading_peak([170.0, -170.0, 100.0, 175.0], frames, 10, 0, 3)
        assert result["loading_peak_frame"] == 2

    def test_no_contact_orientation(self):
        result = find_loading_peak([0.0, 10.0, None], [0, 1, 2], 10, 0, 2)
        assert all(value is None for value in result.values())


class TestServeKeyPositions:
    """Tests for find_serve_key_positions function."""

    def test_trophy_contact_and_landing(self):
        poses = pose_stream(
            frame_count=30,
            special={
                16: RAISED_RIGHT_WRIST,
                20: {"right_wrist": (250.0, 100.0)},
                25: {"left_ankle": (330.0, 520.0)},
            },
        )
        positions = find_serve_key_positions(
            poses, sorted(poses), 10, 0, 29, SwingDetectionConfig(), MOVENET_INDICES
        )
        assert positions["contact_point_frame"] == 20
        assert positions["contact_point_height"] == pytest.approx(1.0)
        assert positions["trophy_frame"] == 16
        assert positions["trophy_arm_height"] == pytest.approx(0.5)
        assert positions["landing_frame"] == 25
        assert positions["landing_timestamp"] == pytest.approx(2.5)

    def test_no_arm_visible(self):
        poses = {f: [build_pose(missing=("right_wrist", "left_ankle"))] for f in range(10)}
        positions = find_serve_key_positions(
            poses, sorted(poses), 10, 0, 9, SwingDetectionConfig(), MOVENET_INDICES
        )
        assert all(value is None for value in positions.values())
