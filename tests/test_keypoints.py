"""Tests for utils/keypoints.py - topology tables and keypoint access."""

from utils.keypoints import (
    BLAZEPOSE_INDICES,
    MOVENET_INDICES,
    get_confident_keypoint,
    get_keypoint,
    get_keypoint_indices,
    is_confident,
    keypoint_score,
    select_pose,
)


class TestKeypointIndices:
    """Tests for get_keypoint_indices function."""

    def test_movenet(self):
        indices = get_keypoint_indices("MoveNet")
        assert indices["left_wrist"] == 9
        assert indices["right_hip"] == 12

    def test_blazepose(self):
        indices = get_keypoint_indices("BlazePose")
        assert indices["left_wrist"] == 15
        assert indices["right_ankle"] == 28

    def test_unknown_model_falls_back_to_movenet(self):
        assert get_keypoint_indices("OpenPose") is MOVENET_INDICES

    def test_tables_cover_same_joints(self):
        assert set(MOVENET_INDICES) == set(BLAZEPOSE_INDICES)


class TestKeypointAccess:
    """Tests for keypoint lookup and confidence gating."""

    def test_get_keypoint(self):
        pose = {"keypoints": [{"x": float(i), "y": 0.0, "score": 0.5} for i in range(17)]}
        assert get_keypoint(pose, "left_wrist", MOVENET_INDICES)["x"] == 9.0

    def test_short_keypoint_list(self):
        pose = {"keypoints": [{"x": 0.0, "y": 0.0, "score": 0.9}] * 5}
        assert get_keypoint(pose, "left_wrist", MOVENET_INDICES) is None

    def test_no_pose(self):
        assert get_keypoint(None, "nose", MOVENET_INDICES) is None

    def test_score_none_is_zero(self):
        assert keypoint_score({"x": 0, "y": 0, "score": None}) == 0.0
        assert keypoint_score({"x": 0, "y": 0}) == 0.0

    def test_is_confident_inclusive(self):
        assert is_confident({"x": 0, "y": 0, "score": 0.3}, 0.3)
        assert not is_confident({"x": 0, "y": 0, "score": 0.29}, 0.3)
        assert not is_confident(None, 0.0)

    def test_get_confident_keypoint(self):
        pose = {"keypoints": [{"x": 1.0, "y": 2.0, "score": 0.1}] * 17}
        assert get_confident_keypoint(pose, "nose", MOVENET_INDICES, 0.3) is None
        assert get_confident_keypoint(pose, "nose", MOVENET_INDICES, 0.05) is not None


class TestSelectPose:
    """Tests for select_pose function."""

    def test_selects_index(self):
        poses = {3: [{"id": "a"}, {"id": "b"}]}
        assert select_pose(poses, 3, 1) == {"id": "b"}

    def test_missing_frame_or_index(self):
        poses = {3: [{"id": "a"}], 4: []}
        assert select_pose(poses, 5, 0) is None
        assert select_pose(poses, 4, 0) is None
        assert select_pose(poses, 3, 1) is None
