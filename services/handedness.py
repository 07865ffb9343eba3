"""
Handedness detection.

Scores the left and right wrist on five normalized signals collected over
the whole pose stream (average speed, peak speed, speed spread, peak
extension and cross-body crossings) and calls the dominant hand.
"""

import logging
from datetime import datetime, timezone

import numpy as np

from services.models import HandednessResult, HandednessSignals, SidePair
from utils.geometry import calculate_distance, get_body_center, get_centerline_x
from utils.keypoints import get_confident_keypoint, get_keypoint_indices, select_pose

logger = logging.getLogger(__name__)


class HandednessConfig:
    """
    Configuration for handedness detection.

    Attributes:
        min_confidence: Minimum keypoint score.
        high_velocity_threshold: Wrist speed (px/frame) counted as a fast frame.
        avg_velocity_weight: Weight of the average speed signal.
        peak_velocity_weight: Weight of the peak speed signal.
        variance_weight: Weight of the speed spread signal.
        extension_weight: Weight of the peak extension signal.
        cross_body_weight: Weight of the cross-body crossing signal.
    """

    def __init__(
        self,
        min_confidence=0.3,
        high_velocity_threshold=8.0,
        avg_velocity_weight=1.0,
        peak_velocity_weight=1.5,
        variance_weight=0.5,
        extension_weight=1.0,
        cross_body_weight=0.8,
    ):
        """
        Initialize handedness configuration.

        Raises:
            ValueError: If any parameter is out of valid range.
        """
        if not 0.0 <= min_confidence <= 1.0:
            raise ValueError("min_confidence must be between 0.0 and 1.0")
        if high_velocity_threshold < 0:
            raise ValueError("high_velocity_threshold must be non-negative")

        weights = {
            "avg_velocity_weight": avg_velocity_weight,
            "peak_velocity_weight": peak_velocity_weight,
            "variance_weight": variance_weight,
            "extension_weight": extension_weight,
            "cross_body_weight": cross_body_weight,
        }
        for name, value in weights.items():
            if value < 0:
                raise ValueError(f"{name} must be non-negative")
        if sum(weights.values()) <= 0:
            raise ValueError("at least one signal weight must be positive")

        self.min_confidence = min_confidence
        self.high_velocity_threshold = high_velocity_threshold
        self.avg_velocity_weight = avg_velocity_weight
        self.peak_velocity_weight = peak_velocity_weight
        self.variance_weight = variance_weight
        self.extension_weight = extension_weight
        self.cross_body_weight = cross_body_weight

    @classmethod
    def from_dict(cls, values):
        """
        Build a config from a dict of overrides.

        Raises:
            ValueError: On unknown fields or out-of-range values.
        """
        merged = cls().to_dict()
        unknown = sorted(set(values) - set(merged))
        if unknown:
            raise ValueError(f"Unknown config fields: {', '.join(unknown)}")
        merged.update(values)
        return cls(**merged)

    def to_dict(self):
        return dict(vars(self))

    def __repr__(self):
        return (
            f"HandednessConfig("
            f"min_confidence={self.min_confidence}, "
            f"high_velocity_threshold={self.high_velocity_threshold})"
        )


def calculate_stats(values):
    """
    Average, peak and spread of a list of samples.

    The spread is the population standard deviation (reported under the
    'variance' name).

    Returns:
        (avg, peak, spread), all 0 for an empty list.
    """
    if not values:
        return 0.0, 0.0, 0.0
    samples = np.asarray(values, dtype=float)
    return float(samples.mean()), float(samples.max()), float(samples.std())


def normalize_pair(left, right):
    """Split a left/right pair into fractions summing to 1 (0.5/0.5 when both are 0)."""
    total = left + right
    if total == 0:
        return SidePair(left=0.5, right=0.5)
    return SidePair(left=left / total, right=right / total)


class HandednessDetector:
    """Calls the dominant hand from a pose keypoint stream."""

    def __init__(self, config=None, **kwargs):
        """
        Initialize handedness detector.

        Args:
            config: HandednessConfig instance. If None, creates from kwargs
                or uses defaults.
            **kwargs: Config parameters used when config is None.
        """
        if config is None:
            config = HandednessConfig(**kwargs)
        self.config = config

    def detect(self, poses, model="MoveNet", pose_index=0):
        """
        Run handedness detection.

        Args:
            poses: Dict of frame index -> list of candidate poses. Not modified.
            model: Keypoint topology ('MoveNet' or 'BlazePose').
            pose_index: Tracked person within each frame.

        Returns:
            HandednessResult.

        Raises:
            ValueError: If poses is empty.
        """
        if not poses:
            raise ValueError("No preprocessed poses available")

        config = self.config
        min_conf = config.min_confidence
        indices = get_keypoint_indices(model)

        velocities = {"left": [], "right": []}
        extensions = {"left": [], "right": []}
        cross_body = {"left": 0, "right": 0}
        high_velocity = {"left": 0, "right": 0}
        previous_wrist_x = {"left": None, "right": None}

        previous_pose = None
        previous_center = None
        frames_analyzed = 0

        for frame in sorted(poses.keys()):
            pose = select_pose(poses, frame, pose_index)
            if pose is None:
                continue

            center = get_body_center(pose, indices, min_conf)
            if center is None:
                continue
            frames_analyzed += 1
            centerline_x = get_centerline_x(pose, indices, min_conf)
            center_point = {"x": center[0], "y": center[1]}

            for side in ("left", "right"):
                wrist = get_confident_keypoint(pose, f"{side}_wrist", indices, min_conf)
                if wrist is None:
                    continue

                extensions[side].append(calculate_distance(wrist, center_point))

                # The left wrist crosses toward larger x, the right toward smaller x
                if centerline_x is not None and previous_wrist_x[side] is not None:
                    if side == "left":
                        crossed = wrist["x"] > centerline_x and previous_wrist_x[side] <= centerline_x
                    else:
                        crossed = wrist["x"] < centerline_x and previous_wrist_x[side] >= centerline_x
                    if crossed:
                        cross_body[side] += 1
                previous_wrist_x[side] = wrist["x"]

                if previous_pose is None:
                    continue
                previous_wrist = get_confident_keypoint(
                    previous_pose, f"{side}_wrist", indices, min_conf
                )
                if previous_wrist is None:
                    continue

                dx = (wrist["x"] - center[0]) - (previous_wrist["x"] - previous_center[0])
                dy = (wrist["y"] - center[1]) - (previous_wrist["y"] - previous_center[1])
                velocity = float(np.hypot(dx, dy))
                velocities[side].append(velocity)
                if velocity >= config.high_velocity_threshold:
                    high_velocity[side] += 1

            previous_pose = pose
            previous_center = center

        left_vel = calculate_stats(velocities["left"])
        right_vel = calculate_stats(velocities["right"])
        left_ext = calculate_stats(extensions["left"])
        right_ext = calculate_stats(extensions["right"])

        signals = HandednessSignals(
            avg_velocity=SidePair(left_vel[0], right_vel[0]),
            peak_velocity=SidePair(left_vel[1], right_vel[1]),
            velocity_variance=SidePair(left_vel[2], right_vel[2]),
            high_velocity_frames=SidePair(high_velocity["left"], high_velocity["right"]),
            avg_extension=SidePair(left_ext[0], right_ext[0]),
            peak_extension=SidePair(left_ext[1], right_ext[1]),
            cross_body_count=SidePair(cross_body["left"], cross_body["right"]),
        )

        breakdown = {
            "avg_velocity": normalize_pair(left_vel[0], right_vel[0]),
            "peak_velocity": normalize_pair(left_vel[1], right_vel[1]),
            "velocity_variance": normalize_pair(left_vel[2], right_vel[2]),
            "extension": normalize_pair(left_ext[1], right_ext[1]),
            "cross_body": normalize_pair(cross_body["left"], cross_body["right"]),
        }
        weights = {
            "avg_velocity": config.avg_velocity_weight,
            "peak_velocity": config.peak_velocity_weight,
            "velocity_variance": config.variance_weight,
            "extension": config.extension_weight,
            "cross_body": config.cross_body_weight,
        }
        total_weight = sum(weights.values())

        left_score = sum(breakdown[k].left * w for k, w in weights.items()) / total_weight
        right_score = sum(breakdown[k].right * w for k, w in weights.items()) / total_weight

        dominant_hand = "left" if left_score > right_score else "right"
        confidence = min(1.0, abs(left_score - right_score) * 2 + 0.5)

        logger.info(
            "Handedness: %s (confidence=%.2f, left=%.3f, right=%.3f, frames=%d)",
            dominant_hand,
            confidence,
            left_score,
            right_score,
            frames_analyzed,
        )

        return HandednessResult(
            dominant_hand=dominant_hand,
            confidence=confidence,
            left_score=left_score,
            right_score=right_score,
            signals=signals,
            breakdown=breakdown,
            frames_analyzed=frames_analyzed,
            analysis_timestamp=datetime.now(timezone.utc).isoformat(),
        )
