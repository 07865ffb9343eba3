"""
Orientation-enhanced swing detection.

Turns a stream of per-frame pose keypoints into conditioned kinematic
channels and a list of detected swings with phases, stroke type and
clip boundaries.

Pipeline: kinematic extraction -> channel conditioning -> km/h and
acceleration channels -> adaptive threshold and peak finding -> phase
boundaries -> classification -> event building -> merging -> phase
marking.
"""

import logging
from datetime import datetime, timezone

from services.kinematics import extract_kinematics
from services.models import SwingDetectionResult, SwingFrameData, SwingType
from services.peak_finder import (
    compute_adaptive_threshold,
    find_peaks,
    min_peak_distance,
    passes_rotation_gate,
)
from services.phase_detector import detect_phases
from services.signal_conditioner import (
    add_acceleration_channels,
    add_speed_channels,
    condition_channels,
)
from services.swing_classifier import (
    classify_swing_type,
    determine_dominant_side,
    find_loading_peak,
    find_serve_key_positions,
)
from services.swing_merger import (
    build_swing,
    calculate_clip_bounds,
    mark_phases,
    merge_overlapping_swings,
)
from utils.keypoints import SUPPORTED_MODELS, get_keypoint_indices
from utils.orientation import OrientationTracker
from utils.signal_processing import present
from utils.units import calculate_meters_per_pixel, convert_velocity_to_kmh

logger = logging.getLogger(__name__)

WRIST_MODES = ("both", "max", "dominant")
HANDEDNESS_OPTIONS = ("right", "left")


class SwingDetectionConfig:
    """
    Configuration for swing detection.

    Attributes:
        min_velocity_threshold: Floor for the adaptive swing score threshold.
        min_velocity_kmh: Swings slower than this at contact are dropped.
        velocity_percentile: Percentile of swing scores used as threshold.
        wrist_mode: 'both' (sum), 'max', or 'dominant' wrist speed.
        min_rotation_velocity: Rotation (deg/frame) required at a peak.
        require_rotation: Reject peaks without body rotation.
        rotation_weight: Weight of rotation in the swing score (0-1).
        min_time_between_swings: Minimum peak separation in seconds.
        loading_rotation_threshold: Rotation (deg/frame) that counts as loading.
        contact_velocity_ratio: Fraction of peak speed used for phase walks.
        min_confidence: Minimum keypoint score.
        classify_swing_type: Classify stroke type (else 'unknown').
        classification_window: Half-window in frames for classification.
        handedness: 'right' or 'left'.
        clip_lead_time: Seconds of clip before the follow-through end.
        clip_trail_time: Seconds of clip after the follow-through end.
    """

    def __init__(
        self,
        min_velocity_threshold=1.0,
        min_velocity_kmh=3.0,
        velocity_percentile=75,
        wrist_mode="both",
        min_rotation_velocity=0.5,
        require_rotation=True,
        rotation_weight=0.3,
        min_time_between_swings=0.8,
        loading_rotation_threshold=1.5,
        contact_velocity_ratio=0.9,
        min_confidence=0.3,
        classify_swing_type=True,
        classification_window=10,
        handedness="right",
        clip_lead_time=2.0,
        clip_trail_time=1.0,
    ):
        """
        Initialize swing detection configuration.

        Raises:
            ValueError: If any parameter is out of valid range.
        """
        if min_velocity_threshold < 0:
            raise ValueError("min_velocity_threshold must be non-negative")
        if min_velocity_kmh < 0:
            raise ValueError("min_velocity_kmh must be non-negative")
        if not 0 <= velocity_percentile <= 100:
            raise ValueError("velocity_percentile must be between 0 and 100")
        if wrist_mode not in WRIST_MODES:
            raise ValueError("wrist_mode must be 'both', 'max', or 'dominant'")
        if min_rotation_velocity < 0:
            raise ValueError("min_rotation_velocity must be non-negative")
        if not isinstance(require_rotation, bool):
            raise ValueError("require_rotation must be a boolean")
        if not 0.0 <= rotation_weight <= 1.0:
            raise ValueError("rotation_weight must be between 0.0 and 1.0")
        if min_time_between_swings < 0:
            raise ValueError("min_time_between_swings must be non-negative")
        if loading_rotation_threshold < 0:
            raise ValueError("loading_rotation_threshold must be non-negative")
        if not 0.0 < contact_velocity_ratio <= 1.0:
            raise ValueError("contact_velocity_ratio must be between 0.0 and 1.0")
        if not 0.0 <= min_confidence <= 1.0:
            raise ValueError("min_confidence must be between 0.0 and 1.0")
        if not isinstance(classify_swing_type, bool):
            raise ValueError("classify_swing_type must be a boolean")
        if classification_window < 1:
            raise ValueError("classification_window must be at least 1")
        if handedness not in HANDEDNESS_OPTIONS:
            raise ValueError("handedness must be 'right' or 'left'")
        if clip_lead_time < 0:
            raise ValueError("clip_lead_time must be non-negative")
        if clip_trail_time < 0:
            raise ValueError("clip_trail_time must be non-negative")

        self.min_velocity_threshold = min_velocity_threshold
        self.min_velocity_kmh = min_velocity_kmh
        self.velocity_percentile = velocity_percentile
        self.wrist_mode = wrist_mode
        self.min_rotation_velocity = min_rotation_velocity
        self.require_rotation = require_rotation
        self.rotation_weight = rotation_weight
        self.min_time_between_swings = min_time_between_swings
        self.loading_rotation_threshold = loading_rotation_threshold
        self.contact_velocity_ratio = contact_velocity_ratio
        self.min_confidence = min_confidence
        self.classify_swing_type = classify_swing_type
        self.classification_window = classification_window
        self.handedness = handedness
        self.clip_lead_time = clip_lead_time
        self.clip_trail_time = clip_trail_time

    @classmethod
    def from_dict(cls, values, base=None):
        """
        Build a config from a dict of overrides.

        Args:
            values: Field overrides, e.g. parsed from a request body.
            base: Config supplying the remaining fields (default: defaults).

        Raises:
            ValueError: On unknown fields or out-of-range values.
        """
        merged = (base or cls()).to_dict()
        unknown = sorted(set(values) - set(merged))
        if unknown:
            raise ValueError(f"Unknown config fields: {', '.join(unknown)}")
        merged.update(values)
        return cls(**merged)

    def to_dict(self):
        """Configuration as a plain dict."""
        return dict(vars(self))

    def __repr__(self):
        """String representation of configuration."""
        return (
            f"SwingDetectionConfig("
            f"velocity_percentile={self.velocity_percentile}, "
            f"min_velocity_kmh={self.min_velocity_kmh}, "
            f"wrist_mode={self.wrist_mode}, "
            f"require_rotation={self.require_rotation}, "
            f"rotation_weight={self.rotation_weight}, "
            f"min_time_between_swings={self.min_time_between_swings}, "
            f"handedness={self.handedness})"
        )


# Preset configurations
PRESET_STANDARD = SwingDetectionConfig()

PRESET_SENSITIVE = SwingDetectionConfig(
    velocity_percentile=60,
    min_velocity_kmh=2.0,
    min_rotation_velocity=0.3,
    loading_rotation_threshold=1.0,
)

PRESET_STRICT = SwingDetectionConfig(
    velocity_percentile=85,
    min_velocity_kmh=5.0,
    min_rotation_velocity=1.0,
    min_time_between_swings=1.0,
)

PRESETS = {
    "standard": PRESET_STANDARD,
    "sensitive": PRESET_SENSITIVE,
    "strict": PRESET_STRICT,
}


def _range_values(values, start, end):
    return [v for v in values[start:end + 1] if v is not None]


class SwingDetector:
    """
    Detects swings from a pose keypoint stream.

    A detector can be reused across videos; every detect() call resets
    the orientation tracker and returns a new result.
    """

    def __init__(self, config=None, tracker=None, **kwargs):
        """
        Initialize swing detector.

        Args:
            config: SwingDetectionConfig instance. If None, creates from
                kwargs or uses PRESET_STANDARD.
            tracker: Orientation tracker with reset() and update(pose, indices).
                Defaults to an OrientationTracker.
            **kwargs: Config parameters used when config is None.
        """
        if config is None:
            if kwargs:
                config = SwingDetectionConfig(**kwargs)
            else:
                config = PRESET_STANDARD

        self.config = config
        self.tracker = tracker or OrientationTracker(min_confidence=config.min_confidence)

        logger.info(
            "Swing Detector Config: velocity_percentile=%s, wrist_mode=%s, "
            "require_rotation=%s, handedness=%s",
            config.velocity_percentile,
            config.wrist_mode,
            config.require_rotation,
            config.handedness,
        )

    def detect(self, poses, fps, model="MoveNet", pose_index=0):
        """
        Run swing detection over a pose stream.

        Args:
            poses: Dict of frame index -> list of candidate poses. Not modified.
            fps: Video frames per second.
            model: Keypoint topology ('MoveNet' or 'BlazePose').
            pose_index: Tracked person within each frame.

        Returns:
            SwingDetectionResult.

        Raises:
            ValueError: If poses is empty or fps is not positive.
        """
        if not poses:
            raise ValueError("No preprocessed poses available")
        if fps is None or fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        if model not in SUPPORTED_MODELS:
            logger.warning("Unknown pose model %s, using MoveNet keypoint indices", model)

        config = self.config
        frames = sorted(poses.keys())
        total_frames = len(frames)
        indices = get_keypoint_indices(model)

        logger.info("Analyzing %d frames at %.1f fps (%s)", total_frames, fps, model)

        self.tracker.reset()
        raw_channels, avg_torso = extract_kinematics(
            poses, frames, indices, config, fps, self.tracker, pose_index
        )

        channels = condition_channels(raw_channels)
        meters_per_pixel = calculate_meters_per_pixel(avg_torso)
        add_speed_channels(channels, meters_per_pixel, fps)
        add_acceleration_channels(channels, fps)

        scores = channels.processed("swing_score")
        threshold = compute_adaptive_threshold(
            scores, config.velocity_percentile, config.min_velocity_threshold
        )
        peaks = find_peaks(scores, threshold, min_peak_distance(config.min_time_between_swings, fps))
        logger.info("Swing score threshold=%.3f, candidate peaks=%d", threshold, len(peaks))

        swings = self._build_swings(
            peaks, channels, poses, frames, indices, fps, meters_per_pixel, pose_index
        )
        swings = merge_overlapping_swings(swings)

        phases = mark_phases(frames, swings)
        frame_data = self._build_frame_data(frames, fps, channels, phases)

        result = self._summarize(
            swings, frame_data, total_frames, frames[-1] + 1, fps, meters_per_pixel, threshold
        )
        logger.info("Detected %s", result)
        return result

    def _build_swings(self, peaks, channels, poses, frames, indices, fps, meters_per_pixel, pose_index):
        """Turn accepted peaks into DetectedSwing records, before merging."""
        config = self.config
        scores = channels.processed("swing_score")
        wrist_velocity = channels.processed("wrist_velocity")
        orientation_velocity = channels.raw("orientation_velocity")
        body_orientation = channels.processed("body_orientation")
        left_wrist = channels.processed("left_wrist_velocity")
        right_wrist = channels.processed("right_wrist_velocity")

        valid_scores = present(scores)
        max_score = float(valid_scores.max()) if valid_scores.size else 0.0

        swings = []
        min_index = 0

        for peak in peaks:
            if config.require_rotation and not passes_rotation_gate(
                orientation_velocity[peak], config.min_rotation_velocity
            ):
                logger.debug("Peak at frame %d rejected: no rotation", frames[peak])
                continue

            boundaries = detect_phases(wrist_velocity, orientation_velocity, peak, config, min_index)

            peak_velocity = wrist_velocity[peak] or 0.0
            velocity_kmh = convert_velocity_to_kmh(peak_velocity, meters_per_pixel, fps)
            if velocity_kmh < config.min_velocity_kmh:
                logger.debug(
                    "Peak at frame %d rejected: %.1f km/h below minimum", frames[peak], velocity_kmh
                )
                continue

            orientations = _range_values(body_orientation, boundaries.loading_start, boundaries.follow_end)
            rotation_range = max(orientations) - min(orientations) if orientations else 0.0
            rotations = _range_values(orientation_velocity, boundaries.loading_start, boundaries.follow_end)
            peak_rotation_velocity = max(abs(v) for v in rotations) if rotations else 0.0

            if config.classify_swing_type:
                swing_type = classify_swing_type(
                    orientation_velocity, body_orientation, peak, config,
                    poses, frames, indices, pose_index,
                )
            else:
                swing_type = SwingType.UNKNOWN

            follow_end_frame = frames[boundaries.follow_end]
            if swing_type == SwingType.SERVE:
                clip = calculate_clip_bounds(
                    follow_end_frame, fps, frames[-1] + 1, config.clip_lead_time, config.clip_trail_time
                )
                key_positions = find_serve_key_positions(
                    poses, frames, fps, clip["clip_start_frame"], clip["clip_end_frame"],
                    config, indices, pose_index,
                )
            else:
                key_positions = find_loading_peak(
                    body_orientation, frames, fps, boundaries.loading_start, peak
                )

            swing = build_swing(
                frames,
                fps,
                boundaries,
                config,
                total_frames=frames[-1] + 1,
                peak_velocity=peak_velocity,
                velocity_kmh=velocity_kmh,
                orientation=body_orientation[peak],
                rotation_range=rotation_range,
                peak_rotation_velocity=peak_rotation_velocity,
                swing_type=swing_type,
                dominant_side=determine_dominant_side(left_wrist[peak], right_wrist[peak]),
                swing_score=scores[peak],
                max_score=max_score,
                key_positions=key_positions,
            )
            swings.append(swing)
            min_index = boundaries.follow_end

        return swings

    def _build_frame_data(self, frames, fps, channels, phases):
        """One immutable row per analysed frame."""
        scores = channels.processed("swing_score")
        rows = []
        for i, frame in enumerate(frames):
            rows.append(SwingFrameData(
                frame=frame,
                timestamp=frame / fps,
                phase=phases[i],
                swing_score=scores[i],
                values={c.name: c.processed[i] for c in channels},
                raw_values={c.name: c.raw[i] for c in channels},
            ))
        return rows

    def _summarize(self, swings, frame_data, total_frames, video_frames, fps, meters_per_pixel,
                   threshold):
        """Aggregate counts and statistics for the result."""
        velocities = [s.peak_velocity for s in swings]
        rotations = [s.rotation_range for s in swings]

        return SwingDetectionResult(
            swings=swings,
            frame_data=frame_data,
            total_swings=len(swings),
            forehand_count=sum(1 for s in swings if s.swing_type == SwingType.FOREHAND),
            backhand_count=sum(
                1 for s in swings
                if s.swing_type in (SwingType.BACKHAND, SwingType.BACKHAND_TWO_HAND)
            ),
            serve_count=sum(1 for s in swings if s.swing_type == SwingType.SERVE),
            average_velocity=sum(velocities) / len(velocities) if velocities else 0.0,
            max_velocity=max(velocities) if velocities else 0.0,
            average_rotation=sum(rotations) / len(rotations) if rotations else 0.0,
            frames_analyzed=total_frames,
            video_duration=video_frames / fps,
            analysis_timestamp=datetime.now(timezone.utc).isoformat(),
            meters_per_pixel=meters_per_pixel,
            threshold=threshold,
        )
