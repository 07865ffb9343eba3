"""
Swing detection data models.

Provides the channel registry used while processing a run, the per-frame
rows and detected swing records returned to callers, and the aggregate
swing detection and handedness results. Returned records are frozen;
a new analysis run produces new objects instead of mutating old ones.
"""

import json
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


class SwingPhase(str, Enum):
    """Phase label stamped on every frame."""

    NEUTRAL = "neutral"
    LOADING = "loading"
    SWING = "swing"
    CONTACT = "contact"
    FOLLOW = "follow"
    RECOVERY = "recovery"


class SwingType(str, Enum):
    """Stroke classification of a detected swing."""

    FOREHAND = "forehand"
    BACKHAND = "backhand"
    BACKHAND_TWO_HAND = "backhand_two_hand"
    SERVE = "serve"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Channel:
    """
    One named per-frame signal.

    Attributes:
        name: Channel name (e.g. 'left_wrist_velocity').
        unit: Unit label (e.g. 'px/frame', 'deg', 'km/h').
        raw: Values as measured, None where undetectable.
        processed: Values after drop repair and smoothing.
    """

    name: str
    unit: str
    raw: Tuple[Optional[float], ...]
    processed: Tuple[Optional[float], ...] = None

    def __post_init__(self):
        object.__setattr__(self, "raw", tuple(self.raw))
        if self.processed is None:
            object.__setattr__(self, "processed", self.raw)
        else:
            object.__setattr__(self, "processed", tuple(self.processed))

        if len(self.raw) != len(self.processed):
            raise ValueError(
                f"Channel {self.name}: raw and processed lengths differ "
                f"({len(self.raw)} != {len(self.processed)})"
            )

    def __len__(self) -> int:
        return len(self.raw)

    def with_processed(self, processed) -> "Channel":
        """Copy of this channel with new processed values."""
        return replace(self, processed=tuple(processed))


class ChannelSet:
    """
    Ordered registry of channels sharing one frame axis.

    Every channel must have exactly frame_count samples so rows stay
    aligned 1:1 with frames.
    """

    def __init__(self, frame_count: int):
        if frame_count < 0:
            raise ValueError("frame_count must be non-negative")
        self.frame_count = frame_count
        self._channels: Dict[str, Channel] = {}

    def add(self, channel: Channel) -> Channel:
        """
        Register or replace a channel.

        Raises:
            ValueError: If the channel length does not match frame_count.
        """
        if len(channel) != self.frame_count:
            raise ValueError(
                f"Channel {channel.name} has {len(channel)} samples, "
                f"expected {self.frame_count}"
            )
        self._channels[channel.name] = channel
        return channel

    def add_values(self, name: str, unit: str, raw, processed=None) -> Channel:
        """Build and register a channel from plain value lists."""
        return self.add(Channel(name=name, unit=unit, raw=raw, processed=processed))

    def get(self, name: str) -> Channel:
        """
        Look up a channel by name.

        Raises:
            KeyError: If no channel has that name.
        """
        return self._channels[name]

    def raw(self, name: str) -> Tuple[Optional[float], ...]:
        return self._channels[name].raw

    def processed(self, name: str) -> Tuple[Optional[float], ...]:
        return self._channels[name].processed

    @property
    def names(self) -> List[str]:
        return list(self._channels.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._channels

    def __iter__(self) -> Iterator[Channel]:
        return iter(list(self._channels.values()))

    def __len__(self) -> int:
        return len(self._channels)

    def __repr__(self) -> str:
        return f"ChannelSet(frame_count={self.frame_count}, channels={len(self._channels)})"


@dataclass(frozen=True)
class SwingFrameData:
    """
    One analysed frame.

    Attributes:
        frame: Video frame index.
        timestamp: frame / fps, in seconds.
        phase: Phase label for this frame.
        swing_score: Processed swing score, None if undeterminable.
        values: Processed value of every channel at this frame.
        raw_values: Raw value of every channel at this frame.
    """

    frame: int
    timestamp: float
    phase: SwingPhase
    swing_score: Optional[float]
    values: Mapping[str, Optional[float]]
    raw_values: Mapping[str, Optional[float]]

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "raw_values", MappingProxyType(dict(self.raw_values)))

    def get(self, name: str, raw: bool = False) -> Optional[float]:
        """Value of one channel at this frame, None if unknown."""
        source = self.raw_values if raw else self.values
        return source.get(name)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame": self.frame,
            "timestamp": self.timestamp,
            "phase": self.phase.value,
            "swing_score": self.swing_score,
            "values": dict(self.values),
            "raw_values": dict(self.raw_values),
        }


@dataclass(frozen=True)
class DetectedSwing:
    """
    One detected swing.

    Frame fields are video frame numbers; the clip window is anchored to
    the end of the follow-through.
    """

    id: str
    frame: int
    timestamp: float
    peak_velocity: float
    velocity_kmh: float
    orientation: Optional[float]
    rotation_range: float
    peak_rotation_velocity: float
    swing_type: SwingType
    dominant_side: str
    confidence: float
    swing_score: float
    loading_start: int
    swing_start: int
    contact_frame: int
    follow_end: int
    clip_start_frame: int
    clip_start_time: float
    clip_end_frame: int
    clip_end_time: float
    clip_duration: float
    loading_peak_frame: Optional[int] = None
    loading_peak_timestamp: Optional[float] = None
    loading_peak_orientation: Optional[float] = None
    trophy_frame: Optional[int] = None
    trophy_timestamp: Optional[float] = None
    trophy_arm_height: Optional[float] = None
    contact_point_frame: Optional[int] = None
    contact_point_timestamp: Optional[float] = None
    contact_point_height: Optional[float] = None
    landing_frame: Optional[int] = None
    landing_timestamp: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["swing_type"] = self.swing_type.value
        return data

    def __repr__(self) -> str:
        return (
            f"DetectedSwing(id={self.id}, "
            f"type={self.swing_type.value}, "
            f"velocity_kmh={self.velocity_kmh:.1f}, "
            f"clip={self.clip_start_frame}-{self.clip_end_frame})"
        )


@dataclass(frozen=True)
class SwingDetectionResult:
    """
    Output of one swing detection run.

    Attributes:
        swings: Detected swings ordered by frame.
        frame_data: One row per analysed frame.
        total_swings: Number of swings.
        forehand_count: Forehands.
        backhand_count: One- and two-handed backhands.
        serve_count: Serves.
        average_velocity: Mean peak wrist velocity (px/frame).
        max_velocity: Largest peak wrist velocity (px/frame).
        average_rotation: Mean rotation range (degrees).
        frames_analyzed: Number of frames in the run.
        video_duration: Seconds from frame 0 to the end of the last analysed frame.
        analysis_timestamp: ISO-8601 time the run finished.
        meters_per_pixel: Scale used for km/h conversion.
        threshold: Adaptive swing score threshold used for peaks.
    """

    swings: Tuple[DetectedSwing, ...]
    frame_data: Tuple[SwingFrameData, ...]
    total_swings: int
    forehand_count: int
    backhand_count: int
    serve_count: int
    average_velocity: float
    max_velocity: float
    average_rotation: float
    frames_analyzed: int
    video_duration: float
    analysis_timestamp: str
    meters_per_pixel: float = 0.0
    threshold: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "swings", tuple(self.swings))
        object.__setattr__(self, "frame_data", tuple(self.frame_data))

    def channel(self, name: str, raw: bool = False) -> List[Optional[float]]:
        """Series of one channel across all frames."""
        return [row.get(name, raw=raw) for row in self.frame_data]

    def to_dict(self, include_frames: bool = True) -> Dict[str, Any]:
        """
        Convert results to nested dictionary.

        Args:
            include_frames: Include the per-frame rows (large for long videos).

        Returns:
            Result as plain dicts and lists.
        """
        data = {
            "swings": [swing.to_dict() for swing in self.swings],
            "total_swings": self.total_swings,
            "forehand_count": self.forehand_count,
            "backhand_count": self.backhand_count,
            "serve_count": self.serve_count,
            "average_velocity": self.average_velocity,
            "max_velocity": self.max_velocity,
            "average_rotation": self.average_rotation,
            "frames_analyzed": self.frames_analyzed,
            "video_duration": self.video_duration,
            "analysis_timestamp": self.analysis_timestamp,
            "meters_per_pixel": self.meters_per_pixel,
            "threshold": self.threshold,
        }
        if include_frames:
            data["frame_data"] = [row.to_dict() for row in self.frame_data]
        return data

    def to_json(self, indent: int = 2) -> str:
        """
        Convert results to JSON string.

        Args:
            indent: Number of spaces for JSON indentation.

        Returns:
            JSON-formatted string of the result.
        """
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"SwingDetectionResult("
            f"swings={self.total_swings}, "
            f"forehand={self.forehand_count}, "
            f"backhand={self.backhand_count}, "
            f"serve={self.serve_count}, "
            f"frames={self.frames_analyzed})"
        )


@dataclass(frozen=True)
class SidePair:
    """A left/right pair of values."""

    left: float = 0.0
    right: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"left": self.left, "right": self.right}


@dataclass(frozen=True)
class HandednessSignals:
    """Raw per-side aggregates collected over a run."""

    avg_velocity: SidePair = field(default_factory=SidePair)
    peak_velocity: SidePair = field(default_factory=SidePair)
    velocity_variance: SidePair = field(default_factory=SidePair)
    high_velocity_frames: SidePair = field(default_factory=SidePair)
    avg_extension: SidePair = field(default_factory=SidePair)
    peak_extension: SidePair = field(default_factory=SidePair)
    cross_body_count: SidePair = field(default_factory=SidePair)

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return asdict(self)


@dataclass(frozen=True)
class HandednessResult:
    """
    Dominant hand call for one run.

    Attributes:
        dominant_hand: 'left' or 'right'.
        confidence: 0.5-1.0, grows with the score gap.
        left_score: Weighted left score (0-1).
        right_score: Weighted right score (0-1).
        signals: Raw per-side aggregates.
        breakdown: Normalized left/right fractions per scored signal.
        frames_analyzed: Frames that had a measurable body center.
        analysis_timestamp: ISO-8601 time the run finished.
    """

    dominant_hand: str
    confidence: float
    left_score: float
    right_score: float
    signals: HandednessSignals
    breakdown: Mapping[str, SidePair]
    frames_analyzed: int
    analysis_timestamp: str

    def __post_init__(self):
        object.__setattr__(self, "breakdown", MappingProxyType(dict(self.breakdown)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dominant_hand": self.dominant_hand,
            "confidence": self.confidence,
            "left_score": self.left_score,
            "right_score": self.right_score,
            "signals": self.signals.to_dict(),
            "breakdown": {name: pair.to_dict() for name, pair in self.breakdown.items()},
            "frames_analyzed": self.frames_analyzed,
            "analysis_timestamp": self.analysis_timestamp,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"HandednessResult("
            f"dominant_hand={self.dominant_hand}, "
            f"confidence={self.confidence:.2f})"
        )
