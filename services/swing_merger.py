"""
Swing event assembly, merging and phase marking.
"""

import math
from dataclasses import replace
from typing import Dict, List, Sequence

from services.models import DetectedSwing, SwingPhase

OVERLAP_THRESHOLD = 0.7


def calculate_clip_bounds(
    follow_end_frame: int, fps: float, total_frames: int, lead_time: float, trail_time: float
) -> Dict[str, float]:
    """
    Clip window around a swing, anchored to the end of the follow-through.

    Args:
        follow_end_frame: Video frame where the follow-through ends.
        fps: Video frames per second.
        total_frames: Frames in the video up to the last analysed one
            (sets the video duration).
        lead_time: Seconds kept before the anchor.
        trail_time: Seconds kept after the anchor.

    Returns:
        Dict with clip_start_time, clip_end_time, clip_start_frame,
        clip_end_frame and clip_duration.
    """
    anchor_time = follow_end_frame / fps
    video_duration = total_frames / fps

    start_time = max(0.0, anchor_time - lead_time)
    end_time = min(video_duration, anchor_time + trail_time)

    return {
        "clip_start_time": start_time,
        "clip_end_time": end_time,
        "clip_start_frame": int(math.floor(start_time * fps)),
        "clip_end_frame": int(math.floor(end_time * fps)),
        "clip_duration": end_time - start_time,
    }


def build_swing(
    frames: Sequence[int],
    fps: float,
    boundaries,
    config,
    total_frames: int,
    peak_velocity: float,
    velocity_kmh: float,
    orientation,
    rotation_range: float,
    peak_rotation_velocity: float,
    swing_type,
    dominant_side: str,
    swing_score: float,
    max_score: float,
    key_positions: Dict = None,
) -> DetectedSwing:
    """
    Assemble a DetectedSwing from one accepted peak.

    Args:
        frames: Sorted analysed frame indices.
        fps: Video frames per second.
        boundaries: PhaseBoundaries (indices into frames).
        config: Detection config (clip_lead_time, clip_trail_time).
        total_frames: Frames in the video up to the last analysed one.
        peak_velocity: Processed wrist speed at contact (px/frame).
        velocity_kmh: Same speed in km/h.
        orientation: Body orientation at contact.
        rotation_range: Orientation spread across the swing (deg).
        peak_rotation_velocity: Largest |orientation velocity| in the swing.
        swing_type: SwingType.
        dominant_side: 'left', 'right' or 'both'.
        swing_score: Processed swing score at the peak.
        max_score: Largest processed swing score of the run.
        key_positions: Loading peak or serve sub-event fields.

    Returns:
        DetectedSwing with frame-number boundaries.
    """
    contact = frames[boundaries.contact]
    follow_end = frames[boundaries.follow_end]
    clip = calculate_clip_bounds(
        follow_end, fps, total_frames, config.clip_lead_time, config.clip_trail_time
    )
    confidence = min(1.0, swing_score / max_score) if max_score > 0 else 0.0

    return DetectedSwing(
        id=f"swing-{contact}",
        frame=contact,
        timestamp=contact / fps,
        peak_velocity=peak_velocity,
        velocity_kmh=velocity_kmh,
        orientation=orientation,
        rotation_range=rotation_range,
        peak_rotation_velocity=peak_rotation_velocity,
        swing_type=swing_type,
        dominant_side=dominant_side,
        confidence=confidence,
        swing_score=swing_score,
        loading_start=frames[boundaries.loading_start],
        swing_start=frames[boundaries.swing_start],
        contact_frame=contact,
        follow_end=follow_end,
        **clip,
        **(key_positions or {}),
    )


def _coverage(overlap: int, start: int, end: int) -> float:
    duration = end - start
    return overlap / duration if duration > 0 else 0.0


def clip_overlap(a: DetectedSwing, b: DetectedSwing) -> int:
    """Number of frames shared by two clip windows."""
    start = max(a.clip_start_frame, b.clip_start_frame)
    end = min(a.clip_end_frame, b.clip_end_frame)
    return max(0, end - start)


def should_merge(a: DetectedSwing, b: DetectedSwing, threshold: float = OVERLAP_THRESHOLD) -> bool:
    """True when the shared window covers at least threshold of either clip."""
    overlap = clip_overlap(a, b)
    return (
        _coverage(overlap, a.clip_start_frame, a.clip_end_frame) >= threshold
        or _coverage(overlap, b.clip_start_frame, b.clip_end_frame) >= threshold
    )


def merge_swings(existing: DetectedSwing, incoming: DetectedSwing) -> DetectedSwing:
    """
    Merge two overlapping swings.

    The swing with the strictly higher swing score keeps its
    classification and metadata (ties keep the existing one); the clip
    window and the loading/follow boundaries become the union of both.
    """
    winner = incoming if incoming.swing_score > existing.swing_score else existing

    clip_start_time = min(existing.clip_start_time, incoming.clip_start_time)
    clip_end_time = max(existing.clip_end_time, incoming.clip_end_time)

    return replace(
        winner,
        clip_start_frame=min(existing.clip_start_frame, incoming.clip_start_frame),
        clip_end_frame=max(existing.clip_end_frame, incoming.clip_end_frame),
        clip_start_time=clip_start_time,
        clip_end_time=clip_end_time,
        clip_duration=clip_end_time - clip_start_time,
        loading_start=min(existing.loading_start, incoming.loading_start),
        follow_end=max(existing.follow_end, incoming.follow_end),
    )


def merge_overlapping_swings(
    swings: Sequence[DetectedSwing], threshold: float = OVERLAP_THRESHOLD
) -> List[DetectedSwing]:
    """
    Greedily merge swings whose clips overlap.

    Each swing is compared in order against the swings accepted so far;
    the first qualifying match absorbs it.

    Returns:
        Merged swings sorted by frame.
    """
    merged = []
    for swing in swings:
        for i, existing in enumerate(merged):
            if should_merge(swing, existing, threshold):
                merged[i] = merge_swings(existing, swing)
                break
        else:
            merged.append(swing)

    return sorted(merged, key=lambda s: s.frame)


def phase_for_frame(frame: int, swing: DetectedSwing) -> SwingPhase:
    """Phase of a frame relative to one swing's boundaries."""
    if swing.loading_start <= frame < swing.swing_start:
        return SwingPhase.LOADING
    if swing.swing_start <= frame < swing.contact_frame:
        return SwingPhase.SWING
    if frame == swing.contact_frame:
        return SwingPhase.CONTACT
    if swing.contact_frame < frame <= swing.follow_end:
        return SwingPhase.FOLLOW
    return SwingPhase.NEUTRAL


def mark_phases(frames: Sequence[int], swings: Sequence[DetectedSwing]) -> List[SwingPhase]:
    """
    Phase label for every analysed frame.

    Frames outside every swing's [loading_start, follow_end] stay neutral;
    later swings overwrite earlier ones where ranges touch.
    """
    phases = [SwingPhase.NEUTRAL] * len(frames)
    for swing in swings:
        for i, frame in enumerate(frames):
            if swing.loading_start <= frame <= swing.follow_end:
                phases[i] = phase_for_frame(frame, swing)
    return phases
