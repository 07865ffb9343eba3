"""
Channel conditioning.

Applies drop repair and smoothing to each channel independently, then
derives km/h speed channels and acceleration channels. Functions return
new channels rather than modifying the ones they are given.
"""

import logging

from services.models import Channel, ChannelSet
from utils.signal_processing import central_difference, condition_series, signed_max_magnitude
from utils.units import convert_velocity_to_kmh

logger = logging.getLogger(__name__)

SPEED_UNIT = "px/frame"
KMH_UNIT = "km/h"
ACCELERATION_UNIT = "km/h/s"

ACCELERATION_JOINTS = ("wrist", "elbow", "shoulder", "hip", "knee", "ankle")


def condition_channel(channel: Channel) -> Channel:
    """
    Repair drops in and smooth one channel.

    The raw values are kept; processed values are derived from raw.
    """
    return channel.with_processed(condition_series(channel.raw))


def condition_channels(channels: ChannelSet) -> ChannelSet:
    """Condition every channel of a set into a new set."""
    conditioned = ChannelSet(channels.frame_count)
    for channel in channels:
        conditioned.add(condition_channel(channel))
    return conditioned


def add_speed_channels(channels: ChannelSet, meters_per_pixel: float, fps: float) -> ChannelSet:
    """
    Add a '<name>_kmh' channel for every pixel-per-frame channel.

    Raw km/h comes from the raw (unrepaired) speeds, processed km/h from
    the processed speeds.

    Args:
        channels: Conditioned channel set; extended in place.
        meters_per_pixel: Scale from calculate_meters_per_pixel.
        fps: Video frames per second.

    Returns:
        The same channel set.
    """
    speed_channels = [c for c in channels if c.unit == SPEED_UNIT]
    for channel in speed_channels:
        channels.add_values(
            f"{channel.name}_kmh",
            KMH_UNIT,
            [convert_velocity_to_kmh(v, meters_per_pixel, fps) for v in channel.raw],
            [convert_velocity_to_kmh(v, meters_per_pixel, fps) for v in channel.processed],
        )
    return channels


def add_acceleration_channels(channels: ChannelSet, fps: float) -> ChannelSet:
    """
    Add per-joint acceleration channels from the km/h speeds.

    For each joint type, adds '<side>_<joint>_acceleration' for both
    sides and 'max_<joint>_acceleration', the side with the larger
    magnitude (sign kept).

    Args:
        channels: Channel set that already has the km/h channels.
        fps: Video frames per second.

    Returns:
        The same channel set.
    """
    for joint in ACCELERATION_JOINTS:
        per_side = {}
        for side in ("left", "right"):
            speed = channels.get(f"{side}_{joint}_velocity_kmh")
            channel = channels.add_values(
                f"{side}_{joint}_acceleration",
                ACCELERATION_UNIT,
                central_difference(speed.raw, fps),
                central_difference(speed.processed, fps),
            )
            per_side[side] = channel

        left, right = per_side["left"], per_side["right"]
        channels.add_values(
            f"max_{joint}_acceleration",
            ACCELERATION_UNIT,
            [signed_max_magnitude(a, b) for a, b in zip(left.raw, right.raw)],
            [signed_max_magnitude(a, b) for a, b in zip(left.processed, right.processed)],
        )

    logger.debug("Added acceleration channels for %d joints", len(ACCELERATION_JOINTS))
    return channels
