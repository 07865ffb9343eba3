"""Tests for services/signal_conditioner.py - conditioning and derived channels."""

import pytest

from services.models import Channel, ChannelSet
from services.signal_conditioner import (
    ACCELERATION_JOINTS,
    add_acceleration_channels,
    add_speed_channels,
    condition_channel,
    condition_channels,
)


def limb_speed_set(frame_count=6, value=10.0):
    channels = ChannelSet(frame_count)
    for joint in ACCELERATION_JOINTS:
        for side in ("left", "right"):
            channels.add_values(f"{side}_{joint}_velocity", "px/frame", [value] * frame_count)
    return channels


class TestConditionChannel:
    """Tests for condition_channel and condition_channels."""

    def test_raw_is_kept(self):
        channel = Channel(name="wrist_velocity", unit="px/frame", raw=[10, 10, 2, 10, 10])
        conditioned = condition_channel(channel)
        assert conditioned.raw == (10, 10, 2, 10, 10)
        assert conditioned.processed == pytest.approx((10.0,) * 5)

    def test_channels_conditioned_independently(self):
        channels = ChannelSet(5)
        channels.add_values("a", "px/frame", [10, 10, 2, 10, 10])
        channels.add_values("b", "deg", [1, 1, 1, 1, 1])
        conditioned = condition_channels(channels)
        assert conditioned.processed("a") == pytest.approx((10.0,) * 5)
        assert conditioned.processed("b") == pytest.approx((1.0,) * 5)
        assert channels.processed("a") == (10, 10, 2, 10, 10)

    def test_short_run_unchanged(self):
        channel = Channel(name="a", unit="deg", raw=[0, 10, 0])
        assert condition_channel(channel).processed == (0, 10, 0)


class TestSpeedChannels:
    """Tests for add_speed_channels function."""

    def test_kmh_channel_per_speed_channel(self):
        channels = ChannelSet(3)
        channels.add_values("wrist_velocity", "px/frame", [10.0, None, 20.0])
        channels.add_values("body_orientation", "deg", [0.0, 1.0, 2.0])
        add_speed_channels(channels, 0.0051, 30)

        assert "wrist_velocity_kmh" in channels
        assert "body_orientation_kmh" not in channels
        kmh = channels.raw("wrist_velocity_kmh")
        assert kmh[0] == pytest.approx(5.508)
        assert kmh[1] is None
        assert kmh[2] == pytest.approx(11.016)
        assert channels.get("wrist_velocity_kmh").unit == "km/h"


class TestAccelerationChannels:
    """Tests for add_acceleration_channels function."""

    def test_constant_speed_has_zero_acceleration(self):
        channels = add_speed_channels(limb_speed_set(), 0.005, 30)
        add_acceleration_channels(channels, 30)
        accel = channels.processed("right_wrist_acceleration")
        assert accel[0] is None
        assert accel[-1] is None
        assert accel[1:-1] == pytest.approx((0.0,) * 4)

    def test_all_joint_channels_added(self):
        channels = add_speed_channels(limb_speed_set(), 0.005, 30)
        add_acceleration_channels(channels, 30)
        for joint in ACCELERATION_JOINTS:
            assert f"left_{joint}_acceleration" in channels
            assert f"right_{joint}_acceleration" in channels
            assert f"max_{joint}_acceleration" in channels

    def test_max_keeps_sign_of_larger_magnitude(self):
        channels = limb_speed_set(frame_count=3)
        channels.add_values("left_wrist_velocity", "px/frame", [10.0, 10.0, 10.0])
        channels.add_values("right_wrist_velocity", "px/frame", [30.0, 20.0, 10.0])
        add_speed_channels(channels, 0.005, 30)
        add_acceleration_channels(channels, 30)
        assert channels.raw("max_wrist_acceleration")[1] < 0
        assert channels.raw("max_wrist_acceleration")[1] == channels.raw("right_wrist_acceleration")[1]
