"""Tests for the mock-location control channel."""

from __future__ import annotations

import json

import pytest

from lse.config import DEFAULT_GPS_CONTROL_PATH, LseConfig
from lse.gps_control import GpsControl

PATH = "/tmp/lse-test/gps-control.json"


@pytest.fixture
def gps(fs):
    return GpsControl(fs, PATH)


def _written(fs):
    return json.loads(fs.read_file(PATH))


def test_set_speed(gps, fs):
    assert gps.set_speed(80) == {"speed": 80.0}
    assert _written(fs) == {"speed": 80.0}
    assert not fs.file_exists(f"{PATH}.tmp")


def test_each_command_replaces_the_last(gps, fs):
    gps.set_speed(30)
    gps.pause()
    assert _written(fs) == {"paused": True}
    gps.resume()
    assert _written(fs) == {"paused": False}


@pytest.mark.parametrize("mode", ["linear", "noise"])
def test_set_speed_mode(gps, fs, mode):
    gps.set_speed_mode(mode)
    assert _written(fs) == {"speedMode": mode}


@pytest.mark.parametrize("speed", [0, -5, float("nan"), float("inf")])
def test_invalid_speed_not_written(gps, fs, speed):
    with pytest.raises(ValueError):
        gps.set_speed(speed)
    assert not fs.file_exists(PATH)


def test_invalid_speed_mode(gps, fs):
    with pytest.raises(ValueError, match="linear, noise"):
        gps.set_speed_mode("warp")
    assert not fs.file_exists(PATH)


def test_from_config_uses_configured_path(fs):
    assert LseConfig().gps_control_path == DEFAULT_GPS_CONTROL_PATH
    config = LseConfig(gps_control_path=PATH)
    gps = GpsControl.from_config(config, filesystem=fs)
    assert gps.control_path == PATH
    gps.pause()
    assert _written(fs) == {"paused": True}
