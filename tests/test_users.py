"""
Tests for the user directory.
"""

import json

import pytest
from tetrapy.features import UserDirectory, calc_distance, calc_bearing

from conftest import FakeClock, USER_TSI, OTHER_TSI


@pytest.fixture
def users():
    directory = UserDirectory(default_icon="/e", clock=FakeClock())
    directory.load_configured({
        USER_TSI: {"call": "DL1ABC", "name": "Adi", "aprs": "/b", "comment": "bike"},
    })
    return directory


def test_load_configured(users):
    user = users.get(USER_TSI)

    assert user.call == "DL1ABC"
    assert user.aprs_sym == "/"
    assert user.aprs_tab == "b"
    assert USER_TSI in users
    assert len(users) == 1


def test_create_default(users):
    user = users.create_default(OTHER_TSI)

    assert user.call == "NoCall"
    assert user.name == "NoName"
    assert (user.aprs_sym, user.aprs_tab) == ("/", "e")
    assert len(users) == 2


def test_touch(users):
    assert users.touch(USER_TSI).last_activity == 1_700_000_000.0
    assert users.touch(OTHER_TSI) is None


def test_snapshot(users):
    assert users.snapshot() == [{
        "tsi": USER_TSI,
        "call": "DL1ABC",
        "name": "Adi",
        "tab": "b",
        "sym": "/",
        "comment": "bike",
    }]


def test_update_from_json_keeps_runtime_state(users):
    """Test imported entries replace the profile but keep position and activity."""
    user = users.get(USER_TSI)
    user.lat, user.lon, user.last_activity = 51.0, 13.7, 42.0

    count = users.update_from_json(json.dumps([
        {"tsi": USER_TSI, "call": "DL1NEW", "name": "Adi", "sym": "/", "tab": "k", "comment": "car"},
        {"tsi": OTHER_TSI, "call": "DL2XYZ", "name": "Bea", "sym": 47, "tab": 101, "comment": ""},
        "garbage",
        {"call": "no tsi"},
    ]))

    assert count == 2
    updated = users.get(USER_TSI)
    assert updated.call == "DL1NEW"
    assert updated.aprs_tab == "k"
    assert (updated.lat, updated.lon, updated.last_activity) == (51.0, 13.7, 42.0)

    other = users.get(OTHER_TSI)
    assert (other.aprs_sym, other.aprs_tab) == ("/", "e")


def test_update_from_invalid_json(users):
    assert users.update_from_json("{broken") == 0
    assert users.update_from_json('{"tsi": "1"}') == 0
    assert len(users) == 1


def test_distance():
    """Test Haversine distance between two known points."""
    # Dresden -> Berlin, about 165 km
    distance = calc_distance(51.0504, 13.7373, 52.5200, 13.4050)

    assert distance == pytest.approx(165.0, abs=2.0)
    assert calc_distance(45.0, 45.0, 45.0, 45.0) == 0.0


@pytest.mark.parametrize("lat2,lon2,expected", [
    (46.0, 45.0, 0.0),
    (45.0, 46.0, 90.0),
    (44.0, 45.0, 180.0),
    (45.0, 44.0, 270.0),
])
def test_bearing(lat2, lon2, expected):
    assert calc_bearing(45.0, 45.0, lat2, lon2) == pytest.approx(expected, abs=1.0)
