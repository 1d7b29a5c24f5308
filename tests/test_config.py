"""
Tests for configuration loading and validation.
"""

import json

import pytest
from tetrapy import PeiConfig, load_config
from tetrapy.exceptions import ConfigError


def test_defaults_and_padding():
    """Test MCC/MNC are padded and defaults filled in."""
    config = PeiConfig(issi="23401", mcc="901", mnc="16383", callsign="DB0TST")

    assert config.mcc == "0901"
    assert config.mnc == "16383"
    assert config.port == "/dev/ttyUSB0"
    assert config.baudrate == 115200
    assert config.info_sds == "Welcome TETRA-User@DB0TST"
    assert config.aprs_sym == "/"
    assert config.aprs_tab == "e"
    assert config.has_own_position is False


def test_short_mnc_padded():
    config = PeiConfig(issi="1", mcc="262", mnc="1")

    assert config.mcc == "0262"
    assert config.mnc == "00001"


@pytest.mark.parametrize("kwargs", [
    {"issi": "", "mcc": "901", "mnc": "16383"},
    {"issi": "23401", "mcc": "902", "mnc": "16383"},
    {"issi": "23401", "mcc": "abc", "mnc": "16383"},
    {"issi": "23401", "mcc": "901", "mnc": "16384"},
    {"issi": "23401", "mcc": "901", "mnc": "16383", "default_aprs_icon": "e"},
    {"issi": "23401", "mcc": "901", "mnc": "16383", "users": {"23404": {"call": "DL1ABC"}}},
    {"issi": "23401", "mcc": "901", "mnc": "16383",
     "users": {"09011638300023404": {"call": "DL1ABC", "aprs": "/"}}},
    {"issi": "23401", "mcc": "901", "mnc": "16383", "state_labels": {"100": "x"}},
    {"issi": "23401", "mcc": "901", "mnc": "16383", "state_commands": {"abc": "51"}},
    {"issi": "23401", "mcc": "901", "mnc": "16383", "sds_to_others_on_activity": ["TMO_ON"]},
])
def test_invalid_values(kwargs):
    with pytest.raises(ConfigError):
        PeiConfig(**kwargs)


def test_state_maps_converted():
    config = PeiConfig(issi="23401", mcc="901", mnc="16383",
                       state_labels={"32768": "Available"},
                       state_commands={32770: "51"})

    assert config.state_labels == {32768: "Available"}
    assert config.state_commands == {32770: "51"}


def test_long_activity_message_cut():
    config = PeiConfig(issi="23401", mcc="901", mnc="16383",
                       sds_on_activity={"3": "x" * 150})

    assert config.sds_on_activity == {3: "x" * 100}


def test_protocol_options():
    config = PeiConfig(issi="23401", mcc="901", mnc="16383",
                       init_commands=["ATE0"], command_timeout=5.0)

    options = config.protocol_options()

    assert options["init_commands"] == ["ATE0"]
    assert options["command_timeout"] == 5.0
    assert options["startup_delay"] == 3.0


def test_from_dict_requires_identity():
    with pytest.raises(ConfigError):
        PeiConfig.from_dict({"mcc": "901", "mnc": "16383"})


def test_from_dict_ignores_unknown_keys():
    config = PeiConfig.from_dict({"issi": "23401", "mcc": "901", "mnc": "16383", "foo": 1})

    assert config.issi == "23401"


def test_from_dict_wrong_type():
    with pytest.raises(ConfigError):
        PeiConfig.from_dict({"issi": "23401", "mcc": "901", "mnc": "16383",
                             "sds_on_activity": {"3": 5}})


def test_load_config(tmp_path):
    path = tmp_path / "tetra.json"
    path.write_text(json.dumps({
        "port": "/dev/ttyUSB1",
        "issi": "23401",
        "mcc": "901",
        "mnc": "16383",
        "init_commands": ["ATE0", "AT+CTOM=6,0"],
        "own_lat": 51.05,
        "own_lon": 13.74,
    }))

    config = load_config(str(path))

    assert config.port == "/dev/ttyUSB1"
    assert config.init_commands == ["ATE0", "AT+CTOM=6,0"]
    assert config.has_own_position is True


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "missing.json"))


def test_load_config_invalid_json(tmp_path):
    path = tmp_path / "tetra.json"
    path.write_text("{not json")

    with pytest.raises(ConfigError):
        load_config(str(path))


def test_load_config_not_object(tmp_path):
    path = tmp_path / "tetra.json"
    path.write_text("[1, 2]")

    with pytest.raises(ConfigError):
        load_config(str(path))
