"""
Configuration loading and validation for tetrapy.

The configuration is a JSON file whose keys match the fields of
PeiConfig, e.g.:

.. code-block:: json

    {
        "port": "/dev/ttyUSB0",
        "mcc": "901",
        "mnc": "16383",
        "issi": "23401",
        "init_commands": ["ATE0", "AT+CTOM=6,0", "AT+CTSP=1,3,131"],
        "users": {
            "09011638300023404": {"call": "DL1ABC", "name": "Adi",
                                  "aprs": "/e", "comment": "mobile"}
        },
        "state_labels": {"32768": "Available"}
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

MAX_MCC = 901
MAX_MNC = 16383
MAX_ACTIVITY_SDS_LENGTH = 100
STATE_MIN = 32768
STATE_MAX = 65535
OTHERS_ACTIVITY_FLAGS = ("DMO_ON", "DMO_OFF", "PROXIMITY")


@dataclass
class PeiConfig:
    """
    Settings of one TETRA PEI connection.

    Values are validated and normalized on construction: mcc becomes 4
    digits, mnc 5 digits, state code keys become integers.

    Raises:
        ConfigError: If a value is missing or invalid
    """
    issi: str
    mcc: str
    mnc: str
    port: str = "/dev/ttyUSB0"
    baudrate: int = 115200
    gssi: int = 1
    callsign: str = "NOCALL"
    init_commands: list[str] = field(default_factory=list)
    end_command: Optional[str] = None
    info_sds: Optional[str] = None
    default_aprs_icon: str = "/e"
    users: Dict[str, Dict[str, str]] = field(default_factory=dict)
    state_labels: Dict[int, str] = field(default_factory=dict)
    state_commands: Dict[int, str] = field(default_factory=dict)
    sds_on_activity: Dict[int, str] = field(default_factory=dict)
    sds_to_others_on_activity: list[str] = field(default_factory=list)
    proximity_warning: float = 3.1
    time_between_sds: float = 3600.0
    own_lat: Optional[float] = None
    own_lon: Optional[float] = None
    command_timeout: float = 2.0
    activity_timeout: float = 10.0
    startup_delay: float = 3.0
    init_spacing: float = 0.1
    sds_retention: float = 3600.0
    sds_confirm_timeout: float = 60.0

    def __post_init__(self) -> None:
        self.issi = str(self.issi).strip()
        if not self.issi:
            raise ConfigError("Missing parameter ISSI")

        self.mcc = str(self.mcc).strip()
        if not self.mcc.isdigit():
            raise ConfigError(f"Country code (MCC) must be numeric: {self.mcc!r}")
        if int(self.mcc) > MAX_MCC:
            raise ConfigError(f"Country code (MCC) must be {MAX_MCC} or less")
        self.mcc = self.mcc.zfill(4)[-4:]

        self.mnc = str(self.mnc).strip()
        if not self.mnc.isdigit():
            raise ConfigError(f"Network code (MNC) must be numeric: {self.mnc!r}")
        if int(self.mnc) > MAX_MNC:
            raise ConfigError(f"Network code (MNC) must be {MAX_MNC} or less")
        self.mnc = self.mnc.zfill(5)[-5:]

        if len(self.default_aprs_icon) != 2:
            raise ConfigError(
                f"default_aprs_icon must have 2 characters, e.g. '/e': "
                f"{self.default_aprs_icon!r}"
            )

        if self.info_sds is None:
            self.info_sds = f"Welcome TETRA-User@{self.callsign}"

        for tsi, entry in self.users.items():
            if len(tsi) != 17 or not tsi.isdigit():
                raise ConfigError(
                    f"Wrong length of TSI {tsi!r} in users, should have 17 digits "
                    f"(MCC[4] MNC[5] ISSI[8]), e.g. 09011638312345678"
                )
            aprs = entry.get("aprs", self.default_aprs_icon)
            if len(aprs) != 2:
                raise ConfigError(
                    f"Aprs icon of {entry.get('call', tsi)} must have exactly "
                    f"2 characters: {aprs!r}"
                )

        self.state_labels = _state_map(self.state_labels, "state_labels")
        self.state_commands = _state_map(self.state_commands, "state_commands")

        activity = {}
        for key, message in self.sds_on_activity.items():
            if len(message) > MAX_ACTIVITY_SDS_LENGTH:
                logger.warning(
                    f"Message too long (>{MAX_ACTIVITY_SDS_LENGTH}) in "
                    f"sds_on_activity[{key}], cutting message"
                )
                message = message[:MAX_ACTIVITY_SDS_LENGTH]
            activity[int(key)] = message
        self.sds_on_activity = activity

        for flag in self.sds_to_others_on_activity:
            if flag not in OTHERS_ACTIVITY_FLAGS:
                raise ConfigError(
                    f"Unknown sds_to_others_on_activity entry {flag!r}, "
                    f"expected one of {', '.join(OTHERS_ACTIVITY_FLAGS)}"
                )

    @property
    def aprs_sym(self) -> str:
        return self.default_aprs_icon[0]

    @property
    def aprs_tab(self) -> str:
        return self.default_aprs_icon[1]

    @property
    def has_own_position(self) -> bool:
        """Check if the gateway position is configured."""
        return self.own_lat is not None and self.own_lon is not None

    def protocol_options(self) -> Dict[str, Any]:
        """Keyword arguments for PeiProtocol."""
        return {
            "init_commands": self.init_commands,
            "end_command": self.end_command,
            "command_timeout": self.command_timeout,
            "activity_timeout": self.activity_timeout,
            "startup_delay": self.startup_delay,
            "init_spacing": self.init_spacing,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PeiConfig":
        """
        Build a config from a parsed JSON object.

        Unknown keys are ignored with a warning.

        Raises:
            ConfigError: If a required key is missing or a value is invalid
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")

        for required in ("issi", "mcc", "mnc"):
            if required not in data:
                raise ConfigError(f"Missing parameter {required.upper()}")

        try:
            return cls(**{k: v for k, v in data.items() if k in known})
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def _state_map(values: Dict[Any, str], name: str) -> Dict[int, str]:
    result = {}
    for key, value in values.items():
        try:
            state = int(key)
        except ValueError as e:
            raise ConfigError(f"State code {key!r} in {name} is not a number") from e
        if not STATE_MIN <= state <= STATE_MAX:
            raise ConfigError(
                f"State code in {name} is not valid ({state}), "
                f"must be between {STATE_MIN} and {STATE_MAX}"
            )
        result[state] = value
    return result


def load_config(config_file: str) -> PeiConfig:
    """
    Load JSON configuration file.

    Args:
        config_file: Path to JSON configuration file

    Returns:
        Validated PeiConfig

    Raises:
        ConfigError: If the file cannot be read or holds invalid values
    """
    try:
        with open(config_file, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Error loading configuration from {config_file}: {e}")
        raise ConfigError(f"Error loading configuration from {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {config_file} must be a JSON object")

    config = PeiConfig.from_dict(data)
    logger.info(f"Configuration loaded from {config_file}")
    return config
