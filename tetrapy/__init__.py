"""
tetrapy - Python driver for TETRA radios on their PEI (AT command interface).
"""

from .version import __version__
from .radio import TetraRadio
from .config import PeiConfig, load_config

from .types import (
    ProtocolStatus,
    InitPhase,
    MessageKind,
    Direction,
    SdsType,
    SdsSendStatus,
    PeiState,
    Callinfo,
    Qso,
    User,
    Sds,
    DmoRpt,
    SdsHeader,
    CmgsReport,
    CnumfInfo,
    LipInfo,
)

from .exceptions import (
    TetraError,
    PeiTimeoutError,
    PeiParseError,
    TransportError,
    DeviceDisconnectedError,
    SdsError,
    ConfigError,
)

__all__ = [
    "__version__",
    "TetraRadio",
    "PeiConfig",
    "load_config",
    "ProtocolStatus",
    "InitPhase",
    "MessageKind",
    "Direction",
    "SdsType",
    "SdsSendStatus",
    "PeiState",
    "Callinfo",
    "Qso",
    "User",
    "Sds",
    "DmoRpt",
    "SdsHeader",
    "CmgsReport",
    "CnumfInfo",
    "LipInfo",
    "TetraError",
    "PeiTimeoutError",
    "PeiParseError",
    "TransportError",
    "DeviceDisconnectedError",
    "SdsError",
    "ConfigError",
]
