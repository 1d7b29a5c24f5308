"""
SDS encoding and decoding.

Handles the hex payloads that follow a +CTSDSR header and builds the
+CMGS commands used to send an SDS. Supports:
- Short location reports (LIP, protocol identifier 0x0A)
- Status SDS (16-bit state codes 0x8000-0xFFFF)
- SDS-TL text messages (protocol identifier 0x82, type 0x04)
- Simple text messages (protocol identifier 0x02)
- SDS-TL delivery reports (0x8210)
"""

import re
import logging
from typing import Optional

from .base import hex_to_int
from .textcoding import CODING_LATIN1, encode_text, decode_text, text_bits
from ..types import LipInfo
from ..exceptions import PeiParseError, SdsError

logger = logging.getLogger(__name__)

SDS_TERMINATOR = "\x1a"

TEXT_SDS_PREFIX = "8204"
ACK_SDS_PREFIX = "821000"
SIMPLE_TEXT_PREFIX = "02"
LIP_PREFIX = "0A"

MAX_TEXT_LENGTH = 120
MAX_ISSI_LENGTH = 8

# Reason for sending of a LIP short location report
REASON_FOR_SENDING = {
    0: "Subscriber unit is powered ON",
    1: "Subscriber unit is powered OFF",
    2: "Emergency condition is detected",
    3: "Push-to-talk condition is detected",
    4: "Status",
    5: "Transmit inhibit mode ON",
    6: "Transmit inhibit mode OFF",
    7: "System access (TMO ON)",
    8: "DMO ON",
    9: "Enter service",
    10: "Service loss",
    11: "Cell reselection",
    12: "Low battery",
    13: "Connected to a car kit",
    14: "Disconnected from a car kit",
    15: "Transfer initialization configuration requested",
    16: "Arrival at destination",
    17: "Arrival at a defined location",
    18: "Approaching a defined location",
    19: "SDS type-1 entered",
    20: "User application initiated",
    32: "Response to an immediate location request",
    129: "Maximum reporting interval exceeded",
    130: "Maximum reporting distance exceeded",
}

REASON_DMO_OFF = 7
REASON_DMO_ON = 8

_HEX_RE = re.compile(r'^[0-9A-Fa-f]+$')

# LIP short location report field widths, in transmission order
_LIP_FIELDS = (
    ("pdu_type", 2),
    ("time_elapsed", 2),
    ("longitude", 25),
    ("latitude", 24),
    ("position_error", 3),
    ("horizontal_velocity", 7),
    ("direction_of_travel", 4),
    ("additional_data_type", 1),
    ("reason_for_sending", 8),
)
_LIP_BITS = sum(width for _, width in _LIP_FIELDS)
_LIP_HEX_DIGITS = 20


def get_tsi(identity: str, mcc: str, mnc: str) -> str:
    """
    Normalize a subscriber identity to a 17 digit TSI.

    Short identities (up to 8 digits) are an ISSI of the own network and
    get the configured MCC and MNC. Longer ones carry their own MCC (4
    digits with a leading zero, otherwise 3) followed by the MNC and an 8
    digit ISSI.

    Args:
        identity: ISSI or TSI as received from the PEI
        mcc: Own country code, 4 digits
        mnc: Own network code, 5 digits

    Returns:
        TSI of the form MCC[4] MNC[5] ISSI[8]

    Raises:
        PeiParseError: If identity is not numeric

    Example:

    .. code-block:: python

        get_tsi("23404", "0901", "16383")              # "09011638300023404"
        get_tsi("9011638300023404", "0901", "16383")   # "09011638300023404"
    """
    identity = identity.strip()
    if not identity.isdigit():
        raise PeiParseError(f"Identity is not numeric: {identity!r}", response=[identity])

    if len(identity) < 9:
        return f"{mcc}{mnc}{int(identity):08d}"

    mcc_len = 4 if identity.startswith("0") else 3
    t_mcc = int(identity[:mcc_len])
    t_issi = identity[-8:]
    t_mnc = int(identity[mcc_len:-8] or "0")

    return f"{t_mcc:04d}{t_mnc:05d}{t_issi}"


def get_issi(tsi: str) -> str:
    """
    Extract the ISSI of a TSI without leading zeros.

    Example:

    .. code-block:: python

        get_issi("09011638300023404")  # "23404"
    """
    return str(int(tsi[-8:]))


def decode_lip(payload: str) -> LipInfo:
    """
    Decode a LIP short location report.

    Expected format: "0A" followed by at least 20 hex digits holding the
    bit fields of the report, most significant bit first.

    Args:
        payload: Hex payload line of the SDS

    Returns:
        LipInfo with latitude and longitude in decimal degrees

    Raises:
        PeiParseError: If the payload is too short or not hex
    """
    body = payload[len(LIP_PREFIX):len(LIP_PREFIX) + _LIP_HEX_DIGITS]
    if not payload.upper().startswith(LIP_PREFIX) or len(body) < _LIP_HEX_DIGITS:
        raise PeiParseError(f"Invalid LIP report: {payload}", response=[payload])

    bits = hex_to_int(body)
    offset = _LIP_HEX_DIGITS * 4
    fields = {}
    for name, width in _LIP_FIELDS:
        offset -= width
        fields[name] = (bits >> offset) & ((1 << width) - 1)

    lon = fields["longitude"]
    if lon >= 1 << 24:
        lon -= 1 << 25
    lat = fields["latitude"]
    if lat >= 1 << 23:
        lat -= 1 << 24

    fields["longitude"] = lon * 360.0 / (1 << 25)
    fields["latitude"] = lat * 180.0 / (1 << 24)

    return LipInfo(**fields)


def decode_state(payload: str) -> int:
    """
    Decode a status SDS to its decimal state code.

    Example:

    .. code-block:: python

        decode_state("8002")  # 32770
    """
    state = hex_to_int(payload)
    if not 0x8000 <= state <= 0xFFFF:
        raise PeiParseError(f"State code out of range: {payload}", response=[payload])
    return state


def text_sds_reference(payload: str) -> int:
    """Message reference of an SDS-TL text message (third octet)."""
    if len(payload) < 8:
        raise PeiParseError(f"Text SDS too short: {payload}", response=[payload])
    return hex_to_int(payload[4:6])


def decode_text_sds(payload: str, bits: Optional[int] = None) -> str:
    """
    Decode an SDS-TL text message.

    Expected format: "8204" <message reference> <text coding> <text>
    e.g. "82040801476A61746A616A676A61"

    Args:
        payload: Hex payload line
        bits: Payload length from the +CTSDSR header, if known
    """
    if len(payload) <= 8:
        return ""
    coding = hex_to_int(payload[6:8]) & 0x7F
    return _decode(payload[8:], coding, bits, 32)


def decode_simple_text_sds(payload: str, bits: Optional[int] = None) -> str:
    """
    Decode a simple text message.

    Expected format: "02" <text coding> <text>
    """
    if len(payload) <= 4:
        return ""
    coding = hex_to_int(payload[2:4]) & 0x7F
    return _decode(payload[4:], coding, bits, 16)


def _decode(hex_text: str, coding: int, bits: Optional[int], header_bits: int) -> str:
    if bits is not None:
        bits = max(bits - header_bits, 0)
    try:
        return decode_text(hex_text, coding, bits)
    except SdsError as e:
        raise PeiParseError(str(e), response=[hex_text]) from e


def decode_ack_sds(payload: str) -> int:
    """
    Decode an SDS-TL delivery report.

    Expected format: "821000" <message reference>

    Returns:
        Message reference the report acknowledges
    """
    if len(payload) < len(ACK_SDS_PREFIX) + 2:
        raise PeiParseError(f"Delivery report too short: {payload}", response=[payload])
    return hex_to_int(payload[6:8])


def create_ack_payload(reference: int) -> str:
    """Build the delivery report payload for a received text message."""
    return f"{ACK_SDS_PREFIX}{reference & 0xFF:02X}"


def create_text_payload(text: str, reference: int, coding: int = CODING_LATIN1) -> str:
    """
    Build the SDS-TL payload of a text message.

    Raises:
        SdsError: If the text is too long or cannot be encoded
    """
    if len(text) > MAX_TEXT_LENGTH:
        raise SdsError(f"Text longer than {MAX_TEXT_LENGTH} characters ({len(text)})")
    return f"{TEXT_SDS_PREFIX}{reference & 0xFF:02X}{coding:02X}{encode_text(text, coding)}"


def create_sds(issi: str, text: str, reference: int, coding: int = CODING_LATIN1) -> str:
    """
    Build the command that sends a text SDS.

    Args:
        issi: Destination ISSI (up to 8 digits)
        text: Message text, up to 120 characters
        reference: Message reference (0-255)
        coding: CODING_LATIN1 or CODING_7BIT

    Returns:
        Command string terminated by 0x1A

    Example:

    .. code-block:: python

        create_sds("23404", "Hi", 1)
        # 'AT+CTSDS=12,0,0,0,0\\r\\nAT+CMGS=23404,48\\r\\n820401014869\\x1a'
    """
    payload = create_text_payload(text, reference, coding)
    return _build_cmgs(issi, payload, 32 + text_bits(text, coding))


def create_raw_sds(issi: str, payload: str) -> str:
    """
    Build the command that sends a raw hex payload.

    Raises:
        SdsError: If the payload is empty or not hex
    """
    payload = payload.strip()
    if not _HEX_RE.match(payload):
        raise SdsError(f"Raw SDS payload is not hex: {payload!r}")
    return _build_cmgs(issi, payload.upper())


def create_cfm_sds(issi: str, payload: str) -> str:
    """
    Build the command that sends a delivery report.

    Args:
        issi: Destination ISSI
        payload: Report payload, "821000" followed by the message reference

    Raises:
        SdsError: If payload is not a delivery report
    """
    payload = payload.strip().upper()
    if not payload.startswith(ACK_SDS_PREFIX) or len(payload) != len(ACK_SDS_PREFIX) + 2:
        raise SdsError(f"Not a delivery report payload: {payload!r}")
    return create_raw_sds(issi, payload)


def _build_cmgs(issi: str, payload: str, bits: Optional[int] = None) -> str:
    """
    Wrap a hex payload into the SDS type 4 send sequence.

    bits defaults to four per hex digit; 7-bit text passes its exact
    length so the receiver can tell fill bits from a trailing '@'.
    """
    issi = issi.strip()
    if not issi.isdigit() or len(issi) > MAX_ISSI_LENGTH:
        raise SdsError(f"Invalid destination ISSI: {issi!r}")

    length = len(payload) * 4 if bits is None else bits
    return (
        "AT+CTSDS=12,0,0,0,0\r\n"
        f"AT+CMGS={issi},{length}\r\n"
        f"{payload}{SDS_TERMINATOR}"
    )
