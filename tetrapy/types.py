"""
Data types and structures for tetrapy.

Provides type-safe representations of PEI messages, calls, users and SDS.
"""

from dataclasses import dataclass, field
from enum import IntEnum, Enum
from typing import Optional


class ProtocolStatus(Enum):
    """Outcome of the last command sent to the PEI."""
    UNINITIALIZED = "uninitialized"
    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"


class InitPhase(Enum):
    """Initialization phase of the PEI; decides which command goes out next."""
    AWAITING_FIRST_COMMAND = "awaiting_first_command"
    INIT = "init"
    INIT_COMPLETE = "init_complete"
    CHECK_KEEPALIVE = "check_keepalive"


class MessageKind(Enum):
    """Classification of a single line received from the PEI."""
    OK = "ok"
    ERROR = "error"
    SDS_HEADER = "sds_header"              # +CTSDSR
    CALL_BEGIN = "call_begin"              # +CTICN
    CALL_RELEASED = "call_released"        # +CTCR
    CALL_CONNECT = "call_connect"          # +CTCC
    TRANSMISSION_END = "transmission_end"  # +CDTXC
    TRANSMISSION_GRANT = "transmission_grant"  # +CTXG
    TX_DEMAND = "tx_demand"                # +CTXD
    TX_INTERRUPT = "tx_interrupt"          # +CTXI
    TX_WAIT = "tx_wait"                    # +CTXW
    OP_MODE = "op_mode"                    # +CTOM
    CMGS_ACK = "cmgs_ack"                  # +CMGS
    CNUMF = "cnumf"                        # +CNUMF
    CTGS = "ctgs"                          # +CTGS
    CTDGR = "ctdgr"                        # +CTDGR
    CLVL = "clvl"                          # +CLVL
    TEXT_SDS = "text_sds"
    SIMPLE_TEXT_SDS = "simple_text_sds"
    LIP_SDS = "lip_sds"
    STATE_SDS = "state_sds"
    CONCAT_SDS = "concat_sds"
    ACK_SDS = "ack_sds"
    REGISTER_TSI = "register_tsi"
    INVALID = "invalid"

    @property
    def is_sds_payload(self) -> bool:
        """Check if this kind is the hex payload line that follows +CTSDSR."""
        return self in SDS_PAYLOAD_KINDS


SDS_PAYLOAD_KINDS = frozenset({
    MessageKind.TEXT_SDS,
    MessageKind.SIMPLE_TEXT_SDS,
    MessageKind.LIP_SDS,
    MessageKind.STATE_SDS,
    MessageKind.CONCAT_SDS,
    MessageKind.ACK_SDS,
    MessageKind.REGISTER_TSI,
})


class Direction(IntEnum):
    """Direction of an SDS relative to this gateway."""
    OUTGOING = 0
    INCOMING = 1


class SdsType(Enum):
    """Payload kind of a queued SDS; selects the encoder."""
    TEXT = "text"  # Plain text, encoded as SDS-TL text message
    RAW = "raw"    # Hex payload sent as is
    ACK = "ack"    # Delivery acknowledgment for a received text SDS


class SdsSendStatus(IntEnum):
    """<SDS status> field of the +CMGS status report."""
    SEND_OK = 4
    SEND_FAILED = 5


@dataclass
class PeiState:
    """
    Mutable state of one PEI connection.

    Owned by the reactor and handed by reference to every component that
    needs to read or change it.
    """
    status: ProtocolStatus = ProtocolStatus.UNINITIALIZED
    phase: InitPhase = InitPhase.AWAITING_FIRST_COMMAND
    in_transmission: bool = False  # Local MS is keyed
    receiving: bool = False        # Squelch open, MS is receiving
    talkgroup_up: bool = False     # Group call set up by us

    @property
    def channel_free(self) -> bool:
        """Check if an SDS may be sent right now."""
        return (
            self.phase in (InitPhase.INIT_COMPLETE, InitPhase.CHECK_KEEPALIVE)
            and self.status == ProtocolStatus.OK
            and not self.in_transmission
            and not self.receiving
        )


@dataclass
class Callinfo:
    """Call attributes from +CTICN."""
    instance: int
    callstatus: int
    aistatus: int
    origin_cpit: int
    o_mcc: int
    o_mnc: int
    o_issi: int
    hook: int
    simplex: int
    e2eencryption: int
    commstype: int
    codec: int
    dest_cpit: int
    d_mcc: int
    d_mnc: int
    d_issi: int
    prio: int
    o_tsi: str = ""


@dataclass
class Qso:
    """A group session and the callsigns that took part in it."""
    tsi: str
    start: float = 0.0
    stop: float = 0.0
    members: list[str] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        """Check if the session has not been released yet."""
        return self.stop == 0.0

    def add_member(self, call: str) -> bool:
        """
        Add a callsign to the session.

        Returns:
            True if the callsign was new
        """
        if call in self.members:
            return False
        self.members.append(call)
        return True


@dataclass
class User:
    """A TETRA subscriber known to the gateway."""
    tsi: str
    call: str = "NoCall"
    name: str = "NoName"
    aprs_sym: str = "/"
    aprs_tab: str = "e"
    comment: str = "NN"
    last_activity: float = 0.0
    sent_last_sds: float = 0.0
    lat: float = 0.0
    lon: float = 0.0
    state: int = 0
    reason_for_sending: int = -1

    def to_dict(self) -> dict:
        """Directory entry as published to the reflector."""
        return {
            "tsi": self.tsi,
            "call": self.call,
            "name": self.name,
            "tab": self.aprs_tab,
            "sym": self.aprs_sym,
            "comment": self.comment,
        }


@dataclass(eq=False)
class Sds:
    """
    A short message, queued or historical.

    tos is the submission time (0 = not yet sent), tod the time the
    delivery was confirmed.
    """
    tsi: str
    message: str
    direction: Direction = Direction.OUTGOING
    kind: SdsType = SdsType.TEXT
    id: int = 0
    tos: float = 0.0
    tod: float = 0.0
    tries: int = 0
    remark: str = ""
    coding: int = 0x01  # Text coding scheme of TEXT entries (0x01 Latin 1, 0x00 7-bit)

    @property
    def is_awaiting_confirmation(self) -> bool:
        """Check if the SDS was submitted and not confirmed yet."""
        return (
            self.direction == Direction.OUTGOING
            and self.tos != 0.0
            and self.tod == 0.0
        )


@dataclass
class DmoRpt:
    """A DMO gateway or repeater seen via +CTDGR."""
    issi: int
    mni: str
    state: int
    last_activity: float = 0.0


@dataclass
class SdsHeader:
    """Header of a received SDS (+CTSDSR)."""
    ai_service: int
    from_tsi: str
    to_issi: int
    length: int
    received_at: float = 0.0


@dataclass
class CmgsReport:
    """
    Set result or status report of +CMGS.

    A bare "+CMGS: <instance>" only carries the instance; the later status
    report adds the status and the message reference.
    """
    instance: int
    status: Optional[int] = None
    reference: Optional[int] = None

    @property
    def is_status_report(self) -> bool:
        """Check if this line reports the outcome of a send."""
        return self.status is not None


@dataclass
class CnumfInfo:
    """Own identity of the MS from +CNUMF."""
    num_type: int
    mcc: str
    mnc: str
    issi: int

    @property
    def tsi(self) -> str:
        """Full identity as 17 digits."""
        return f"{self.mcc}{self.mnc}{self.issi:08d}"


@dataclass
class LipInfo:
    """
    Decoded short location report (LIP).

    Latitude and longitude are in decimal degrees.
    """
    pdu_type: int
    time_elapsed: int
    longitude: float
    latitude: float
    position_error: int
    horizontal_velocity: int
    direction_of_travel: int
    additional_data_type: int
    reason_for_sending: int
