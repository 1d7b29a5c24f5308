"""
PEI result code parsers.

Parses the unsolicited result codes and command results of the TETRA PEI
(EN 300 392-5) into typed data:
- +CTICN (incoming call notification)
- +CTCR (call release)
- +CTSDSR (SDS receive header)
- +CMGS (SDS send result / status report)
- +CNUMF (own identity)
- +CTDGR (visible DMO gateways/repeaters)
- +CTOM, +CLVL, +CTGS, +CME ERROR
"""

import logging
from typing import Sequence, Union

from .base import LineParser, FieldReader
from .sds import get_tsi
from ..types import Callinfo, CmgsReport, CnumfInfo, DmoRpt, SdsHeader
from ..exceptions import PeiParseError

logger = logging.getLogger(__name__)

# Disconnect cause of +CTCR
DISCONNECT_CAUSE = [
    "Not defined or unknown",
    "User request",
    "Called party busy",
    "Called party not reachable",
    "Called party does not support encryption",
    "Congestion in infrastructure",
    "Not allowed traffic case",
    "Incompatible traffic case",
    "Requested service not available",
    "Pre-emptive use of resource",
    "Invalid call identifier",
    "Call rejected by the called party",
    "No idle CC entity",
    "Expiry of timer",
    "SwMI disconnect",
    "No acknowledgement",
    "Unknown TETRA identity",
    "Supplementary Service dependent",
    "Unknown external subscriber number",
    "Call restoration of the other user failed",
    "Called party requires encryption",
    "Concurrent set-up not supported",
    "Called party is under the same DM-GATE as the calling party",
    "Non-call owner requested disconnect",
]

# Air interface mode of +CTOM
AI_MODE = [
    "TMO",
    "DMO",
    "TMO with dual watch of DMO",
    "DMO with dual watch of TMO",
    "TMO and DMO",
    "DMO repeater",
    "DMO gateway",
    "DMO repeater and gateway",
]

# <num type> of +CNUMF
NUM_TYPE = [
    "Individual (ISSI)",
    "Group (GSSI)",
    "PSTN Gateway (ISSI)",
    "PABX Gateway (ISSI)",
    "Service Centre (ISSI)",
    "Service Centre (E.164)",
    "Individual (ITSI)",
    "Group (GTSI)",
    "PSTN Gateway (ITSI)",
    "PABX Gateway (ITSI)",
    "Service Centre (ITSI)",
]

# <DM communication type> of +CTDGR
TRANSIENT_COM_TYPE = [
    "Any, MS-MS",
    "Via DM-REP",
    "Via DM-GATE",
    "Via DM-REP/GATE",
    "Reserved",
    "Direct MS-MS, but maintain gateway registration",
]

# <extended error report code> of +CME ERROR
PEI_ERRORS = {
    0: "Phone failure",
    1: "No connection to phone",
    2: "Phone adapter link reserved",
    3: "Operation not allowed",
    4: "Operation not supported",
    5: "PH-SIM PIN required",
    10: "SIM not inserted",
    11: "SIM PIN required",
    12: "SIM PUK required",
    13: "SIM failure",
    14: "SIM busy",
    15: "SIM wrong",
    16: "Incorrect password",
    17: "SIM PIN2 required",
    18: "SIM PUK2 required",
    20: "Memory full",
    21: "Invalid index",
    22: "Not found",
    23: "Memory failure",
    24: "Text string too long",
    25: "Invalid characters in text string",
    26: "Dial string too long",
    27: "Invalid characters in dial string",
    30: "No network service",
    31: "Network timeout",
    32: "Network not allowed, emergency calls only",
    100: "Unknown",
}


def describe(table: Union[Sequence[str], dict], index: int) -> str:
    """
    Look up a code in one of the tables above.

    Example:

    .. code-block:: python

        describe(DISCONNECT_CAUSE, 1)   # "User request"
        describe(DISCONNECT_CAUSE, 99)  # "Unknown (99)"
    """
    try:
        return table[index]
    except (IndexError, KeyError):
        return f"Unknown ({index})"


def split_tsi(tsi: str, line: str = "") -> tuple[int, int, int]:
    """
    Split a 17 digit TSI into (mcc, mnc, issi).

    Short identities (up to 8 digits) are returned with mcc and mnc 0.
    """
    if tsi.isdigit() and len(tsi) == 17:
        return int(tsi[0:4]), int(tsi[4:9]), int(tsi[9:17])
    if tsi.isdigit() and len(tsi) <= 8:
        return 0, 0, int(tsi)
    raise PeiParseError(f"Invalid TSI: {tsi!r}", response=[line or tsi])


class CallBeginParser(LineParser[Callinfo]):
    """Parser for +CTICN (incoming call notification)."""

    prefix = "+CTICN:"
    MIN_LENGTH = 65

    def parse(self, line: str) -> Callinfo:
        """
        Parse +CTICN.

        Expected format:
            +CTICN: <CC instance>,<call status>,<AI service>,
                    <calling party identity type>,<calling party identity>,
                    <hook>,<simplex>,<end to end encryption>,<comms type>,
                    <slots/codec>,<called party identity type>,
                    <called party identity>,<priority level>

        Example:
            +CTICN: 1,0,0,5,09011638300023404,1,1,0,1,1,5,09011638300000001,0
        """
        if len(line) < self.MIN_LENGTH:
            raise PeiParseError(
                f"+CTICN too short ({len(line)} < {self.MIN_LENGTH})",
                response=[line]
            )

        reader = FieldReader(line[8:], line)
        instance = reader.next_int()
        callstatus = reader.next_int()
        aistatus = reader.next_int()
        origin_cpit = reader.next_int()
        o_tsi = reader.next_str()
        hook = reader.next_int()
        simplex = reader.next_int()
        e2eencryption = reader.next_int()
        commstype = reader.next_int()
        codec = reader.next_int()
        dest_cpit = reader.next_int()
        d_tsi = reader.next_str()
        prio = reader.next_int(default=0)

        o_mcc, o_mnc, o_issi = split_tsi(o_tsi, line)
        d_mcc, d_mnc, d_issi = split_tsi(d_tsi, line)

        return Callinfo(
            instance=instance,
            callstatus=callstatus,
            aistatus=aistatus,
            origin_cpit=origin_cpit,
            o_mcc=o_mcc,
            o_mnc=o_mnc,
            o_issi=o_issi,
            hook=hook,
            simplex=simplex,
            e2eencryption=e2eencryption,
            commstype=commstype,
            codec=codec,
            dest_cpit=dest_cpit,
            d_mcc=d_mcc,
            d_mnc=d_mnc,
            d_issi=d_issi,
            prio=prio,
            o_tsi=o_tsi,
        )


class CallReleaseParser(LineParser[tuple[int, int]]):
    """Parser for +CTCR (call release)."""

    prefix = "+CTCR:"

    def parse(self, line: str) -> tuple[int, int]:
        """
        Parse +CTCR.

        Expected format: "+CTCR: <CC instance>,<disconnect cause>"

        Returns:
            Tuple of (instance, cause)
        """
        reader = FieldReader(self.strip_prefix(line), line)
        instance = reader.next_int()
        cause = reader.next_int(default=0)
        return instance, cause


class SdsHeaderParser(LineParser[SdsHeader]):
    """Parser for +CTSDSR (SDS receive header)."""

    prefix = "+CTSDSR:"

    def __init__(self, mcc: str, mnc: str) -> None:
        """
        Initialize parser.

        Args:
            mcc: Own country code, used to complete short identities
            mnc: Own network code, used to complete short identities
        """
        self.mcc = mcc
        self.mnc = mnc

    def parse(self, line: str) -> SdsHeader:
        """
        Parse +CTSDSR.

        Expected format:
            +CTSDSR: <AI service>,<calling party identity>,
                     <calling party identity type>,<called party identity>,
                     <called party identity type>,<length>[,<e2e encryption>]

        Example:
            +CTSDSR: 12,23404,0,23401,0,112
        """
        reader = FieldReader(self.strip_prefix(line), line)
        ai_service = reader.next_int()
        from_tsi = get_tsi(reader.next_str(), self.mcc, self.mnc)
        reader.next_str()
        to_issi = int(reader.next_str()[-8:] or "0")
        reader.next_str()
        length = reader.next_int(default=0)

        return SdsHeader(
            ai_service=ai_service,
            from_tsi=from_tsi,
            to_issi=to_issi,
            length=length,
        )


class CmgsParser(LineParser[CmgsReport]):
    """Parser for +CMGS (SDS send result and status report)."""

    prefix = "+CMGS:"

    def parse(self, line: str) -> CmgsReport:
        """
        Parse +CMGS.

        Expected format:
            +CMGS: <SDS instance>[,<SDS status>[,<message reference>]]

        Examples:
            +CMGS: 0
            +CMGS: 0,4,65
        """
        reader = FieldReader(self.strip_prefix(line), line)
        instance = reader.next_int()
        status = reader.next_int() if reader.remaining else None
        reference = reader.next_int() if reader.remaining else None
        return CmgsReport(instance=instance, status=status, reference=reference)


class CnumfParser(LineParser[CnumfInfo]):
    """Parser for +CNUMF (own identity of the MS)."""

    prefix = "+CNUMF:"

    def parse(self, line: str) -> CnumfInfo:
        """
        Parse +CNUMF.

        Expected format: "+CNUMF: <num type>,<TSI>"
        e.g. "+CNUMF: 6,09011638300023401"
        """
        reader = FieldReader(self.strip_prefix(line), line)
        num_type = reader.next_int()
        tsi = reader.next_str()
        if len(tsi) != 17 or not tsi.isdigit():
            raise PeiParseError(f"Invalid TSI in +CNUMF: {tsi!r}", response=[line])
        return CnumfInfo(
            num_type=num_type,
            mcc=tsi[0:4],
            mnc=tsi[4:9],
            issi=int(tsi[9:17]),
        )


class CtdgrParser(LineParser[tuple[int, DmoRpt]]):
    """Parser for +CTDGR (visible DMO gateways and repeaters)."""

    prefix = "+CTDGR:"

    def parse(self, line: str) -> tuple[int, DmoRpt]:
        """
        Parse +CTDGR.

        Expected format:
            +CTDGR: <DM communication type>,<gateway/repeater address>,
                    <MNI>,<presence information>
        e.g. "+CTDGR: 2,1001,90116383,0"

        Returns:
            Tuple of (communication type, DmoRpt)
        """
        params = self.strip_prefix(line)
        if params.count(",") != 3:
            raise PeiParseError(
                f"+CTDGR needs 4 fields, got {params.count(',') + 1}",
                response=[line]
            )
        reader = FieldReader(params, line)
        dmct = reader.next_int()
        issi = reader.next_int()
        mni = reader.next_str()
        state = reader.next_int()
        return dmct, DmoRpt(issi=issi, mni=mni, state=state)


class IntResultParser(LineParser[int]):
    """Parser for result codes carrying a single integer (+CTOM, +CLVL, +CME ERROR)."""

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    def parse(self, line: str) -> int:
        """Parse "<prefix> <n>"."""
        return FieldReader(self.strip_prefix(line), line).next_int()


class GroupSelectParser(LineParser[str]):
    """Parser for +CTGS (group selection)."""

    prefix = "+CTGS:"

    def parse(self, line: str) -> str:
        """
        Parse +CTGS.

        Expected format: "+CTGS: [<group type>],<called party identity>..."
        e.g. "+CTGS: 1,09011638300000001"

        Returns:
            Parameter list as received
        """
        return self.strip_prefix(line)
