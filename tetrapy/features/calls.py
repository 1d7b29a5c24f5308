"""
Call tracker.

Follows group calls from +CTICN to +CTCR, keeps the current QSO with its
participants, and keys up the radio for local transmissions.
"""

import logging
import time
from typing import TYPE_CHECKING, Callable, Dict, Optional

from ..types import Callinfo, MessageKind, Qso, Sds
from ..parsers.pei import CallBeginParser, CallReleaseParser, DISCONNECT_CAUSE, describe
from ..parsers.sds import get_tsi

if TYPE_CHECKING:
    from ..core import PeiCore
    from .users import UserDirectory
    from .sds_queue import SdsQueue

logger = logging.getLogger(__name__)

GROUP_CALL_SETUP = "AT+CTSDC=0,0,0,1,1,0,1,1,0,0,0"
TX_DEMAND = "AT+CTXD=1,1"
TX_CEASED = "AT+CUTXC=1"


class CallTracker:
    """
    Tracks calls and the active QSO.

    Handles +CTICN, +CTCR, +CTXG, +CDTXC and the informational +CTCC,
    +CTXD, +CTXI, +CTXW result codes.
    """

    def __init__(
        self,
        pei_core: "PeiCore",
        users: "UserDirectory",
        sds_queue: "SdsQueue",
        mcc: str,
        mnc: str,
        gssi: int = 1,
        info_sds: str = "",
        source: str = "",
        on_squelch: Optional[Callable[[bool], None]] = None,
        clock: Callable[[], float] = time.time
    ) -> None:
        """
        Initialize call tracker.

        Args:
            pei_core: PeiCore for commands, state and events
            users: User directory
            sds_queue: Queue for the welcome SDS to new users
            mcc: Own country code (4 digits)
            mnc: Own network code (5 digits)
            gssi: Group used for local transmissions
            info_sds: Welcome text sent to unknown callers
            source: Gateway callsign used in info records
            on_squelch: Called with the new squelch state
            clock: Time source
        """
        self.core = pei_core
        self.state = pei_core.state
        self.events = pei_core.events
        self.users = users
        self.sds_queue = sds_queue
        self.mcc = mcc
        self.mnc = mnc
        self.gssi = gssi
        self.info_sds = info_sds
        self.source = source
        self.on_squelch = on_squelch
        self._clock = clock

        self.callinfo: Dict[int, Callinfo] = {}
        self.qso: Optional[Qso] = None

        self._begin_parser = CallBeginParser()
        self._release_parser = CallReleaseParser()

        pei_core.register_handler(MessageKind.CALL_BEGIN, self.handle_call_begin)
        pei_core.register_handler(MessageKind.CALL_RELEASED, self.handle_call_released)
        pei_core.register_handler(MessageKind.TRANSMISSION_GRANT, self.handle_tx_grant)
        pei_core.register_handler(MessageKind.TRANSMISSION_END, self.handle_transmission_end)
        for kind in (MessageKind.CALL_CONNECT, MessageKind.TX_DEMAND,
                     MessageKind.TX_INTERRUPT, MessageKind.TX_WAIT):
            pei_core.register_handler(kind, self._log_only)

        logger.debug("Initialized CallTracker")

    def handle_call_begin(self, line: str) -> None:
        """
        Handle +CTICN (incoming call).

        Example line:
            +CTICN: 1,0,0,5,09011638300023404,1,1,0,1,1,5,09011638300000001,0
        """
        call = self._begin_parser.parse(line)
        self.squelch_open(True)

        tsi = get_tsi(call.o_tsi, self.mcc, self.mnc)
        self.callinfo[call.o_issi] = call

        user = self.users.touch(tsi)
        if user is None:
            self.users.create_default(tsi)
            logger.info(f"Sending info SDS to new user {tsi} \"{self.info_sds}\"")
            self.sds_queue.enqueue(Sds(
                tsi=tsi,
                message=self.info_sds,
                remark="Welcome Sds to newuser",
            ))
            return

        now = user.last_activity

        if self.qso is None or not self.qso.is_active:
            self.qso = Qso(tsi=tsi, start=now)
        else:
            self.qso.tsi = tsi

        records = []
        if self.qso.add_member(user.call):
            records.append({
                "source": self.source,
                "call": user.call,
                "tsi": tsi,
                "last_activity": str(int(user.last_activity)),
            })
        self.events.publish_info("QsoInfo:state", records)

        logger.info(f"{user.call} initiated groupcall: {call.o_issi} -> {call.d_issi}")
        self.events.process_event(f"groupcall_begin {call.o_issi} {call.d_issi}")

    def handle_call_released(self, line: str) -> None:
        """Handle +CTCR (call released), e.g. "+CTCR: 1,13"."""
        instance, cause = self._release_parser.parse(line)
        now = self._clock()

        if self.qso is not None:
            self.qso.stop = now

        if self.state.receiving:
            self.squelch_open(False)
            self.events.process_event(f"out_of_range {cause}")
        else:
            self.events.process_event(f"call_end \"{describe(DISCONNECT_CAUSE, cause)}\"")

        if self.qso is not None:
            self.events.publish_info("QsoInfo:end", {
                "source": self.source,
                "tsi": self.qso.tsi,
                "start": str(int(self.qso.start)),
                "stop": str(int(self.qso.stop)),
                "members": list(self.qso.members),
            })
            self.qso.members.clear()

        logger.info(f"Call {instance} released: {describe(DISCONNECT_CAUSE, cause)}")
        self.state.talkgroup_up = False
        self.state.in_transmission = False

        # The MS is back in receive mode, queued SDS can go out now
        self.sds_queue.dispatch()

    def handle_tx_grant(self, line: str) -> None:
        """Handle +CTXG (transmission granted to another station)."""
        self.squelch_open(True)
        self.events.process_event("tx_grant")

    def handle_transmission_end(self, line: str) -> None:
        """Handle +CDTXC (down transmission ceased)."""
        self.squelch_open(False)
        self.events.process_event("groupcall_end")

    def squelch_open(self, is_open: bool) -> None:
        """
        Set the receive state.

        Ignored while the local station transmits.
        """
        if self.state.in_transmission:
            return

        self.state.receiving = is_open
        if self.on_squelch:
            self.on_squelch(is_open)

    def transmitter_state_changed(self, is_transmitting: bool) -> None:
        """
        Key or unkey the radio for a local transmission.

        The first key-up sets up a group call to the configured GSSI;
        later ones only demand transmission.
        """
        if is_transmitting:
            if not self.state.talkgroup_up:
                self.init_group_call(self.gssi)
                self.state.talkgroup_up = True
            else:
                self.core.send_command(TX_DEMAND)
        else:
            self.core.send_command(TX_CEASED)

    def init_group_call(self, gssi: int) -> None:
        """Set up a group call to gssi."""
        self.state.in_transmission = True
        self.core.send_command(GROUP_CALL_SETUP)
        self.core.send_command(f"ATD{gssi}")
        self.events.process_event(f"init_group_call {gssi}")

    def _log_only(self, line: str) -> None:
        logger.debug(f"Call state: {line}")
