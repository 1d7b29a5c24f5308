"""
Network manager.

Handles identity verification, DMO gateway/repeater presence, air
interface mode, audio level and group selection.
"""

import logging
import time
from typing import TYPE_CHECKING, Callable, Dict, Optional

from ..types import CnumfInfo, DmoRpt, MessageKind
from ..parsers.pei import (
    AI_MODE,
    NUM_TYPE,
    TRANSIENT_COM_TYPE,
    CnumfParser,
    CtdgrParser,
    GroupSelectParser,
    IntResultParser,
    describe,
)

if TYPE_CHECKING:
    from ..core import PeiCore

logger = logging.getLogger(__name__)

NUM_TYPE_ITSI = 6


class NetworkManager:
    """
    Manages network related result codes.

    Provides the identity reported by the MS, the DMO gateways and
    repeaters seen, and the current air interface mode.
    """

    def __init__(
        self,
        pei_core: "PeiCore",
        mcc: str,
        mnc: str,
        issi: str,
        clock: Callable[[], float] = time.time
    ) -> None:
        """
        Initialize network manager.

        Args:
            pei_core: PeiCore for commands and events
            mcc: Configured country code (4 digits)
            mnc: Configured network code (5 digits)
            issi: Configured ISSI
            clock: Time source for DmoRpt.last_activity
        """
        self.core = pei_core
        self.events = pei_core.events
        self.mcc = mcc
        self.mnc = mnc
        self.issi = issi
        self._clock = clock

        self.identity: Optional[CnumfInfo] = None
        self.identity_ok: Optional[bool] = None
        self.dmo_rpt: Dict[int, DmoRpt] = {}
        self.ai_mode: Optional[int] = None
        self.audio_level: Optional[int] = None
        self.selected_group: Optional[str] = None

        # Parsers
        self._cnumf_parser = CnumfParser()
        self._ctdgr_parser = CtdgrParser()
        self._op_mode_parser = IntResultParser("+CTOM:")
        self._level_parser = IntResultParser("+CLVL:")
        self._group_parser = GroupSelectParser()

        pei_core.register_handler(MessageKind.CNUMF, self.handle_cnumf)
        pei_core.register_handler(MessageKind.CTDGR, self.handle_ctdgr)
        pei_core.register_handler(MessageKind.OP_MODE, self.handle_op_mode)
        pei_core.register_handler(MessageKind.CLVL, self.handle_clvl)
        pei_core.register_handler(MessageKind.CTGS, self.handle_ctgs)

        logger.debug("Initialized NetworkManager")

    def handle_cnumf(self, line: str) -> None:
        """
        Handle +CNUMF (own identity), e.g. "+CNUMF: 6,09011638300023401".

        A mismatch with the configuration is logged; the driver keeps running.
        """
        info = self._cnumf_parser.parse(line)
        self.identity = info
        logger.info(f"<num type> is {info.num_type} ({describe(NUM_TYPE, info.num_type)})")

        if info.num_type != NUM_TYPE_ITSI:
            return

        ok = True
        if info.mcc != self.mcc:
            logger.error(f"Wrong MCC in MS, will not work! {self.mcc} != {info.mcc}")
            ok = False
        if info.mnc != self.mnc:
            logger.error(f"Wrong MNC in MS, will not work! {self.mnc} != {info.mnc}")
            ok = False
        if int(self.issi) != info.issi:
            logger.error(f"Wrong ISSI in MS, will not work! {self.issi} != {info.issi}")
            ok = False
        self.identity_ok = ok

        if ok:
            logger.info(f"MS identity {info.tsi} matches configuration")

    def handle_ctdgr(self, line: str) -> None:
        """Handle +CTDGR (DMO gateway/repeater seen), e.g. "+CTDGR: 2,1001,90116383,0"."""
        dmct, rpt = self._ctdgr_parser.parse(line)
        rpt.last_activity = self._clock()

        known = self.dmo_rpt.get(rpt.issi)
        if known is None:
            self.dmo_rpt[rpt.issi] = rpt
        else:
            known.mni = rpt.mni
            known.state = rpt.state
            known.last_activity = rpt.last_activity

        logger.info(f"Station {describe(TRANSIENT_COM_TYPE, dmct)} detected "
                    f"(ISSI={rpt.issi}, MNI={rpt.mni}, state={rpt.state})")
        self.events.process_event(f"dmo_gw_rpt {dmct} {rpt.issi} {rpt.mni} {rpt.state}")

    def handle_op_mode(self, line: str) -> None:
        """Handle +CTOM (air interface mode), e.g. "+CTOM: 1"."""
        mode = self._op_mode_parser.parse(line)
        self.ai_mode = mode
        logger.info(f"New TETRA mode: {describe(AI_MODE, mode)}")
        self.events.process_event(f"tetra_mode {mode}")

    def handle_clvl(self, line: str) -> None:
        """Handle +CLVL (audio level)."""
        level = self._level_parser.parse(line)
        self.audio_level = level
        self.events.process_event(f"audio_level {level}")

    def handle_ctgs(self, line: str) -> None:
        """Handle +CTGS (group selection)."""
        self.selected_group = self._group_parser.parse(line)
        logger.info(f"Selected group: {self.selected_group}")

    def request_identity(self) -> None:
        """Ask the MS for its identity (answered with +CNUMF)."""
        self.core.send_command("AT+CNUMF?")

    def request_op_mode(self) -> None:
        """Ask the MS for its air interface mode (answered with +CTOM)."""
        self.core.send_command("AT+CTOM?")
