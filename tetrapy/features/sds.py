"""
SDS manager.

Handles received short data: the +CTSDSR header and the payload line
that follows it. Location reports, status codes, text messages and
delivery reports are decoded, confirmed where the sender expects it and
turned into events. Also the entry point for SDS to be sent.
"""

import logging
import time
from functools import partial
from typing import TYPE_CHECKING, Callable, Optional

from ..types import MessageKind, SDS_PAYLOAD_KINDS, Sds, SdsHeader, SdsType
from ..parsers.pei import CmgsParser, SdsHeaderParser
from ..parsers.sds import (
    MAX_TEXT_LENGTH,
    REASON_DMO_OFF,
    REASON_DMO_ON,
    REASON_FOR_SENDING,
    create_ack_payload,
    decode_ack_sds,
    decode_lip,
    decode_simple_text_sds,
    decode_state,
    decode_text_sds,
    get_tsi,
    text_sds_reference,
)
from ..parsers.base import hex_to_int
from ..parsers.textcoding import CODING_LATIN1, encode_text
from ..exceptions import PeiParseError, SdsError
from .users import calc_bearing, calc_distance

if TYPE_CHECKING:
    from ..config import PeiConfig
    from ..core import PeiCore
    from .users import UserDirectory
    from .sds_queue import SdsQueue

logger = logging.getLogger(__name__)

CONFIRMATION_TEXT = "OK"


class SdsManager:
    """
    Manages SDS reception and submission.

    Example:

    .. code-block:: python

        radio.sds.send_text("09011638300023404", "Hello")
        radio.sds.inject("09011638300023404,R,8204010148656C6C6F")
    """

    def __init__(
        self,
        pei_core: "PeiCore",
        users: "UserDirectory",
        sds_queue: "SdsQueue",
        config: "PeiConfig",
        dtmf_injector: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.time
    ) -> None:
        """
        Initialize SDS manager.

        Args:
            pei_core: PeiCore for state and events
            users: User directory
            sds_queue: Outbound queue
            config: Gateway configuration (identity, activity messages,
                    state maps, proximity settings)
            dtmf_injector: Receives macro digits for configured state codes
            clock: Time source
        """
        self.core = pei_core
        self.events = pei_core.events
        self.users = users
        self.queue = sds_queue
        self.config = config
        self.dtmf_injector = dtmf_injector
        self._clock = clock

        self.own_tsi = get_tsi(config.issi, config.mcc, config.mnc)
        self._header: Optional[SdsHeader] = None
        self._header_parser = SdsHeaderParser(config.mcc, config.mnc)
        self._cmgs_parser = CmgsParser()

        pei_core.register_handler(MessageKind.SDS_HEADER, self.handle_header)
        for kind in SDS_PAYLOAD_KINDS:
            pei_core.register_handler(kind, partial(self.handle_payload, kind))
        pei_core.register_observer(self._check_payload)
        pei_core.register_handler(MessageKind.CMGS_ACK, self.handle_cmgs)
        pei_core.register_handler(MessageKind.OK, self._on_ok)

        logger.debug("Initialized SdsManager")

    @property
    def last_header(self) -> Optional[SdsHeader]:
        """Header of the SDS whose payload is expected next."""
        return self._header

    def handle_header(self, line: str) -> None:
        """
        Handle +CTSDSR, the header preceding an SDS payload line.

        Example line:
            +CTSDSR: 12,23404,0,23401,0,112
        """
        header = self._header_parser.parse(line)
        header.received_at = self._clock()
        self._header = header
        logger.debug(f"SDS header from {header.from_tsi}, {header.length} bits")

    def handle_cmgs(self, line: str) -> None:
        """Handle +CMGS, the send result and status report of our SDS."""
        self.queue.handle_cmgs(self._cmgs_parser.parse(line))

    def handle_payload(self, kind: MessageKind, line: str) -> None:
        """
        Handle the payload line of a received SDS.

        Args:
            kind: Classification of the payload
            line: Hex payload
        """
        header = self._header
        if header is None:
            logger.warning(f"SDS payload without header, discarding: {line}")
            return
        self._header = None

        tsi = header.from_tsi
        user = self.users.touch(tsi)
        if user is None:
            self._welcome_new_user(tsi)
            return

        info = {}
        event = None

        if kind == MessageKind.LIP_SDS:
            lip = decode_lip(line)
            user.lat = lip.latitude
            user.lon = lip.longitude
            user.reason_for_sending = lip.reason_for_sending
            logger.info(
                f"Position of {user.call}: {lip.latitude:.5f}, {lip.longitude:.5f} "
                f"({REASON_FOR_SENDING.get(lip.reason_for_sending, 'unknown reason')})"
            )

            self._send_welcome_sds(tsi, lip.reason_for_sending)
            self._send_info_sds(tsi, lip.reason_for_sending)

            if self.config.has_own_position:
                distance = calc_distance(self.config.own_lat, self.config.own_lon,
                                         lip.latitude, lip.longitude)
                bearing = calc_bearing(self.config.own_lat, self.config.own_lon,
                                       lip.latitude, lip.longitude)
                self.events.process_event(
                    f"distance_rpt_ms {tsi} {distance:.1f} {bearing:.0f}"
                )

            event = f"lip_sds_received {tsi} {lip.latitude:g} {lip.longitude:g}"
            info.update(lat=lip.latitude, lon=lip.longitude,
                        reasonforsending=lip.reason_for_sending)

        elif kind == MessageKind.STATE_SDS:
            state = decode_state(line)
            user.state = state
            self._handle_state(tsi, state)
            event = f"state_sds_received {tsi} {state}"
            info["state"] = state

        elif kind == MessageKind.TEXT_SDS:
            text = decode_text_sds(line, header.length)
            reference = text_sds_reference(line)
            logger.info(f"Text SDS from {user.call}: {text}")
            logger.debug(f"Sending confirmation SDS to {tsi}")
            self.queue.enqueue(Sds(
                tsi=tsi,
                message=create_ack_payload(reference),
                kind=SdsType.ACK,
                id=reference,
                remark="confirmation Sds",
            ))
            event = f"text_sds_received {tsi} \"{text}\""

        elif kind == MessageKind.SIMPLE_TEXT_SDS:
            text = decode_simple_text_sds(line, header.length)
            logger.info(f"Simple text SDS from {user.call}: {text}")
            self._confirm(tsi)
            event = f"text_sds_received {tsi} \"{text}\""

        elif kind == MessageKind.ACK_SDS:
            reference = decode_ack_sds(line)
            logger.info(f"SDS #{reference} received by {tsi}")
            event = f"sds_received_ack {tsi}"

        elif kind == MessageKind.REGISTER_TSI:
            event = f"register_tsi {tsi}"
            self._confirm(tsi)

        elif kind == MessageKind.CONCAT_SDS:
            logger.warning(f"Concatenated SDS from {tsi} not supported, ignoring")

        info.update(
            last_activity=str(int(user.last_activity)),
            tsi=tsi,
            type=kind.value,
            source=self.config.callsign,
        )

        if event:
            self.events.process_event(event)
        self.events.publish_info("Sds:info", [info])

    def inject(self, line: str) -> int:
        """
        Queue an SDS from an injection line.

        Format: "<tsi>,<T|R>,<payload>", T for text, R for a raw hex
        payload. A trailing newline is ignored.

        Returns:
            Number of queued entries

        Raises:
            SdsError: If the line is malformed

        Example:

        .. code-block:: python

            sds.inject("09011638300023451,T,This is a test")
            sds.inject("09011638300023451,R,82040102432E4E34E")
        """
        line = line.rstrip("\r\n")
        parts = line.split(",", 2)
        if len(parts) != 3:
            raise SdsError(f"Injection line needs <tsi>,<T|R>,<payload>: {line!r}")

        tsi, kind, payload = parts[0].strip(), parts[1].strip().upper(), parts[2]
        if kind == "T":
            return self.send_text(tsi, payload)
        if kind == "R":
            return self.send_raw(tsi, payload)
        raise SdsError(f"Unknown SDS type {parts[1]!r}, expected T or R")

    def send_text(self, tsi: str, text: str, coding: int = CODING_LATIN1) -> int:
        """
        Queue a text SDS.

        Args:
            tsi: Destination ISSI or TSI
            text: Up to 120 characters
            coding: CODING_LATIN1 or CODING_7BIT

        Returns:
            Number of queued entries

        Raises:
            SdsError: If the destination or text is invalid
        """
        if len(text) > MAX_TEXT_LENGTH:
            raise SdsError(f"Text longer than {MAX_TEXT_LENGTH} characters ({len(text)})")
        encode_text(text, coding)
        return self.queue.enqueue(Sds(tsi=self._normalize(tsi), message=text, coding=coding))

    def send_raw(self, tsi: str, payload: str) -> int:
        """
        Queue a raw hex SDS payload.

        Raises:
            SdsError: If the destination or payload is invalid
        """
        payload = payload.strip()
        try:
            hex_to_int(payload)
        except PeiParseError as e:
            raise SdsError(f"Raw SDS payload is not hex: {payload!r}") from e
        return self.queue.enqueue(Sds(
            tsi=self._normalize(tsi),
            message=payload.upper(),
            kind=SdsType.RAW,
        ))

    def _normalize(self, tsi: str) -> str:
        try:
            return get_tsi(tsi, self.config.mcc, self.config.mnc)
        except PeiParseError as e:
            raise SdsError(f"Invalid destination {tsi!r}") from e

    def _welcome_new_user(self, tsi: str) -> None:
        self.users.create_default(tsi)
        logger.info(f"Sending info SDS to new user {tsi} \"{self.config.info_sds}\"")
        self.queue.enqueue(Sds(
            tsi=tsi,
            message=self.config.info_sds,
            remark="Welcome Sds to newuser",
        ))

    def _confirm(self, tsi: str) -> None:
        self.queue.enqueue(Sds(tsi=tsi, message=CONFIRMATION_TEXT, remark="confirmation Sds"))

    def _handle_state(self, tsi: str, state: int) -> None:
        label = self.config.state_labels.get(state)
        logger.info(f"State SDS {state} from {tsi}" + (f" ({label})" if label else ""))

        digits = self.config.state_commands.get(state)
        if digits is not None and self.dtmf_injector is not None:
            self.dtmf_injector(f"{digits}#")

    def _send_welcome_sds(self, tsi: str, reason: int) -> None:
        message = self.config.sds_on_activity.get(reason)
        if message is None:
            return
        logger.info(f"Sending welcome SDS to {tsi}: {message}")
        self.queue.enqueue(Sds(tsi=tsi, message=message, remark="welcome sds"))

    def _send_info_sds(self, tsi: str, reason: int) -> None:
        """Tell the other users that tsi switched DMO on/off or came close."""
        sender = self.users.get(tsi)
        flags = self.config.sds_to_others_on_activity
        if sender is None or not flags:
            return

        now = self._clock()
        for other in self.users:
            if other.tsi in (tsi, self.own_tsi):
                continue
            if now - other.sent_last_sds < self.config.time_between_sds:
                continue

            distance = calc_distance(sender.lat, sender.lon, other.lat, other.lon)
            bearing = calc_bearing(sender.lat, sender.lon, other.lat, other.lon)

            if "DMO_ON" in flags and reason == REASON_DMO_ON:
                text = f"{sender.call} state change, DMO=on"
                event = f"dmo_on {other.tsi}"
            elif "DMO_OFF" in flags and reason == REASON_DMO_OFF:
                text = f"{sender.call} state change, DMO=off"
                event = f"dmo_off {other.tsi}"
            elif ("PROXIMITY" in flags and (other.lat or other.lon)
                    and distance <= self.config.proximity_warning):
                text = (f"{sender.call} state change, Dist:{distance:.1f}km, "
                        f"Bear:{bearing:.0f}°")
                event = f"proximity_info {other.tsi} {distance:.1f} {bearing:.0f}"
            else:
                continue

            self.events.process_event(event)
            logger.info(f"Sending info SDS to {other.tsi}: {text}")
            self.queue.enqueue(Sds(tsi=other.tsi, message=text, remark="InfoSds"))
            other.sent_last_sds = now

    def _check_payload(self, kind: MessageKind, line: str) -> None:
        """The line after a header is its payload, whatever it was classified as."""
        if self._header is None or kind == MessageKind.SDS_HEADER or kind.is_sds_payload:
            return
        logger.warning(f"Unknown type of SDS from {self._header.from_tsi}: {line}")
        self._header = None
        self.events.process_event("unknown_sds_received")

    def _on_ok(self, line: str) -> None:
        if self.queue.has_unsent and not self.core.state.in_transmission:
            self.queue.dispatch()
