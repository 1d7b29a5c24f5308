"""
Outbound SDS delivery queue.

Sends at most one SDS at a time. An entry is submitted when the radio is
initialized and idle, then the queue waits for the +CMGS status report
before the next one goes out. Failed entries are sent again; entries older
than the retention time are dropped. Without a status report within the
confirmation timeout the entry is sent again.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from ..core.events import EventDispatcher
from ..core.timers import Timer
from ..parsers.sds import create_sds, create_raw_sds, create_cfm_sds, get_issi
from ..types import CmgsReport, Direction, PeiState, Sds, SdsSendStatus, SdsType
from ..exceptions import SdsError

logger = logging.getLogger(__name__)


class SdsQueue:
    """
    Single-flight SDS queue.

    Example:

    .. code-block:: python

        queue = SdsQueue(state, core.send_command, events)
        queue.enqueue(Sds(tsi="09011638300023404", message="Hello"))
        # ... radio answers "+CMGS: 0" and later "+CMGS: 0,4,65"
        queue.handle_cmgs(CmgsReport(instance=0, status=4, reference=65))
    """

    def __init__(
        self,
        state: PeiState,
        send: Callable[[str], None],
        events: EventDispatcher,
        retention: float = 3600.0,
        source: str = "",
        clock: Callable[[], float] = time.time,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        confirm_timeout: float = 60.0
    ) -> None:
        """
        Initialize SDS queue.

        Args:
            state: Shared connection state, decides if sending is possible
            send: Sends a complete command string to the PEI
            events: Dispatcher for Sds:info delivery records
            retention: Seconds a submitted entry is kept before it is dropped
            source: Gateway callsign used in info records
            clock: Time source for tos/tod
            loop: Event loop for the confirmation timer; no timer if None
            confirm_timeout: Seconds to wait for the +CMGS status report
        """
        self.state = state
        self.retention = retention
        self.source = source
        self.last_instance = 0

        self._send = send
        self._events = events
        self._clock = clock
        self._entries: list[Sds] = []
        self._pending: Optional[Sds] = None
        self._awaiting = False
        self._next_reference = 1
        self._confirm_timer: Optional[Timer] = None
        if loop is not None:
            self._confirm_timer = Timer(loop, confirm_timeout, self._on_confirm_timeout,
                                        "sds confirm")

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[Sds]:
        """Queued entries, oldest first."""
        return list(self._entries)

    @property
    def pending(self) -> Optional[Sds]:
        """Entry submitted last and not confirmed yet."""
        return self._pending

    @property
    def awaiting_confirmation(self) -> bool:
        """Check if a status report is outstanding."""
        return self._awaiting

    @property
    def has_unsent(self) -> bool:
        """Check if an outgoing entry waits for submission."""
        return any(self._is_unsent(e) for e in self._entries)

    def enqueue(self, sds: Sds) -> int:
        """
        Queue an SDS and try to send.

        Text entries without a message reference get the next one.

        Returns:
            Number of queued entries
        """
        sds.tos = 0.0
        if sds.kind == SdsType.TEXT and sds.id == 0:
            sds.id = self._take_reference()

        self._entries.append(sds)
        logger.debug(f"Queued SDS to {sds.tsi} ({sds.kind.value}, {sds.remark or 'no remark'})")

        self.dispatch()
        return len(self._entries)

    def dispatch(self) -> None:
        """
        Drop expired entries and send the next one if possible.
        """
        now = self._clock()
        self._drop_expired(now)

        if self._awaiting:
            logger.debug("SDS status report outstanding, not sending")
            return

        while True:
            entry = next((e for e in self._entries if self._is_unsent(e)), None)
            if entry is None:
                return

            if not self.state.channel_free:
                logger.info(f"MS not ready, trying to send SDS to {entry.tsi} later")
                return

            try:
                cmd = self._encode(entry)
            except SdsError as e:
                logger.error(f"Dropping SDS to {entry.tsi}: {e}")
                self._entries.remove(entry)
                continue

            entry.tries += 1
            entry.tos = now
            self._pending = entry
            self._awaiting = True
            logger.info(f"Sending SDS ({entry.kind.value}) to {entry.tsi} "
                        f"\"{entry.message}\", tries: {entry.tries}")
            self._send(cmd)
            if self._confirm_timer is not None:
                self._confirm_timer.start()
            return

    def handle_cmgs(self, report: CmgsReport) -> None:
        """
        Process a +CMGS result.

        The set result ("+CMGS: <instance>") only says the MS accepted the
        SDS; the status report ("+CMGS: <instance>,<status>,<ref>") says if
        it went out over the air.
        """
        if not report.is_status_report:
            logger.debug(f"SDS accepted by MS, instance {report.instance}")
            self.last_instance = report.instance
            return

        pending = self._pending
        if pending is None:
            logger.debug(f"Status report for instance {report.instance} without pending SDS")
        elif report.instance != self.last_instance:
            logger.warning(
                f"Status report for instance {report.instance}, expected "
                f"{self.last_instance}; sending SDS to {pending.tsi} again"
            )
            pending.tos = 0.0
        elif report.status == SdsSendStatus.SEND_OK:
            pending.tod = self._clock()
            if pending in self._entries:
                self._entries.remove(pending)
            logger.info(f"SDS to {pending.tsi} sent OK, #{report.reference}")
            self._events.publish_info("Sds:info", [{
                "source": self.source,
                "tsi": pending.tsi,
                "type": pending.kind.value,
                "id": pending.id,
                "tries": pending.tries,
                "tod": str(int(pending.tod)),
            }])
        else:
            if report.status == SdsSendStatus.SEND_FAILED:
                logger.error(f"Sending SDS to {pending.tsi} failed, will send again")
            else:
                logger.warning(f"Unknown SDS status {report.status}, sending SDS to {pending.tsi} again")
            pending.tos = 0.0

        self._release()
        self.last_instance = report.instance
        self.dispatch()

    def reset_pending(self) -> None:
        """Requeue an unconfirmed entry, e.g. after the radio was re-initialized."""
        pending = self._pending
        if pending is not None and pending in self._entries and pending.tod == 0.0:
            logger.info(f"Requeueing unconfirmed SDS to {pending.tsi}")
            pending.tos = 0.0
        self._release()

    def clear(self) -> int:
        """
        Drop all entries.

        Returns:
            Number of entries dropped
        """
        count = len(self._entries)
        self._entries.clear()
        self._release()
        return count

    def _release(self) -> None:
        self._pending = None
        self._awaiting = False
        if self._confirm_timer is not None:
            self._confirm_timer.cancel()

    def _on_confirm_timeout(self) -> None:
        if self._pending is None:
            return
        logger.warning(f"No status report for SDS to {self._pending.tsi}, sending again")
        self.reset_pending()
        self.dispatch()

    def _drop_expired(self, now: float) -> None:
        expired = [
            e for e in self._entries
            if e.tos != 0.0 and now - e.tos > self.retention
        ]
        for entry in expired:
            logger.warning(f"Dropping SDS to {entry.tsi} after {entry.tries} tries (expired)")
            self._entries.remove(entry)
            if entry is self._pending:
                self._release()

    def _take_reference(self) -> int:
        ref = self._next_reference
        self._next_reference = ref % 255 + 1
        return ref

    @staticmethod
    def _is_unsent(entry: Sds) -> bool:
        return entry.direction == Direction.OUTGOING and entry.tos == 0.0

    @staticmethod
    def _encode(entry: Sds) -> str:
        try:
            issi = get_issi(entry.tsi)
        except ValueError as e:
            raise SdsError(f"Invalid TSI {entry.tsi!r}") from e

        if entry.kind == SdsType.ACK:
            return create_cfm_sds(issi, entry.message)
        if entry.kind == SdsType.RAW:
            return create_raw_sds(issi, entry.message)
        return create_sds(issi, entry.message, entry.id, entry.coding)
