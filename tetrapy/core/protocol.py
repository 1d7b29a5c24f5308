"""
PEI protocol handler.

Sends commands to the radio, runs the initialization sequence and watches
the link with a command timer and an activity (keep-alive) timer.
"""

import asyncio
import logging
from collections import deque
from typing import Callable, Optional

from .timers import Timer
from .transport import Transport
from .events import EventDispatcher
from ..types import InitPhase, PeiState, ProtocolStatus
from ..parsers.pei import IntResultParser, PEI_ERRORS, describe
from ..exceptions import PeiParseError, PeiTimeoutError, TransportError

logger = logging.getLogger(__name__)

SDS_TERMINATOR = "\x1a"
IDENTITY_QUERY = "AT+CNUMF?"
KEEPALIVE_COMMAND = "AT"


class PeiProtocol:
    """
    PEI command and initialization state machine.

    Phases:
    - AWAITING_FIRST_COMMAND: radio woken up, waiting for the break timer
    - INIT: configured commands go out one per OK/ERROR, then AT+CNUMF?
    - INIT_COMPLETE: radio ready
    - CHECK_KEEPALIVE: "AT" sent after a quiet period, waiting for OK

    Every timer runs on the event loop; nothing here blocks.
    """

    def __init__(
        self,
        transport: Transport,
        state: PeiState,
        loop: asyncio.AbstractEventLoop,
        events: EventDispatcher,
        init_commands: Optional[list[str]] = None,
        end_command: Optional[str] = None,
        command_timeout: float = 2.0,
        activity_timeout: float = 10.0,
        startup_delay: float = 3.0,
        init_spacing: float = 0.1
    ) -> None:
        """
        Initialize PEI protocol handler.

        Args:
            transport: Transport instance for communication
            state: Shared connection state
            loop: Event loop providing call_later() and time()
            events: Dispatcher for pei_init_finished / peiCom_timeout
            init_commands: Commands sent in order during initialization
            end_command: Command sent by stop(), if any
            command_timeout: Seconds to wait for any answer to a command
            activity_timeout: Quiet seconds before a keep-alive "AT"
            startup_delay: Seconds between wake-up and first init command
            init_spacing: Minimum seconds between two init commands
        """
        self.transport = transport
        self.state = state
        self.loop = loop
        self.events = events
        self.init_commands = list(init_commands or [])
        self.end_command = end_command
        self.init_spacing = init_spacing
        self.startup_delay = startup_delay

        self._command_timer = Timer(loop, command_timeout, self._on_command_timeout, "command")
        self._activity_timer = Timer(loop, activity_timeout, self._on_activity_timeout, "activity")
        self._break_timer = Timer(loop, startup_delay, self._on_break_timeout, "break")

        self._pending_init: deque[str] = deque()
        self._identity_requested = False
        self._last_send = 0.0
        self._last_command: Optional[str] = None
        self._ready_callbacks: list[Callable[[], None]] = []
        self._cme_parser = IntResultParser("+CME ERROR:")

        logger.debug("Initialized PEI protocol handler")

    def add_ready_callback(self, callback: Callable[[], None]) -> None:
        """
        Register a callback run each time initialization completes.

        Args:
            callback: Called without arguments
        """
        self._ready_callbacks.append(callback)

    @property
    def is_ready(self) -> bool:
        """Check if initialization has completed."""
        return self.state.phase in (InitPhase.INIT_COMPLETE, InitPhase.CHECK_KEEPALIVE)

    def start(self) -> None:
        """
        Start (or restart) initialization.

        Wakes the radio with an empty line and arms the break timer; the
        first init command goes out when it expires.
        """
        logger.info("Starting PEI initialization")
        self.transport.write(b"\r\n")
        self.state.phase = InitPhase.AWAITING_FIRST_COMMAND
        self._identity_requested = False
        self._break_timer.start(self.startup_delay)
        self._activity_timer.start()

    def stop(self) -> None:
        """Send the end command if configured and cancel all timers."""
        if self.end_command and self.transport.is_open():
            try:
                self.send_command(self.end_command)
            except TransportError as e:
                logger.warning(f"Could not send end command: {e}")
        self._command_timer.cancel()
        self._activity_timer.cancel()
        self._break_timer.cancel()
        logger.info("PEI protocol stopped")

    def send_command(self, cmd: str) -> None:
        """
        Send a command to the PEI.

        A CR is appended unless the command is an SDS terminated by 0x1A.
        Arms the command timer.

        Args:
            cmd: Command (e.g., "AT+CTOM?")

        Raises:
            TransportError: If the write fails
        """
        if not cmd.endswith(SDS_TERMINATOR):
            cmd += "\r"

        logger.debug(f"To PEI: {cmd!r}")
        self.transport.write(cmd.encode("latin-1"))
        self._last_command = cmd.strip()
        self._last_send = self.loop.time()
        self._command_timer.start()

    def on_data_received(self) -> None:
        """Any byte from the radio proves the link is alive."""
        self._command_timer.cancel()
        self._activity_timer.start()

    def handle_ok(self) -> None:
        """Process an OK result."""
        self.state.status = ProtocolStatus.OK

        if self.state.phase == InitPhase.INIT:
            self._next_init_step()
        elif self.state.phase == InitPhase.CHECK_KEEPALIVE:
            self.state.phase = InitPhase.INIT_COMPLETE

    def handle_error(self, line: str) -> None:
        """
        Process an ERROR or +CME ERROR result.

        During initialization the next command still goes out.
        """
        self.state.status = ProtocolStatus.ERROR

        if line.startswith(self._cme_parser.prefix):
            try:
                code = self._cme_parser.parse(line)
                logger.error(f"PEI error {code}: {describe(PEI_ERRORS, code)} "
                             f"(command: {self._last_command})")
            except PeiParseError:
                logger.error(f"PEI error: {line} (command: {self._last_command})")
        else:
            logger.error(f"PEI returned ERROR (command: {self._last_command})")

        if self.state.phase == InitPhase.INIT:
            self._next_init_step()

    def _next_init_step(self) -> None:
        if self._identity_requested:
            self._complete_init()
            return

        elapsed = self.loop.time() - self._last_send
        if elapsed < self.init_spacing:
            self._break_timer.start(self.init_spacing - elapsed)
            return

        self._send_next_init()

    def _send_next_init(self) -> None:
        if self._pending_init:
            self.send_command(self._pending_init.popleft())
        else:
            self._identity_requested = True
            self.send_command(IDENTITY_QUERY)

    def _complete_init(self) -> None:
        self._identity_requested = False
        self.state.phase = InitPhase.INIT_COMPLETE
        logger.info("PEI initialization finished")
        self.events.process_event("pei_init_finished")

        for callback in list(self._ready_callbacks):
            callback()

    def _on_break_timeout(self) -> None:
        if self.state.phase == InitPhase.AWAITING_FIRST_COMMAND:
            self.state.phase = InitPhase.INIT
            self._pending_init = deque(self.init_commands)
            self._identity_requested = False
            logger.debug(f"Sending {len(self._pending_init)} init commands")
            self._send_next_init()
        elif self.state.phase == InitPhase.INIT:
            self._send_next_init()

    def _on_command_timeout(self) -> None:
        error = PeiTimeoutError("No answer from PEI", command=self._last_command)
        logger.error(f"{error}, restarting initialization")
        self.state.status = ProtocolStatus.TIMEOUT
        self.events.process_event("peiCom_timeout")
        self.start()

    def _on_activity_timeout(self) -> None:
        if self.is_ready:
            self.send_command(KEEPALIVE_COMMAND)
            self.state.phase = InitPhase.CHECK_KEEPALIVE
        self._activity_timer.start()
