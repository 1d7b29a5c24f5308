"""
Core PEI class coordinating transport, protocol, and event handling.

This is the foundation that feature managers build upon.
"""

import asyncio
import logging
from typing import Callable, Optional

from .assembler import LineAssembler
from .events import EventDispatcher
from .protocol import PeiProtocol
from .transport import Transport
from ..parsers.classifier import MessageClassifier
from ..types import MessageKind, PeiState
from ..exceptions import PeiParseError

logger = logging.getLogger(__name__)

# Type alias for line handlers
LineHandler = Callable[[str], None]


class PeiCore:
    """
    Core PEI functionality.

    Coordinates:
    - Transport layer (serial communication)
    - Line assembly and classification
    - Protocol layer (commands, initialization, timers)
    - Handler registry (one or more handlers per MessageKind)
    - Event dispatching

    Feature managers register handlers for the kinds they own and send
    commands through send_command().
    """

    def __init__(
        self,
        transport: Transport,
        loop: asyncio.AbstractEventLoop,
        state: Optional[PeiState] = None,
        events: Optional[EventDispatcher] = None,
        classifier: Optional[MessageClassifier] = None,
        on_disconnect: Optional[Callable[[Exception], None]] = None,
        **protocol_options
    ) -> None:
        """
        Initialize PEI core.

        Args:
            transport: Transport instance for communication
            loop: Event loop for timers
            state: Shared connection state (created if None)
            events: Event dispatcher (created if None)
            classifier: Line classifier (default rules if None)
            on_disconnect: Optional callback for disconnection events
            **protocol_options: Passed to PeiProtocol (init_commands,
                command_timeout, activity_timeout, ...)
        """
        self.transport = transport
        self.loop = loop
        self.state = state or PeiState()
        self.events = events or EventDispatcher()
        self.classifier = classifier or MessageClassifier()
        self.assembler = LineAssembler()
        self.protocol = PeiProtocol(
            transport, self.state, loop, self.events, **protocol_options
        )

        self._handlers: dict[MessageKind, list[LineHandler]] = {}
        self._observers: list[Callable[[MessageKind, str], None]] = []
        self._on_disconnect = on_disconnect
        self._disconnected = False
        self._running = False

        transport.set_receiver(self._on_data, self._handle_disconnect)

        logger.info("Initialized PeiCore")

    def register_handler(self, kind: MessageKind, handler: LineHandler) -> None:
        """
        Register a handler for lines of one kind.

        Handlers run in registration order.

        Args:
            kind: MessageKind to handle
            handler: Called with the line. May raise PeiParseError for a
                     malformed line; the line is then discarded.
        """
        self._handlers.setdefault(kind, []).append(handler)

    def register_observer(self, observer: Callable[[MessageKind, str], None]) -> None:
        """
        Register a callback that sees every line with its kind.

        Observers run before the handlers of the line's kind.
        """
        self._observers.append(observer)

    def start(self) -> None:
        """Start PEI initialization."""
        if self._running:
            logger.warning("PeiCore already started")
            return
        self._disconnected = False
        self._running = True
        self.protocol.start()

    def stop(self) -> None:
        """Stop timers (sends the end command if configured)."""
        if not self._running:
            return
        self._running = False
        self.protocol.stop()

    def close(self) -> None:
        """Stop and close the transport."""
        logger.info("Closing PEI connection")
        self.stop()
        self.transport.close()
        self.assembler.clear()

    def send_command(self, cmd: str) -> None:
        """
        Send a command to the PEI.

        This is a convenience wrapper around protocol.send_command().
        """
        self.protocol.send_command(cmd)

    def is_running(self) -> bool:
        """Check if the core was started and not stopped."""
        return self._running

    def is_disconnected(self) -> bool:
        """Check if the device was disconnected during operation."""
        return self._disconnected

    def _on_data(self, data: bytes) -> None:
        self.protocol.on_data_received()

        for raw in self.assembler.feed(data):
            line = raw.decode("latin-1").strip()
            if not line:
                continue
            self._route_line(line)

    def _route_line(self, line: str) -> None:
        """
        Classify a line and hand it to protocol and handlers.

        Args:
            line: Line without CRLF
        """
        logger.debug(f"From PEI: {line}")
        kind = self.classifier.classify(line, self.state.status)

        if kind == MessageKind.OK:
            self.protocol.handle_ok()
        elif kind == MessageKind.ERROR:
            self.protocol.handle_error(line)

        for observer in self._observers:
            observer(kind, line)

        handlers = self._handlers.get(kind, [])
        if not handlers and kind == MessageKind.INVALID:
            logger.debug(f"Unknown PEI message, ignoring: {line}")
            return

        for handler in handlers:
            try:
                handler(line)
            except PeiParseError as e:
                logger.warning(f"Discarding malformed {kind.name} line: {e}")

    def _handle_disconnect(self, error: Exception) -> None:
        logger.error(f"Device disconnected: {error}")
        self._disconnected = True
        self.stop()
        if self._on_disconnect:
            self._on_disconnect(error)
