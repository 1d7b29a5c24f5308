"""
Main TetraRadio class.

User-facing API that coordinates all feature managers.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from .config import PeiConfig
from .core import EventDispatcher, PeiCore, SerialTransport, Transport
from .core.events import EventCallback, InfoCallback
from .features import CallTracker, NetworkManager, SdsManager, SdsQueue, UserDirectory
from .types import PeiState

logger = logging.getLogger(__name__)


class TetraRadio:
    """
    Main interface for a TETRA radio on its PEI.

    Provides the driver through feature managers:

    - calls: Group calls, QSO tracking, local transmissions
    - sds: Received SDS, confirmations, SDS submission
    - sds_queue: Outbound SDS delivery
    - network: Identity check, DMO gateways/repeaters, AI mode
    - users: Known TETRA users

    Example usage with async context manager:

    .. code-block:: python

        config = load_config("tetra.json")
        async with TetraRadio(config) as radio:
            radio.register_event_callback(
                "text_sds_received", lambda event: print(event)
            )
            radio.sds.send_text("09011638300023404", "Hello")
            await asyncio.sleep(3600)

    Example usage with manual lifecycle management:

    .. code-block:: python

        radio = TetraRadio(config)
        await radio.open()
        radio.start()
        # ... use radio ...
        radio.close()
    """

    def __init__(
        self,
        config: PeiConfig,
        transport: Optional[Transport] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        dtmf_injector: Optional[Callable[[str], None]] = None,
        on_squelch: Optional[Callable[[bool], None]] = None,
        on_disconnect: Optional[Callable[[Exception], None]] = None,
        log_events: bool = False,
        clock: Callable[[], float] = time.time
    ) -> None:
        """
        Initialize TetraRadio.

        Args:
            config: Validated configuration
            transport: Custom transport instance (for testing). A
                       SerialTransport on config.port is created if None.
            loop: Event loop (defaults to the running loop)
            dtmf_injector: Receives "<digits>#" for configured state SDS
            on_squelch: Called with True/False when reception starts/stops
            on_disconnect: Called when the device disconnects.
                          Signature: callback(exception: Exception) -> None
            log_events: Log events at INFO level instead of DEBUG
            clock: Wall clock for SDS and user timestamps

        Raises:
            RuntimeError: If loop is None and no event loop is running
        """
        if transport is None:
            transport = SerialTransport(port=config.port, baudrate=config.baudrate)
            logger.info(f"Created serial transport for {config.port}")

        self.config = config
        self.loop = loop or asyncio.get_running_loop()

        self._core = PeiCore(
            transport=transport,
            loop=self.loop,
            events=EventDispatcher(log_events=log_events),
            on_disconnect=on_disconnect,
            **config.protocol_options()
        )

        self.users = UserDirectory(default_icon=config.default_aprs_icon, clock=clock)
        self.users.load_configured(config.users)

        self.sds_queue = SdsQueue(
            state=self._core.state,
            send=self._core.send_command,
            events=self._core.events,
            retention=config.sds_retention,
            source=config.callsign,
            clock=clock,
            loop=self.loop,
            confirm_timeout=config.sds_confirm_timeout
        )
        self.calls = CallTracker(
            self._core,
            self.users,
            self.sds_queue,
            mcc=config.mcc,
            mnc=config.mnc,
            gssi=config.gssi,
            info_sds=config.info_sds,
            source=config.callsign,
            on_squelch=on_squelch,
            clock=clock
        )
        self.sds = SdsManager(
            self._core,
            self.users,
            self.sds_queue,
            config,
            dtmf_injector=dtmf_injector,
            clock=clock
        )
        self.network = NetworkManager(
            self._core,
            mcc=config.mcc,
            mnc=config.mnc,
            issi=config.issi,
            clock=clock
        )

        self._core.protocol.add_ready_callback(self._on_ready)

        logger.info("Initialized TetraRadio")

    @property
    def core(self) -> PeiCore:
        return self._core

    @property
    def state(self) -> PeiState:
        """Shared connection state."""
        return self._core.state

    @property
    def events(self) -> EventDispatcher:
        return self._core.events

    async def open(self) -> None:
        """
        Open the transport.

        Raises:
            TransportError: If the serial port cannot be opened
        """
        await self._core.transport.open(self.loop)

    def start(self) -> None:
        """Start PEI initialization."""
        self._core.start()

    def close(self) -> None:
        """Send the end command, stop timers and close the transport."""
        self.sds_queue.reset_pending()
        self._core.close()

    def register_event_callback(self, prefix: str, callback: EventCallback) -> None:
        """
        Register a callback for events matching a prefix.

        Example:

        .. code-block:: python

            radio.register_event_callback("groupcall_begin", print)
        """
        self._core.events.register_callback(prefix, callback)

    def register_info_callback(self, callback: InfoCallback) -> None:
        """Register a callback for info records (name, json_text)."""
        self._core.events.register_info_callback(callback)

    def send_command(self, cmd: str) -> None:
        """Send a raw command to the PEI."""
        self._core.send_command(cmd)

    def transmitter_state_changed(self, is_transmitting: bool) -> None:
        """Key or unkey the radio; see CallTracker.transmitter_state_changed."""
        self.calls.transmitter_state_changed(is_transmitting)

    def squelch_open(self, is_open: bool) -> None:
        """Report the squelch state; ignored while transmitting."""
        self.calls.squelch_open(is_open)

    def update_users(self, json_text: str) -> int:
        """Import a TetraUsers:info record list; see UserDirectory.update_from_json."""
        return self.users.update_from_json(json_text)

    def _on_ready(self) -> None:
        self._core.events.publish_info("TetraUsers:info", self.users.snapshot())
        self.sds_queue.reset_pending()
        self.sds_queue.dispatch()

    async def __aenter__(self):
        """Async context manager entry."""
        await self.open()
        self.start()
        return self

    async def __aexit__(self, *exc):
        """Async context manager exit."""
        self.close()
