"""
Transport layer abstraction for PEI communication.

Provides abstractions for serial communication with dependency injection support.
Received bytes are pushed to a receiver callable on the event loop; nothing
here blocks.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

import serial
import serial_asyncio
from serial import SerialException

from ..exceptions import TransportError, DeviceDisconnectedError

logger = logging.getLogger(__name__)

# Type aliases for transport callbacks
Receiver = Callable[[bytes], None]
DisconnectCallback = Callable[[Exception], None]


class Transport(ABC):
    """Abstract base class for PEI transport."""

    def __init__(self) -> None:
        self._receiver: Optional[Receiver] = None
        self._on_disconnect: Optional[DisconnectCallback] = None

    def set_receiver(
        self,
        receiver: Receiver,
        on_disconnect: Optional[DisconnectCallback] = None
    ) -> None:
        """
        Register the consumer of received bytes.

        Args:
            receiver: Called with every chunk of bytes received
            on_disconnect: Called once when the device goes away.
                           Signature: callback(exception: Exception) -> None
        """
        self._receiver = receiver
        self._on_disconnect = on_disconnect

    async def open(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Open the transport. Transports that are ready on construction do nothing."""
        pass

    def _deliver(self, data: bytes) -> None:
        if self._receiver is not None:
            self._receiver(data)
        else:
            logger.debug(f"No receiver, dropping {len(data)} bytes")

    def _disconnected(self, error: Exception) -> None:
        if self._on_disconnect is not None:
            self._on_disconnect(error)

    @abstractmethod
    def write(self, data: bytes) -> int:
        """
        Write data to the transport.

        Args:
            data: Bytes to write

        Returns:
            Number of bytes written

        Raises:
            TransportError: If write fails
        """
        pass

    @abstractmethod
    def is_open(self) -> bool:
        """Check if transport is open."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the transport."""
        pass


class _SerialProtocol(asyncio.Protocol):
    """Bridges pyserial-asyncio callbacks to a SerialTransport."""

    def __init__(self, owner: "SerialTransport") -> None:
        self._owner = owner

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._owner._transport = transport

    def data_received(self, data: bytes) -> None:
        logger.debug(f"Read {len(data)} bytes: {data}")
        self._owner._deliver(data)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self._owner._transport = None
        if self._owner._closing:
            return
        logger.error(f"Device disconnected: {exc}")
        self._owner._disconnected(DeviceDisconnectedError(
            f"Serial device disconnected: {exc}",
            response=[str(exc)]
        ))


class SerialTransport(Transport):
    """
    Serial port transport on the asyncio event loop.

    The port is opened 8N1 with hardware flow control, as TETRA radios
    expect on their PEI.

    Example:

    .. code-block:: python

        transport = SerialTransport("/dev/ttyUSB0", baudrate=115200)
        await transport.open()
    """

    def __init__(
        self,
        port: str,
        baudrate: int = 115200,
        rtscts: bool = True
    ) -> None:
        """
        Initialize serial transport (port not opened yet).

        Args:
            port: Serial port path (e.g., /dev/ttyUSB0)
            baudrate: Baud rate for serial communication
            rtscts: Enable RTS/CTS hardware flow control
        """
        super().__init__()
        self.port = port
        self.baudrate = baudrate
        self.rtscts = rtscts
        self._transport: Optional[asyncio.Transport] = None
        self._closing = False

    async def open(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """
        Open the serial port.

        Raises:
            TransportError: If serial port cannot be opened
        """
        loop = loop or asyncio.get_running_loop()
        self._closing = False
        try:
            await serial_asyncio.create_serial_connection(
                loop,
                lambda: _SerialProtocol(self),
                self.port,
                baudrate=self.baudrate,
                bytesize=serial.EIGHTBITS,
                parity=serial.PARITY_NONE,
                stopbits=serial.STOPBITS_ONE,
                rtscts=self.rtscts
            )
            logger.info(f"Opened serial port {self.port} at {self.baudrate} baud")
        except SerialException as e:
            logger.error(f"Failed to open serial port {self.port}: {e}")
            raise TransportError(f"Failed to open serial port {self.port}: {e}") from e

    def write(self, data: bytes) -> int:
        """Write data to serial port."""
        if self._transport is None:
            raise DeviceDisconnectedError(
                f"Serial port {self.port} is not open",
                response=["port closed"]
            )
        try:
            self._transport.write(data)
            logger.debug(f"Wrote {len(data)} bytes: {data}")
            return len(data)
        except SerialException as e:
            logger.error(f"Serial write failed: {e}")
            raise TransportError(f"Serial write failed: {e}") from e

    def is_open(self) -> bool:
        """Check if serial port is open."""
        return self._transport is not None and not self._transport.is_closing()

    def close(self) -> None:
        """Close the serial port."""
        if self._transport is not None:
            self._closing = True
            self._transport.close()
            self._transport = None
            logger.info(f"Closed serial port {self.port}")


class MockTransport(Transport):
    """
    Mock transport for testing.

    Records every write and lets a test push device output with feed().
    """

    def __init__(self) -> None:
        """Initialize mock transport."""
        super().__init__()
        self._open = True
        self.writes: list[bytes] = []
        logger.info("Initialized MockTransport")

    def write(self, data: bytes) -> int:
        """Record written data."""
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response=["MockTransport closed"]
            )

        logger.debug(f"Mock write: {data}")
        self.writes.append(data)
        return len(data)

    def feed(self, data: bytes) -> None:
        """
        Simulate bytes arriving from the device.

        Args:
            data: Raw bytes, delivered to the receiver synchronously
        """
        if not self._open:
            raise DeviceDisconnectedError(
                "MockTransport is closed (simulating device disconnection)",
                response=["MockTransport closed"]
            )
        self._deliver(data)

    def feed_lines(self, *lines: str) -> None:
        """Feed each line CRLF-terminated (convenience for tests)."""
        self.feed("".join(f"{line}\r\n" for line in lines).encode("latin-1"))

    def written_text(self) -> list[str]:
        """All writes decoded as latin-1, oldest first."""
        return [w.decode("latin-1") for w in self.writes]

    def clear_writes(self) -> None:
        """Forget recorded writes (useful for testing)."""
        self.writes.clear()

    def disconnect(self) -> None:
        """Simulate the device going away."""
        self._open = False
        self._disconnected(DeviceDisconnectedError(
            "MockTransport disconnected",
            response=["MockTransport closed"]
        ))

    def is_open(self) -> bool:
        """Check if mock transport is open."""
        return self._open

    def close(self) -> None:
        """Close mock transport."""
        self._open = False
        logger.info("Closed MockTransport")
