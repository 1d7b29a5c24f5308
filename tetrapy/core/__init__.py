"""
Core PEI infrastructure.

Provides low-level building blocks for PEI communication:
- Transport: Serial communication abstraction
- LineAssembler: CRLF line framing
- Timer: Restartable one-shot timers on the event loop
- PeiProtocol: Command sending and initialization
- EventDispatcher: Event and info record callbacks
- PeiCore: Coordination of all core components
"""

from .transport import Transport, SerialTransport, MockTransport
from .assembler import LineAssembler
from .timers import Timer
from .protocol import PeiProtocol
from .events import EventDispatcher, EventCallback, InfoCallback
from .pei_core import PeiCore, LineHandler

__all__ = [
    "Transport",
    "SerialTransport",
    "MockTransport",
    "LineAssembler",
    "Timer",
    "PeiProtocol",
    "EventDispatcher",
    "EventCallback",
    "InfoCallback",
    "PeiCore",
    "LineHandler",
]
