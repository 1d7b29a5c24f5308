"""
Pytest configuration and fixtures.

Provides shared test fixtures for tetrapy tests. Timers run on a FakeLoop
whose clock only moves when a test calls advance().
"""

import pytest
import logging

from tetrapy.core import MockTransport, PeiCore
from tetrapy import TetraRadio, PeiConfig


# Enable logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

OWN_TSI = "09011638300023401"
USER_TSI = "09011638300023404"
OTHER_TSI = "09011638300023405"


class FakeHandle:
    """Stand-in for asyncio.TimerHandle."""

    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """
    Minimal event loop with a manual clock.

    Only provides what the driver uses: call_later() and time().
    """

    def __init__(self, start=1_000_000.0):
        self._now = start
        self._handles = []

    def time(self):
        return self._now

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self._now + delay, callback, args)
        self._handles.append(handle)
        return handle

    def advance(self, seconds):
        """Move the clock forward, running every callback that becomes due."""
        target = self._now + seconds
        while True:
            due = [h for h in self._handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self._now = max(self._now, handle.when)
            handle.callback(*handle.args)
        self._now = target
        self._handles = [h for h in self._handles if not h.cancelled]

    def pending(self):
        """Number of armed callbacks."""
        return len([h for h in self._handles if not h.cancelled])


class FakeClock:
    """Wall clock replacement; tests set or advance .now."""

    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def complete_init(radio, transport, loop):
    """
    Run a radio through its initialization sequence.

    Answers every init command and the identity query with OK.
    """
    radio.start()
    loop.advance(radio.config.startup_delay)
    for _ in radio.config.init_commands:
        transport.feed_lines("OK")
        loop.advance(radio.config.init_spacing)
    transport.feed_lines(f"+CNUMF: 6,{OWN_TSI}", "OK")
    transport.clear_writes()


@pytest.fixture
def mock_transport():
    """
    Create a MockTransport instance for testing.

    Example:
        def test_something(mock_transport):
            mock_transport.feed_lines("OK")
            # ... test code ...
    """
    transport = MockTransport()
    yield transport
    transport.close()


@pytest.fixture
def loop():
    """FakeLoop driven by the test."""
    return FakeLoop()


@pytest.fixture
def clock():
    """FakeClock used as wall clock for SDS and user timestamps."""
    return FakeClock()


@pytest.fixture
def config():
    """
    Create a PeiConfig for a gateway with ISSI 23401 and one known user.
    """
    return PeiConfig(
        issi="23401",
        mcc="901",
        mnc="16383",
        callsign="DB0TST",
        init_commands=["ATE0", "AT+CTOM=6,0"],
        users={
            USER_TSI: {"call": "DL1ABC", "name": "Adi", "aprs": "/e", "comment": "mobile"},
        },
    )


@pytest.fixture
def pei_core(mock_transport, loop, config):
    """
    Create a PeiCore instance with MockTransport.

    Example:
        def test_ok(pei_core, mock_transport):
            pei_core.start()
            mock_transport.feed_lines("OK")
    """
    core = PeiCore(transport=mock_transport, loop=loop, **config.protocol_options())
    yield core
    core.close()


@pytest.fixture
def radio(mock_transport, loop, clock, config):
    """
    Create a TetraRadio instance with MockTransport (not started).

    Example:
        def test_state_sds(radio, mock_transport, loop):
            complete_init(radio, mock_transport, loop)
            mock_transport.feed_lines("+CTSDSR: 13,23404,0,23401,0,16", "8002")
    """
    radio_instance = TetraRadio(config, transport=mock_transport, loop=loop, clock=clock)
    yield radio_instance
    radio_instance.close()


@pytest.fixture
def ready_radio(radio, mock_transport, loop):
    """TetraRadio that finished initialization; recorded writes are cleared."""
    complete_init(radio, mock_transport, loop)
    return radio
