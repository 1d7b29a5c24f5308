"""
Tests for transport layer and line assembly.
"""

import random

import pytest
from tetrapy.core import MockTransport, SerialTransport, LineAssembler
from tetrapy.exceptions import DeviceDisconnectedError, TetraError


def test_mock_transport_write():
    """Test MockTransport write operation."""
    transport = MockTransport()

    written = transport.write(b"AT\r")
    assert written == 3
    assert transport.writes == [b"AT\r"]
    assert transport.written_text() == ["AT\r"]

    transport.close()


def test_mock_transport_feed_delivers_to_receiver():
    """Test fed bytes reach the receiver unchanged."""
    transport = MockTransport()
    received = []
    transport.set_receiver(received.append)

    transport.feed(b"+CTOM: 1\r\n")
    transport.feed_lines("OK", "+CLVL: 3")

    assert received == [b"+CTOM: 1\r\n", b"OK\r\n+CLVL: 3\r\n"]

    transport.close()


def test_mock_transport_without_receiver():
    """Test feeding without a receiver drops the data."""
    transport = MockTransport()
    transport.feed(b"OK\r\n")  # Must not raise
    transport.close()


def test_mock_transport_write_after_close():
    """Test writing to a closed transport raises."""
    transport = MockTransport()
    transport.close()

    assert transport.is_open() is False
    with pytest.raises(DeviceDisconnectedError):
        transport.write(b"AT\r")


def test_mock_transport_disconnect_callback():
    """Test disconnect() reports a DeviceDisconnectedError."""
    transport = MockTransport()
    errors = []
    transport.set_receiver(lambda data: None, errors.append)

    transport.disconnect()

    assert len(errors) == 1
    assert isinstance(errors[0], DeviceDisconnectedError)
    assert isinstance(errors[0], TetraError)
    assert transport.is_open() is False


def test_mock_transport_clear_writes():
    """Test recorded writes can be forgotten."""
    transport = MockTransport()
    transport.write(b"AT\r")
    transport.clear_writes()
    assert transport.writes == []


def test_serial_transport_not_opened():
    """Test SerialTransport before open()."""
    transport = SerialTransport("/dev/null-tetra", baudrate=9600)

    assert transport.is_open() is False
    assert transport.baudrate == 9600
    assert transport.rtscts is True
    with pytest.raises(DeviceDisconnectedError):
        transport.write(b"AT\r")

    transport.close()  # Closing an unopened port does nothing


def test_assembler_complete_lines():
    """Test several lines in one chunk."""
    assembler = LineAssembler()

    lines = assembler.feed(b"+CTOM: 1\r\nOK\r\n")

    assert lines == [b"+CTOM: 1", b"OK"]
    assert assembler.pending == 0


def test_assembler_split_chunks():
    """Test a line split over several chunks, including between CR and LF."""
    assembler = LineAssembler()

    assert assembler.feed(b"+CTXG: 1,3,0,0,3,09011638") == []
    assert assembler.feed(b"300023404\r") == []
    assert assembler.pending == len(b"+CTXG: 1,3,0,0,3,09011638300023404\r")
    assert assembler.feed(b"\nOK") == [b"+CTXG: 1,3,0,0,3,09011638300023404"]
    assert assembler.feed(b"\r\n") == [b"OK"]


STREAM = b"+CTSDSR: 12,23404,0,23401,0,112\r\n82040801476A61\r\n\r\nOK\r\n+CMGS: 0,4,1\r\n+CTX"
STREAM_LINES = [b"+CTSDSR: 12,23404,0,23401,0,112", b"82040801476A61", b"", b"OK", b"+CMGS: 0,4,1"]


@pytest.mark.parametrize("split", range(len(STREAM) + 1))
def test_assembler_any_split_point(split):
    """Test the same lines come out wherever the stream is cut in two."""
    assembler = LineAssembler()

    lines = assembler.feed(STREAM[:split]) + assembler.feed(STREAM[split:])

    assert lines == STREAM_LINES
    assert assembler.pending == len(b"+CTX")


@pytest.mark.parametrize("seed", range(25))
def test_assembler_random_chunks(seed):
    """Test random chunk sizes, down to single bytes, give the same lines."""
    rng = random.Random(seed)
    assembler = LineAssembler()
    lines = []
    pos = 0
    while pos < len(STREAM):
        size = rng.randint(1, 8)
        lines.extend(assembler.feed(STREAM[pos:pos + size]))
        pos += size

    assert lines == STREAM_LINES


def test_assembler_empty_lines():
    """Test bare CRLF yields empty lines."""
    assembler = LineAssembler()

    assert assembler.feed(b"\r\n\r\nOK\r\n") == [b"", b"", b"OK"]


def test_assembler_clear():
    """Test clear() drops a partial line."""
    assembler = LineAssembler()
    assembler.feed(b"+CTCR: 1")
    assembler.clear()

    assert assembler.pending == 0
    assert assembler.feed(b"OK\r\n") == [b"OK"]
