"""
Line assembly for the PEI byte stream.

The serial port delivers bytes in arbitrary chunks; the PEI answers in
CRLF-terminated lines.
"""

import logging

logger = logging.getLogger(__name__)

LINE_TERMINATOR = b"\r\n"


class LineAssembler:
    """
    Splits incoming bytes into CRLF-terminated lines.

    Chunks may split a line anywhere, including between CR and LF. A
    partial trailing line stays buffered until the rest arrives.

    Example:

    .. code-block:: python

        assembler = LineAssembler()
        assembler.feed(b"+CTXG: 1,3,0,0,3,09011638")  # []
        assembler.feed(b"300023404\\r\\nOK\\r\\n")
        # [b"+CTXG: 1,3,0,0,3,09011638300023404", b"OK"]
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, data: bytes) -> list[bytes]:
        """
        Append a chunk and return the lines it completes.

        Args:
            data: Bytes as read from the transport

        Returns:
            Complete lines without terminator, oldest first. Empty lines
            (bare CRLF) are included.
        """
        self._buffer.extend(data)

        lines = []
        while True:
            idx = self._buffer.find(LINE_TERMINATOR)
            if idx < 0:
                break
            lines.append(bytes(self._buffer[:idx]))
            del self._buffer[:idx + len(LINE_TERMINATOR)]

        return lines

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet terminated."""
        return len(self._buffer)

    def clear(self) -> None:
        """Discard buffered bytes."""
        if self._buffer:
            logger.debug(f"Discarding {len(self._buffer)} buffered bytes")
        self._buffer.clear()
