"""
Base parser classes and utilities.

Provides reusable parsing functionality for PEI result codes.
"""

import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional

from ..exceptions import PeiParseError

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LineParser(ABC, Generic[T]):
    """
    Abstract base class for line parsers.

    Parsers convert a single raw PEI line into a typed data structure.
    """

    prefix: str = ""

    @abstractmethod
    def parse(self, line: str) -> T:
        """
        Parse a PEI line.

        Args:
            line: Line received from the PEI, without CRLF

        Returns:
            Parsed data structure

        Raises:
            PeiParseError: If the line cannot be parsed
        """
        pass

    def strip_prefix(self, line: str) -> str:
        """Remove "+CMD: " from the start of a line if present."""
        if self.prefix and line.startswith(self.prefix):
            return line[len(self.prefix):].strip()
        return line.strip()


class FieldReader:
    """
    Sequential reader for comma-separated PEI parameters.

    Example:

    .. code-block:: python

        reader = FieldReader("1,13")
        instance = reader.next_int()
        cause = reader.next_int()
    """

    def __init__(self, text: str, line: Optional[str] = None):
        """
        Initialize reader.

        Args:
            text: Parameter list (prefix already removed)
            line: Complete line, only used for error context
        """
        self._fields = [f.strip() for f in text.split(",")] if text else []
        self._pos = 0
        self._line = line if line is not None else text

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def remaining(self) -> int:
        """Number of fields not read yet."""
        return len(self._fields) - self._pos

    def next_str(self, default: Optional[str] = None) -> str:
        """Read the next field as a string, quotes removed."""
        if self._pos >= len(self._fields):
            if default is not None:
                return default
            raise PeiParseError(
                f"Missing field #{self._pos + 1}",
                response=[self._line]
            )
        value = self._fields[self._pos].strip('"')
        self._pos += 1
        return value

    def next_int(self, default: Optional[int] = None) -> int:
        """Read the next field as a decimal integer."""
        value = self.next_str("" if default is not None else None)
        if value == "" and default is not None:
            return default
        try:
            return int(value)
        except ValueError as e:
            raise PeiParseError(
                f"Field #{self._pos} is not a number: {value!r}",
                response=[self._line]
            ) from e


def hex_to_int(value: str) -> int:
    """
    Convert a hex string to an integer.

    Raises:
        PeiParseError: If value is empty or not hex
    """
    try:
        return int(value, 16)
    except ValueError as e:
        raise PeiParseError(f"Not a hex value: {value!r}", response=[value]) from e
