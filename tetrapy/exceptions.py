"""
Exceptions for the tetrapy library.

Provides detailed error information for debugging PEI communication issues.
"""

from typing import Optional


class TetraError(Exception):
    """
    Base exception for TETRA PEI errors.

    All tetrapy exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        response: Optional[list[str]] = None
    ) -> None:
        """
        Initialize exception with context.

        Args:
            message: Error description
            command: PEI command that caused the error (if applicable)
            response: Device response lines (if applicable)
        """
        self.command = command
        self.response = response
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with context."""
        parts = [super().__str__()]

        if self.command:
            parts.append(f"Command: {self.command}")

        if self.response:
            parts.append(f"Response: {self.response}")

        return " | ".join(parts)


class PeiTimeoutError(TetraError):
    """
    Raised when the device does not answer a command in time.

    This typically indicates:
    - Radio switched off or in a menu
    - Serial connection issue
    """
    pass


class PeiParseError(TetraError):
    """
    Raised when a line from the PEI cannot be parsed.

    This indicates:
    - Line shorter than the minimum valid length
    - Missing expected fields
    - Non-numeric or non-hex data where a number is expected
    """
    pass


class TransportError(TetraError):
    """
    Raised when the transport layer fails.

    This indicates:
    - Serial port issues
    - Connection lost
    """
    pass


class DeviceDisconnectedError(TransportError):
    """
    Raised when the device is disconnected during operation.

    The driver has to be restarted with a fresh transport.
    """
    pass


class SdsError(TetraError):
    """
    Raised when an SDS cannot be built or queued.

    This indicates:
    - Text longer than the device accepts
    - Destination ISSI too long
    - Raw payload that is not hex
    - Malformed injection line
    """
    pass


class ConfigError(TetraError):
    """
    Raised when the configuration is missing a value or holds an invalid one.
    """
    pass
