"""
Text coding for SDS text messages.

Implements the text coding schemes an MS uses for SDS-TL text messages:
- 0x00: 7-bit alphabet (GSM 03.38, septets packed into octets)
- 0x01: ISO/IEC 8859-1 Latin 1, one octet per character

The payload travels over the PEI as a hex string, so the public functions
work on hex text rather than bytes.
"""

import logging
from typing import Optional

from ..exceptions import SdsError

logger = logging.getLogger(__name__)

CODING_7BIT = 0x00
CODING_LATIN1 = 0x01

GSM7_ESCAPE = 0x1B

# GSM 7-bit default alphabet, indexed by septet value
GSM7_BASIC = (
    "@£$¥èéùìòÇ\nØø\rÅåΔ_ΦΓΛΩΠΨΣΘΞ\x1bÆæßÉ !\"#¤%&'()*+,-./0123456789:;<=>?"
    "¡ABCDEFGHIJKLMNOPQRSTUVWXYZÄÖÑÜ§¿abcdefghijklmnopqrstuvwxyzäöñüà"
)

# Extension table, reached through the escape septet
GSM7_EXTENDED = {
    "\f": 0x0A,
    "^": 0x14,
    "{": 0x28,
    "}": 0x29,
    "\\": 0x2F,
    "[": 0x3C,
    "~": 0x3D,
    "]": 0x3E,
    "|": 0x40,
    "€": 0x65,
}

GSM7_EXTENDED_REV = {v: k for k, v in GSM7_EXTENDED.items()}

_GSM7_INDEX = {char: i for i, char in enumerate(GSM7_BASIC) if i != GSM7_ESCAPE}


def gsm7_septets(text: str) -> list[int]:
    """
    Map text to GSM 7-bit septet values.

    Extension characters take two septets (escape + code).

    Raises:
        SdsError: If text contains a character outside the alphabet
    """
    septets = []
    for char in text:
        if char in _GSM7_INDEX:
            septets.append(_GSM7_INDEX[char])
        elif char in GSM7_EXTENDED:
            septets.extend((GSM7_ESCAPE, GSM7_EXTENDED[char]))
        else:
            raise SdsError(f"Character {char!r} not in GSM 7-bit alphabet")
    return septets


def gsm7_length(text: str) -> int:
    """Number of septets text occupies in the 7-bit alphabet."""
    return len(gsm7_septets(text))


def pack_septets(septets: list[int]) -> bytes:
    """
    Pack septets into octets, first septet in the low bits.

    Example:

    .. code-block:: python

        pack_septets([0x68, 0x65, 0x6C, 0x6C, 0x6F]).hex()  # "e8329bfd06"
    """
    value = 0
    for i, septet in enumerate(septets):
        value |= (septet & 0x7F) << (7 * i)
    return value.to_bytes((7 * len(septets) + 7) // 8, "little")


def unpack_septets(data: bytes, count: int) -> list[int]:
    """Read count septets from packed octets."""
    value = int.from_bytes(data, "little")
    return [(value >> (7 * i)) & 0x7F for i in range(count)]


def decode_gsm7(data: bytes, septets: Optional[int] = None) -> str:
    """
    Decode packed 7-bit data to text.

    Args:
        data: Packed octets
        septets: Number of septets in data. If None it is guessed from the
                 octet count and a zero septet filling the last octet is
                 taken as padding, so a trailing '@' can be lost.

    Returns:
        Decoded text; unknown extension codes become '?'
    """
    values = unpack_septets(data, len(data) * 8 // 7 if septets is None else septets)
    if septets is None and values and len(data) * 8 % 7 == 0 and values[-1] == 0:
        values.pop()
    elif septets is not None and septets * 7 > len(data) * 8:
        raise SdsError(f"{septets} septets do not fit into {len(data)} octets")

    text = []
    escaped = False
    for septet in values:
        if escaped:
            text.append(GSM7_EXTENDED_REV.get(septet, "?"))
            escaped = False
        elif septet == GSM7_ESCAPE:
            escaped = True
        else:
            text.append(GSM7_BASIC[septet])
    return "".join(text)


def encode_text(text: str, coding: int = CODING_LATIN1) -> str:
    """
    Encode text to an upper-case hex string.

    Args:
        text: Message text
        coding: CODING_LATIN1 or CODING_7BIT

    Returns:
        Hex string, two digits per octet

    Raises:
        SdsError: If a character cannot be represented in the coding
    """
    if coding == CODING_7BIT:
        return pack_septets(gsm7_septets(text)).hex().upper()

    try:
        return text.encode("latin-1").hex().upper()
    except UnicodeEncodeError as e:
        raise SdsError(f"Text not representable in Latin 1: {text!r}") from e


def text_bits(text: str, coding: int = CODING_LATIN1) -> int:
    """Exact length of the encoded text in bits, without fill bits."""
    if coding == CODING_7BIT:
        return 7 * gsm7_length(text)
    return 8 * len(text)


def decode_text(hex_text: str, coding: int = CODING_LATIN1, bits: Optional[int] = None) -> str:
    """
    Decode a hex string to text.

    A trailing odd hex digit is ignored. Unknown codings are decoded as
    Latin 1.

    Args:
        hex_text: Hex digits of the text part of the SDS
        coding: Text coding scheme from the SDS header
        bits: Length of the text in bits, if known. Needed to tell a
              trailing '@' from fill bits in 7-bit text.

    Returns:
        Decoded text

    Raises:
        SdsError: If hex_text holds non-hex characters
    """
    even = hex_text[:len(hex_text) - (len(hex_text) % 2)]
    try:
        data = bytes.fromhex(even)
    except ValueError as e:
        raise SdsError(f"Text payload is not hex: {hex_text!r}") from e

    if coding == CODING_7BIT:
        septets = None if bits is None else min(bits // 7, len(data) * 8 // 7)
        return decode_gsm7(data, septets)

    if coding != CODING_LATIN1:
        logger.warning(f"Unsupported text coding scheme {coding}, decoding as Latin 1")

    return data.decode("latin-1")
