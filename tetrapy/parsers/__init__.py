"""
Parsers for PEI lines and SDS payloads.

Provides type-safe parsing of radio output into structured data.
"""

from .base import LineParser, FieldReader, hex_to_int
from .classifier import MessageClassifier, DEFAULT_RULES
from .pei import (
    CallBeginParser,
    CallReleaseParser,
    SdsHeaderParser,
    CmgsParser,
    CnumfParser,
    CtdgrParser,
    IntResultParser,
    GroupSelectParser,
)

__all__ = [
    "LineParser",
    "FieldReader",
    "hex_to_int",
    "MessageClassifier",
    "DEFAULT_RULES",
    "CallBeginParser",
    "CallReleaseParser",
    "SdsHeaderParser",
    "CmgsParser",
    "CnumfParser",
    "CtdgrParser",
    "IntResultParser",
    "GroupSelectParser",
]
