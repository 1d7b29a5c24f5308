"""
Classification of PEI lines.

Every line received from the PEI gets exactly one MessageKind. Command
results ("+CTICN:", "+CMGS:", ...) and the hex payload lines of an SDS
arrive on the same channel, so the rules are tried in a fixed order and
the more specific hex patterns come before the status SDS catch-all.
"""

import re
import logging
from typing import Optional, Pattern

from ..types import MessageKind, ProtocolStatus

logger = logging.getLogger(__name__)

# Ordered (pattern, kind) rules; first match wins
DEFAULT_RULES: list[tuple[str, MessageKind]] = [
    (r'^OK', MessageKind.OK),
    (r'^\+CME ERROR', MessageKind.ERROR),
    (r'^ERROR', MessageKind.ERROR),
    (r'^\+CTSDSR:', MessageKind.SDS_HEADER),
    (r'^\+CTICN:', MessageKind.CALL_BEGIN),
    (r'^\+CTCR:', MessageKind.CALL_RELEASED),
    (r'^\+CTCC:', MessageKind.CALL_CONNECT),
    (r'^\+CDTXC:', MessageKind.TRANSMISSION_END),
    (r'^\+CTXG:', MessageKind.TRANSMISSION_GRANT),
    (r'^\+CTXD:', MessageKind.TX_DEMAND),
    (r'^\+CTXI:', MessageKind.TX_INTERRUPT),
    (r'^\+CTXW:', MessageKind.TX_WAIT),
    (r'^\+CTOM: [0-9]$', MessageKind.OP_MODE),
    (r'^\+CMGS:', MessageKind.CMGS_ACK),
    (r'^\+CNUMF:', MessageKind.CNUMF),
    (r'^\+CTGS:', MessageKind.CTGS),
    (r'^\+CTDGR:', MessageKind.CTDGR),
    (r'^\+CLVL:', MessageKind.CLVL),
    (r'^02', MessageKind.SIMPLE_TEXT_SDS),
    (r'^0A[0-9A-F]{20}', MessageKind.LIP_SDS),
    (r'^0C', MessageKind.CONCAT_SDS),
    (r'^8204', MessageKind.TEXT_SDS),
    (r'^821000', MessageKind.ACK_SDS),
    (r'^[89A-F][0-9A-F]{3}$', MessageKind.STATE_SDS),
]

_STATUS_FALLBACK = {
    ProtocolStatus.OK: MessageKind.OK,
    ProtocolStatus.ERROR: MessageKind.ERROR,
}


class MessageClassifier:
    """
    Maps a PEI line to a MessageKind.

    Example:

    .. code-block:: python

        classifier = MessageClassifier()
        classifier.classify("+CTXG: 1,3,0,0,3,09011638300023404")
        # MessageKind.TRANSMISSION_GRANT
    """

    def __init__(self, rules: Optional[list[tuple[str, MessageKind]]] = None) -> None:
        """
        Initialize classifier.

        Args:
            rules: Ordered (regex, kind) pairs (defaults to DEFAULT_RULES)
        """
        self._rules: list[tuple[Pattern[str], MessageKind]] = [
            (re.compile(pattern), kind)
            for pattern, kind in (rules if rules is not None else DEFAULT_RULES)
        ]

    def classify(
        self,
        line: str,
        status: ProtocolStatus = ProtocolStatus.UNINITIALIZED
    ) -> MessageKind:
        """
        Classify a line.

        Args:
            line: Line received from the PEI
            status: Current protocol status, used when no rule matches

        Returns:
            Kind of the first matching rule. Without a match, the kind of
            the last command outcome (OK or ERROR) or INVALID.
        """
        for pattern, kind in self._rules:
            if pattern.match(line):
                return kind

        fallback = _STATUS_FALLBACK.get(status, MessageKind.INVALID)
        logger.debug(f"No rule for line {line!r}, using {fallback.name}")
        return fallback
