"""
Feature managers for radio functionality.

Provides high-level managers for different PEI capabilities:
- CallTracker: Group calls, QSO tracking, local transmissions
- UserDirectory: Known TETRA users
- SdsQueue: Single-flight outbound SDS delivery
- SdsManager: SDS reception, confirmations, injection
- NetworkManager: Identity, DMO gateways/repeaters, AI mode
"""

from .users import UserDirectory, calc_distance, calc_bearing
from .sds_queue import SdsQueue
from .calls import CallTracker
from .sds import SdsManager
from .network import NetworkManager

__all__ = [
    "UserDirectory",
    "calc_distance",
    "calc_bearing",
    "SdsQueue",
    "CallTracker",
    "SdsManager",
    "NetworkManager",
]
