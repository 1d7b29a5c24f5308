"""
User directory.

Keeps every TETRA subscriber the gateway has seen or was configured with,
keyed by normalized 17 digit TSI. Entries are created on first contact and
never removed.
"""

import json
import logging
import math
import time
from typing import Callable, Dict, Iterator, Optional

from ..types import User

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0


def calc_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points using Haversine formula.

    Args:
        lat1: First point latitude in decimal degrees
        lon1: First point longitude in decimal degrees
        lat2: Second point latitude in decimal degrees
        lon2: Second point longitude in decimal degrees

    Returns:
        Distance in kilometres
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = lat2_rad - lat1_rad
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2)
    c = 2 * math.asin(math.sqrt(a))

    return EARTH_RADIUS_KM * c


def calc_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Initial bearing from the first point to the second.

    Returns:
        Bearing in degrees, 0 = north, clockwise, in [0, 360)
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlon = math.radians(lon2 - lon1)

    x = math.sin(dlon) * math.cos(lat2_rad)
    y = (math.cos(lat1_rad) * math.sin(lat2_rad) -
         math.sin(lat1_rad) * math.cos(lat2_rad) * math.cos(dlon))

    return (math.degrees(math.atan2(x, y)) + 360.0) % 360.0


class UserDirectory:
    """
    Table of known users.

    Example:

    .. code-block:: python

        users = UserDirectory(default_icon="/e")
        users.load_configured({"09011638300023404": {"call": "DL1ABC"}})
        user = users.get("09011638300023404")
    """

    def __init__(
        self,
        default_icon: str = "/e",
        clock: Callable[[], float] = time.time
    ) -> None:
        """
        Initialize user directory.

        Args:
            default_icon: APRS symbol and table of new users ("/e")
            clock: Time source for last_activity
        """
        self.default_sym = default_icon[0]
        self.default_tab = default_icon[1]
        self._clock = clock
        self._users: Dict[str, User] = {}

    def __len__(self) -> int:
        return len(self._users)

    def __contains__(self, tsi: str) -> bool:
        return tsi in self._users

    def __iter__(self) -> Iterator[User]:
        return iter(list(self._users.values()))

    def get(self, tsi: str) -> Optional[User]:
        """Look up a user by TSI."""
        return self._users.get(tsi)

    def add(self, user: User) -> User:
        """Insert or replace a user."""
        self._users[user.tsi] = user
        return user

    def create_default(self, tsi: str) -> User:
        """
        Create an entry for a subscriber seen for the first time.

        Returns:
            The new user with the "NoCall"/"NoName" profile
        """
        user = User(tsi=tsi, aprs_sym=self.default_sym, aprs_tab=self.default_tab)
        self._users[tsi] = user
        logger.info(f"New user {tsi}")
        return user

    def touch(self, tsi: str) -> Optional[User]:
        """Set last_activity of a known user to now."""
        user = self._users.get(tsi)
        if user is not None:
            user.last_activity = self._clock()
        return user

    def load_configured(self, users: Dict[str, Dict[str, str]]) -> int:
        """
        Add users from the configuration.

        Args:
            users: TSI -> {"call", "name", "aprs", "comment"}

        Returns:
            Number of users added
        """
        for tsi, entry in users.items():
            aprs = entry.get("aprs", self.default_sym + self.default_tab)
            self.add(User(
                tsi=tsi,
                call=entry.get("call", "NoCall"),
                name=entry.get("name", "NoName"),
                aprs_sym=aprs[0],
                aprs_tab=aprs[1],
                comment=entry.get("comment", "NN"),
            ))
        logger.debug(f"Loaded {len(users)} configured users")
        return len(users)

    def snapshot(self) -> list[dict]:
        """Directory as a TetraUsers:info record list."""
        return [user.to_dict() for user in self._users.values()]

    def update_from_json(self, text: str) -> int:
        """
        Import a TetraUsers:info record list, e.g. received from a reflector.

        Existing entries with the same TSI are replaced; runtime state
        (position, last activity) is kept.

        Args:
            text: JSON array of {"tsi", "call", "name", "sym", "tab", "comment"}

        Returns:
            Number of users imported (0 if the JSON is invalid)
        """
        try:
            records = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing TetraUsers:info message: {e}")
            return 0

        if not isinstance(records, list):
            logger.error("TetraUsers:info message is not a list")
            return 0

        count = 0
        for record in records:
            if not isinstance(record, dict):
                continue
            tsi = str(record.get("tsi", ""))
            if not tsi:
                continue
            old = self._users.get(tsi)
            user = User(
                tsi=tsi,
                call=record.get("call", ""),
                name=record.get("name", ""),
                aprs_sym=_icon_char(record.get("sym"), self.default_sym),
                aprs_tab=_icon_char(record.get("tab"), self.default_tab),
                comment=record.get("comment", ""),
            )
            if old is not None:
                user.last_activity = old.last_activity
                user.sent_last_sds = old.sent_last_sds
                user.lat, user.lon = old.lat, old.lon
                user.state = old.state
                user.reason_for_sending = old.reason_for_sending
            self._users[tsi] = user
            logger.debug(f"tsi:{tsi},call={user.call},name={user.name},comment={user.comment}")
            count += 1

        logger.info(f"Imported {count} users")
        return count


def _icon_char(value, default: str) -> str:
    # Older peers send the character code as int
    if isinstance(value, int):
        return chr(value)
    if isinstance(value, str) and value:
        return value[0]
    return default
