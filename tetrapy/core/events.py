"""
Event dispatcher.

Delivers named events ("groupcall_begin 23404 1", "tx_grant", ...) and
structured info records ("QsoInfo:state", "Sds:info", ...) to registered
callbacks, and keeps a bounded history of recent events.
"""

import json
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional

logger = logging.getLogger(__name__)

# Type aliases for event callbacks
EventCallback = Callable[[str], None]
InfoCallback = Callable[[str, str], None]


class EventDispatcher:
    """
    Dispatches driver events to callbacks.

    Features:
    - Bounded history to prevent memory issues
    - Callback registration by event name prefix
    - Info records serialized to single-line JSON
    - Error handling for misbehaving callbacks
    """

    def __init__(
        self,
        max_history: int = 1000,
        log_events: bool = False
    ) -> None:
        """
        Initialize event dispatcher.

        Args:
            max_history: Maximum number of events to keep
            log_events: Whether to log events at INFO level
        """
        self.log_events = log_events
        self._history: Deque[str] = deque(maxlen=max_history)

        # Callback registry: prefix -> callback function
        self._callbacks: Dict[str, EventCallback] = {}
        self._info_callbacks: list[InfoCallback] = []

        logger.debug(f"Initialized event dispatcher (max_history={max_history})")

    def register_callback(self, prefix: str, callback: EventCallback) -> None:
        """
        Register a callback for events matching a prefix.

        Args:
            prefix: Event name prefix to match ("" matches every event)
            callback: Function to call when the event is raised.
                     Signature: callback(event: str) -> None

        Example:

        .. code-block:: python

            events.register_callback(
                "text_sds_received", lambda event: print(f"SDS: {event}")
            )
        """
        self._callbacks[prefix] = callback
        logger.debug(f"Registered event callback for prefix: {prefix!r}")

    def unregister_callback(self, prefix: str) -> bool:
        """
        Unregister an event callback.

        Returns:
            True if callback was removed, False if not found
        """
        if prefix in self._callbacks:
            del self._callbacks[prefix]
            logger.debug(f"Unregistered event callback for prefix: {prefix!r}")
            return True
        return False

    def register_info_callback(self, callback: InfoCallback) -> None:
        """
        Register a callback for info records.

        Args:
            callback: Signature: callback(name: str, json_text: str) -> None
        """
        self._info_callbacks.append(callback)

    def process_event(self, event: str) -> None:
        """
        Raise an event.

        Adds it to the history and dispatches to matching callbacks.

        Args:
            event: Event name followed by its space separated arguments
        """
        if self.log_events:
            logger.info(f"Event: {event}")
        else:
            logger.debug(f"Event: {event}")

        self._history.append(event)

        for prefix, callback in list(self._callbacks.items()):
            if not event.startswith(prefix):
                continue
            try:
                callback(event)
            except Exception as e:
                logger.error(f"Event callback for '{prefix}' failed: {e}", exc_info=True)

    def publish_info(self, name: str, records: Any) -> str:
        """
        Publish an info record.

        Args:
            name: Record name (e.g., "QsoInfo:state")
            records: JSON-serializable data

        Returns:
            The record as single-line JSON
        """
        text = json.dumps(records, separators=(",", ":"))
        logger.debug(f"Info {name}: {text}")

        for callback in list(self._info_callbacks):
            try:
                callback(name, text)
            except Exception as e:
                logger.error(f"Info callback for '{name}' failed: {e}", exc_info=True)

        return text

    def get_history(self) -> list[str]:
        """
        Get a copy of the event history.

        Returns:
            List of events (oldest first)
        """
        return list(self._history)

    def last_event(self) -> Optional[str]:
        """Most recent event or None."""
        return self._history[-1] if self._history else None

    def clear_history(self) -> int:
        """
        Clear the event history.

        Returns:
            Number of events that were cleared
        """
        count = len(self._history)
        self._history.clear()
        return count
