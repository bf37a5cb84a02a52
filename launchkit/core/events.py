"""
In-process publish/subscribe bridge to the UI layer.

The bootstrap pipeline publishes its progress lines and final result here;
the UI subscribes to them and publishes the kill request back.
"""

import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

START_LOG_EVENT = "integrated-server-start-log"
READY_EVENT = "integrated-server-ready"
KILL_EVENT = "kill-integrated-server"
KILLED_EVENT = "integrated-server-killed"

Handler = Callable[[Any], None]


class EventBus:
    """Thread-safe topic based publish/subscribe."""

    def __init__(self) -> None:
        self._subs: Dict[str, List[Tuple[str, Handler]]] = {}
        self._lock = threading.Lock()
        self._next_id = 0

    def subscribe(self, topic: str, handler: Handler) -> str:
        """
        Subscribe handler to topic.

        Returns:
            handler id for unsubscribe()
        """
        with self._lock:
            self._next_id += 1
            handler_id = f"h{self._next_id}"
            self._subs.setdefault(topic, []).append((handler_id, handler))
        return handler_id

    def unsubscribe(self, topic: str, handler_id: str) -> bool:
        """Remove a handler by id. Returns True if removed."""
        with self._lock:
            handlers = self._subs.get(topic, [])
            kept = [(hid, h) for hid, h in handlers if hid != handler_id]
            if len(kept) == len(handlers):
                return False
            if kept:
                self._subs[topic] = kept
            else:
                self._subs.pop(topic, None)
        return True

    def publish(self, topic: str, payload: Any = None) -> None:
        """
        Deliver payload to every handler of topic.

        A failing handler is logged and skipped; the publisher is never interrupted.
        """
        with self._lock:
            handlers = list(self._subs.get(topic, []))

        for handler_id, handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception(f"Event handler {handler_id} failed for '{topic}'")


class LogSink:
    """
    Forward human-readable pipeline progress to the log and the UI.

    Example:
        >>> sink = LogSink(bus)
        >>> sink.send("Fetching JVM data...")
    """

    def __init__(self, bus: Optional[EventBus] = None, topic: str = START_LOG_EVENT):
        self.bus = bus
        self.topic = topic

    def send(self, payload: Any) -> None:
        logger.info(json.dumps(payload))
        if self.bus is not None:
            self.bus.publish(self.topic, payload)

    __call__ = send
