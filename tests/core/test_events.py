"""
Unit tests for the event bus and log sink.
"""

import logging
import threading

from launchkit.core.events import (
    START_LOG_EVENT,
    EventBus,
    LogSink,
)


class TestEventBus:
    """Test publish/subscribe."""

    def test_publish_reaches_subscribers(self):
        bus = EventBus()
        received = []
        bus.subscribe("topic", received.append)
        bus.subscribe("topic", lambda payload: received.append(payload.upper()))

        bus.publish("topic", "hello")

        assert received == ["hello", "HELLO"]

    def test_publish_without_subscribers(self):
        EventBus().publish("nobody-listens", {"a": 1})

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        handler_id = bus.subscribe("topic", received.append)

        assert bus.unsubscribe("topic", handler_id) is True
        assert bus.unsubscribe("topic", handler_id) is False

        bus.publish("topic", "ignored")
        assert received == []

    def test_failing_handler_is_skipped(self, caplog):
        bus = EventBus()
        received = []

        def broken(_payload):
            raise RuntimeError("ui went away")

        bus.subscribe("topic", broken)
        bus.subscribe("topic", received.append)

        with caplog.at_level(logging.ERROR, logger="launchkit.core.events"):
            bus.publish("topic", "still delivered")

        assert received == ["still delivered"]
        assert "failed for 'topic'" in caplog.text

    def test_concurrent_subscribe_ids_unique(self):
        bus = EventBus()
        ids = []

        def subscribe_many():
            for _ in range(100):
                ids.append(bus.subscribe("topic", lambda payload: None))

        threads = [threading.Thread(target=subscribe_many) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(set(ids)) == 400


class TestLogSink:
    """Test the progress log bridge."""

    def test_send_logs_and_publishes(self, caplog):
        bus = EventBus()
        received = []
        bus.subscribe(START_LOG_EVENT, received.append)
        sink = LogSink(bus)

        with caplog.at_level(logging.INFO, logger="launchkit.core.events"):
            sink("Fetching JVM data...")

        assert received == ["Fetching JVM data..."]
        assert '"Fetching JVM data..."' in caplog.text

    def test_send_without_bus(self, caplog):
        with caplog.at_level(logging.INFO, logger="launchkit.core.events"):
            LogSink().send("Server ready")

        assert "Server ready" in caplog.text
