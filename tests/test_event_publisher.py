import json
import threading

import pytest

from exgate.adapters.event_publisher_inmemory import InMemoryEventPublisher
from exgate.core.models.event import (
    create_extension_failure_event,
    create_extension_installed_event,
    create_extension_uninstalled_event,
)


class TestEventFactory:
    def test_installed_event(self):
        event = create_extension_installed_event("binding-hue")
        assert event.type == "ExtensionEvent"
        assert event.topic == "smarthome/extensions/binding-hue/installed"
        assert json.loads(event.payload) == ["binding-hue"]
        assert not event.is_failure

    def test_uninstalled_event(self):
        event = create_extension_uninstalled_event("binding-hue")
        assert event.topic == "smarthome/extensions/binding-hue/uninstalled"

    def test_failure_event_carries_message(self):
        event = create_extension_failure_event("X", "download failed")
        assert event.is_failure
        assert event.extension_id == "X"
        assert json.loads(event.payload) == ["X", "download failed"]

    def test_empty_id_is_rejected(self):
        with pytest.raises(ValueError):
            create_extension_installed_event("")


class TestInMemoryEventPublisher:
    def test_history_and_filter(self):
        publisher = InMemoryEventPublisher()
        publisher.post(create_extension_installed_event("a"))
        publisher.post(create_extension_installed_event("b"))

        assert [e.extension_id for e in publisher.events()] == ["a", "b"]
        assert [e.extension_id for e in publisher.events("b")] == ["b"]

    def test_history_is_bounded(self):
        publisher = InMemoryEventPublisher(max_history=2)
        for ext_id in ("a", "b", "c"):
            publisher.post(create_extension_installed_event(ext_id))

        assert [e.extension_id for e in publisher.events()] == ["b", "c"]

    def test_subscribers_receive_events_until_unsubscribed(self):
        publisher = InMemoryEventPublisher()
        received = []
        unsubscribe = publisher.subscribe(received.append)

        publisher.post(create_extension_installed_event("a"))
        unsubscribe()
        publisher.post(create_extension_installed_event("b"))

        assert [e.extension_id for e in received] == ["a"]

    def test_failing_subscriber_does_not_block_others(self, caplog):
        publisher = InMemoryEventPublisher()
        received = []

        def broken(event):
            raise RuntimeError("subscriber down")

        publisher.subscribe(broken)
        publisher.subscribe(received.append)

        with caplog.at_level("ERROR", logger="exgate"):
            publisher.post(create_extension_installed_event("a"))

        assert len(received) == 1
        assert "subscriber down" in caplog.text

    def test_wait_for_event_from_other_thread(self):
        publisher = InMemoryEventPublisher()
        timer = threading.Timer(0.05, publisher.post, args=(create_extension_failure_event("x", "m"),))
        timer.start()

        event = publisher.wait_for(lambda e: e.extension_id == "x", timeout=5)

        assert event is not None and event.message == "m"

    def test_wait_for_times_out(self):
        publisher = InMemoryEventPublisher()
        assert publisher.wait_for(lambda e: True, timeout=0.05) is None
