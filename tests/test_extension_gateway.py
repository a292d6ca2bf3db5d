"""Unit tests for ExtensionGateway.

Covers aggregation across services, type collation, owner resolution and the
asynchronous install/uninstall path with failure events.
"""

import threading
from typing import Dict, List, Optional

import pytest

from exgate.adapters.event_publisher_inmemory import InMemoryEventPublisher
from exgate.core.config import GatewayConfig
from exgate.core.exceptions import UnknownExtensionError
from exgate.core.interfaces.extension_service import ExtensionServicePort
from exgate.core.managers.extension_manager import ExtensionGateway
from exgate.core.models.extension import Extension, ExtensionType
from exgate.core.utils.locale import Locale


def ext(ext_id: str, type_: str = "binding") -> Extension:
    return Extension(id=ext_id, label=ext_id.upper(), type=type_)


class FakeExtensionService(ExtensionServicePort):
    """Extension service double recording every call it receives."""

    def __init__(
        self,
        extensions: List[Extension],
        types: Optional[List[ExtensionType]] = None,
        details: Optional[Dict[str, Optional[Extension]]] = None,
        install_error: Optional[Exception] = None,
    ):
        self.extensions = extensions
        self.types = types or []
        self.details = details
        self.install_error = install_error
        self.installed: List[str] = []
        self.uninstalled: List[str] = []
        self.listing_locales: List[Locale] = []
        self.done = threading.Event()

    def get_extensions(self, locale: Locale) -> List[Extension]:
        self.listing_locales.append(locale)
        return list(self.extensions)

    def get_types(self, locale: Locale) -> List[ExtensionType]:
        return list(self.types)

    def get_extension(self, extension_id: str, locale: Locale) -> Optional[Extension]:
        if self.details is not None:
            return self.details.get(extension_id)
        return next((e for e in self.extensions if e.id == extension_id), None)

    def install(self, extension_id: str) -> None:
        try:
            if self.install_error is not None:
                raise self.install_error
            self.installed.append(extension_id)
        finally:
            self.done.set()

    def uninstall(self, extension_id: str) -> None:
        self.uninstalled.append(extension_id)
        self.done.set()


@pytest.fixture
def gateway():
    gw = ExtensionGateway(GatewayConfig(default_locale="en", max_workers=2))
    yield gw
    gw.shutdown()


EN = Locale(language="en")
DE = Locale(language="de", region="DE")


class TestRegistry:
    def test_no_services_is_not_satisfied_and_lists_nothing(self, gateway):
        assert gateway.is_satisfied() is False
        assert gateway.get_extensions(EN) == []
        assert gateway.get_types(EN) == []

    def test_add_and_remove_service(self, gateway):
        service = FakeExtensionService([ext("a")])
        gateway.add_extension_service(service)
        assert gateway.is_satisfied() is True

        gateway.remove_extension_service(service)
        assert gateway.is_satisfied() is False

    def test_adding_same_service_twice_registers_once(self, gateway):
        service = FakeExtensionService([ext("a")])
        gateway.add_extension_service(service)
        gateway.add_extension_service(service)
        assert [e.id for e in gateway.get_extensions(EN)] == ["a"]

    def test_registration_during_aggregation_is_not_visible_to_running_iteration(self, gateway):
        late = FakeExtensionService([ext("late")])

        class RegisteringService(FakeExtensionService):
            def get_extensions(self, locale):
                gateway.add_extension_service(late)
                return super().get_extensions(locale)

        gateway.add_extension_service(RegisteringService([ext("a")]))

        first = gateway.get_extensions(EN)
        assert [e.id for e in first] == ["a"]
        # the late service shows up in the next snapshot
        assert [e.id for e in gateway.get_extensions(EN)] == ["a", "late"]


class TestQueries:
    def test_extensions_are_concatenated_in_service_order(self, gateway):
        gateway.add_extension_service(FakeExtensionService([ext("a"), ext("b")]))
        gateway.add_extension_service(FakeExtensionService([ext("c")]))

        assert [e.id for e in gateway.get_extensions(EN)] == ["a", "b", "c"]

    def test_extensions_are_not_deduplicated(self, gateway):
        gateway.add_extension_service(FakeExtensionService([ext("a")]))
        gateway.add_extension_service(FakeExtensionService([ext("a")]))

        assert [e.id for e in gateway.get_extensions(EN)] == ["a", "a"]

    def test_types_collapse_labels_equal_ignoring_case_and_accents(self, gateway):
        gateway.add_extension_service(
            FakeExtensionService([], types=[ExtensionType(id="light", label="Lighting")])
        )
        gateway.add_extension_service(
            FakeExtensionService(
                [],
                types=[
                    ExtensionType(id="lighting", label="lighting"),
                    ExtensionType(id="energy", label="Énergie"),
                    ExtensionType(id="energy2", label="energie"),
                    ExtensionType(id="bind", label="bindings"),
                ],
            )
        )

        types = gateway.get_types(EN)

        assert [t.label for t in types] == ["bindings", "Énergie", "Lighting"]
        # first service wins on collisions
        assert types[2].id == "light"

    def test_types_are_requested_with_callers_locale(self, gateway):
        class LocalizedService(FakeExtensionService):
            def get_types(self, locale):
                label = "Sprache" if locale.language == "de" else "Voice"
                return [ExtensionType(id="voice", label=label)]

        gateway.add_extension_service(LocalizedService([]))

        assert gateway.get_types(DE)[0].label == "Sprache"
        assert gateway.get_types(EN)[0].label == "Voice"

    def test_get_extension_delegates_to_owner(self, gateway):
        first = FakeExtensionService([ext("a")])
        second = FakeExtensionService([ext("b")])
        gateway.add_extension_service(first)
        gateway.add_extension_service(second)

        assert gateway.get_extension("b", EN).id == "b"
        assert gateway.get_extension_service("b") is second

    def test_get_extension_returns_none_when_owner_has_no_detail(self, gateway):
        gateway.add_extension_service(FakeExtensionService([ext("x")], details={"x": None}))

        assert gateway.get_extension("x", EN) is None

    def test_unknown_id_raises(self, gateway):
        gateway.add_extension_service(FakeExtensionService([ext("a")]))

        with pytest.raises(UnknownExtensionError) as excinfo:
            gateway.get_extension("UNKNOWN", EN)
        assert excinfo.value.extension_id == "UNKNOWN"
        assert "UNKNOWN" in str(excinfo.value)

    def test_resolution_uses_default_locale(self, gateway):
        service = FakeExtensionService([ext("a")])
        gateway.add_extension_service(service)

        gateway.get_extension("a", DE)

        assert service.listing_locales == [Locale(language="en")]


class TestLifecycle:
    def test_install_runs_on_background_thread(self, gateway):
        seen = {}

        class ThreadRecordingService(FakeExtensionService):
            def install(self, extension_id):
                seen["thread"] = threading.current_thread().name
                super().install(extension_id)

        service = ThreadRecordingService([ext("a")])
        gateway.add_extension_service(service)

        gateway.install("a").result(timeout=5)

        assert service.installed == ["a"]
        assert seen["thread"].startswith("extensionService")

    def test_uninstall_reaches_owner(self, gateway):
        owner = FakeExtensionService([ext("b")])
        gateway.add_extension_service(FakeExtensionService([ext("a")]))
        gateway.add_extension_service(owner)

        gateway.uninstall("b").result(timeout=5)

        assert owner.uninstalled == ["b"]

    def test_install_failure_is_published_not_raised(self, gateway):
        publisher = InMemoryEventPublisher()
        gateway.set_event_publisher(publisher)
        gateway.add_extension_service(
            FakeExtensionService([ext("X")], install_error=RuntimeError("disk full"))
        )

        future = gateway.install("X")

        assert future.result(timeout=5) is None
        events = publisher.events("X")
        assert len(events) == 1
        assert events[0].topic == "smarthome/extensions/X/failed"
        assert events[0].message == "disk full"

    def test_failure_message_is_never_empty(self, gateway):
        publisher = InMemoryEventPublisher()
        gateway.set_event_publisher(publisher)
        gateway.add_extension_service(
            FakeExtensionService([ext("X")], install_error=RuntimeError())
        )

        gateway.install("X").result(timeout=5)

        assert publisher.events("X")[0].message == "RuntimeError"

    def test_unknown_id_on_install_becomes_failure_event(self, gateway):
        publisher = InMemoryEventPublisher()
        gateway.set_event_publisher(publisher)
        gateway.add_extension_service(FakeExtensionService([ext("a")]))

        gateway.uninstall("missing").result(timeout=5)

        (event,) = publisher.events("missing")
        assert event.is_failure
        assert "missing" in event.message

    def test_failure_without_publisher_is_dropped(self, gateway):
        gateway.add_extension_service(
            FakeExtensionService([ext("X")], install_error=RuntimeError("boom"))
        )

        # completes without raising
        assert gateway.install("X").result(timeout=5) is None

    def test_unset_publisher_stops_events(self, gateway):
        publisher = InMemoryEventPublisher()
        gateway.set_event_publisher(publisher)
        gateway.unset_event_publisher(publisher)
        gateway.add_extension_service(
            FakeExtensionService([ext("X")], install_error=RuntimeError("boom"))
        )

        gateway.install("X").result(timeout=5)

        assert publisher.events() == []

    def test_failure_is_logged_at_error_level(self, gateway, caplog):
        gateway.add_extension_service(
            FakeExtensionService([ext("X")], install_error=RuntimeError("boom"))
        )

        with caplog.at_level("ERROR", logger="exgate"):
            gateway.install("X").result(timeout=5)

        assert "Exception while installing extension: boom" in caplog.text

    def test_shutdown_rejects_new_tasks(self):
        gw = ExtensionGateway()
        gw.shutdown()

        with pytest.raises(RuntimeError):
            gw.install("a")
