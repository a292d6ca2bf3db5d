"""ExtensionGateway: routes extension requests to registered extension services.

Responsibilities:
1. Keep the dynamic set of extension services (added/removed at runtime).
2. Aggregate listings and types across all services.
3. Resolve which service owns an extension id.
4. Run install/uninstall on a background pool and report failures as events.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Set

from exgate.core.config import GatewayConfig
from exgate.core.exceptions import UnknownExtensionError
from exgate.core.interfaces.event_publisher import EventPublisherPort
from exgate.core.interfaces.extension_service import ExtensionServicePort
from exgate.core.managers.service_registry import CopyOnWriteSet
from exgate.core.models.event import create_extension_failure_event
from exgate.core.models.extension import Extension, ExtensionType
from exgate.core.settings import logger
from exgate.core.utils.locale import Locale, collation_key


class ExtensionGateway:
    """Facade over all registered extension services.

    Attributes:
        config: Immutable gateway configuration (default locale, pool size)
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        event_publisher: Optional[EventPublisherPort] = None,
    ) -> None:
        self.config = config or GatewayConfig()
        self.default_locale = Locale.from_tag(self.config.default_locale)
        self._services: CopyOnWriteSet[ExtensionServicePort] = CopyOnWriteSet()
        self._event_publisher = event_publisher
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix=self.config.thread_name_prefix,
        )
        self._tasks: Set[Future] = set()
        self._tasks_lock = threading.Lock()
        self._shutdown = False

    # ---------------- Registry hooks -----------------
    def add_extension_service(self, service: ExtensionServicePort) -> None:
        if self._services.add(service):
            logger.debug(f"[ext:registry] added service={type(service).__name__} total={len(self._services)}")

    def remove_extension_service(self, service: ExtensionServicePort) -> None:
        if self._services.remove(service):
            logger.debug(f"[ext:registry] removed service={type(service).__name__} total={len(self._services)}")

    def set_event_publisher(self, event_publisher: EventPublisherPort) -> None:
        self._event_publisher = event_publisher

    def unset_event_publisher(self, event_publisher: Optional[EventPublisherPort] = None) -> None:
        self._event_publisher = None

    @property
    def services(self) -> tuple:
        return self._services.snapshot()

    def is_satisfied(self) -> bool:
        """True when at least one extension service is registered."""
        return len(self._services) > 0

    # ---------------- Queries -----------------
    def get_extensions(self, locale: Locale) -> List[Extension]:
        result: List[Extension] = []
        for service in self._services.snapshot():
            result.extend(service.get_extensions(locale))
        return result

    def get_types(self, locale: Locale) -> List[ExtensionType]:
        """All extension types, deduplicated and sorted by collated label.

        Types whose labels collate equal are collapsed; the first one
        encountered (in service order) is kept.
        """
        by_key: Dict[str, ExtensionType] = {}
        for service in self._services.snapshot():
            for ext_type in service.get_types(locale):
                by_key.setdefault(collation_key(ext_type.label, locale), ext_type)
        return [by_key[key] for key in sorted(by_key)]

    def get_extension(self, extension_id: str, locale: Locale) -> Optional[Extension]:
        """Detail of one extension.

        Returns None when the owning service has no detail for it.
        Raises UnknownExtensionError when no service lists the id.
        """
        service = self.get_extension_service(extension_id)
        return service.get_extension(extension_id, locale)

    def get_extension_service(self, extension_id: str) -> ExtensionServicePort:
        # listings are always compared under the default locale so the
        # result does not depend on who asked
        for service in self._services.snapshot():
            for extension in service.get_extensions(self.default_locale):
                if extension.id == extension_id:
                    return service
        raise UnknownExtensionError(extension_id)

    # ---------------- Lifecycle -----------------
    def install(self, extension_id: str) -> Future:
        """Install asynchronously; failures are published, never raised."""
        return self._submit("install", extension_id, lambda s: s.install(extension_id))

    def uninstall(self, extension_id: str) -> Future:
        """Uninstall asynchronously; failures are published, never raised."""
        return self._submit("uninstall", extension_id, lambda s: s.uninstall(extension_id))

    def _submit(
        self,
        operation: str,
        extension_id: str,
        action: Callable[[ExtensionServicePort], None],
    ) -> Future:
        if self._shutdown:
            raise RuntimeError("ExtensionGateway has been shut down")
        logger.debug(f"[ext:{operation}] scheduling extension_id={extension_id}")
        future = self._executor.submit(self._run_lifecycle, operation, extension_id, action)
        with self._tasks_lock:
            self._tasks.add(future)
        future.add_done_callback(self._discard_task)
        return future

    def _discard_task(self, future: Future) -> None:
        with self._tasks_lock:
            self._tasks.discard(future)

    def _run_lifecycle(
        self,
        operation: str,
        extension_id: str,
        action: Callable[[ExtensionServicePort], None],
    ) -> None:
        try:
            service = self.get_extension_service(extension_id)
            action(service)
            logger.info(f"[ext:{operation}] completed extension_id={extension_id}")
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.error(f"Exception while {operation}ing extension: {message}")
            self._post_failure_event(extension_id, message)

    def _post_failure_event(self, extension_id: str, message: str) -> None:
        # publisher may be unset concurrently; read it once
        publisher = self._event_publisher
        if publisher is None:
            logger.debug(f"[ext:event] no publisher, dropping failure extension_id={extension_id}")
            return
        publisher.post(create_extension_failure_event(extension_id, message))

    @property
    def pending_tasks(self) -> int:
        with self._tasks_lock:
            return len(self._tasks)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting lifecycle tasks; running ones finish normally."""
        self._shutdown = True
        logger.debug(f"[ext:shutdown] pending={self.pending_tasks} wait={wait}")
        self._executor.shutdown(wait=wait)
