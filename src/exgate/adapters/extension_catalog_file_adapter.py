import os
import threading
from threading import Timer
from typing import Dict, List, Optional, Set

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers.polling import PollingObserver

from exgate.core.exceptions import ExtensionLifecycleError
from exgate.core.interfaces.event_publisher import EventPublisherPort
from exgate.core.interfaces.extension_service import ExtensionServicePort
from exgate.core.models.catalog import Catalog, CatalogExtension, resolve_text
from exgate.core.models.event import (
    create_extension_installed_event,
    create_extension_uninstalled_event,
)
from exgate.core.models.extension import Extension, ExtensionType
from exgate.core.settings import logger
from exgate.core.utils.locale import Locale


class _CatalogFileHandler(FileSystemEventHandler):
    DEBOUNCE_DELAY = 0.5  # 500ms

    def __init__(self, adapter: "ExtensionCatalogFileAdapter", config_path: str, config_filename: str):
        self.adapter = adapter
        self.config_path = os.path.abspath(config_path)
        self.config_filename = config_filename
        self._reload_timer = None

    def on_any_event(self, event):
        logger.debug("File event: %s on %s", event.event_type, event.src_path)

        if event.is_directory:
            return
        src_path = str(event.src_path)
        # Robust checks for configmap updates (Kubernetes)
        if (
            src_path == self.config_path
            or src_path.endswith(self.config_filename)
            or "..data" in src_path
        ):
            self._debounced_reload()

    def _debounced_reload(self):
        if self._reload_timer:
            self._reload_timer.cancel()
        self._reload_timer = Timer(self.DEBOUNCE_DELAY, self.adapter.load_catalog)
        self._reload_timer.daemon = True
        self._reload_timer.start()


class ExtensionCatalogFileAdapter(ExtensionServicePort):
    """Extension service backed by a YAML catalog file.

    Installation only flips an in-memory flag and posts the matching event;
    the state is seeded from the file's `installed` flags and survives
    reloads for extensions that are still listed.
    """

    def __init__(
        self,
        config_path: str,
        event_publisher: Optional[EventPublisherPort] = None,
    ):
        self._config_path = config_path
        self._event_publisher = event_publisher
        self._lock = threading.Lock()
        self._catalog: Catalog = Catalog()
        self._installed: Set[str] = set()

        self.load_catalog()

    @property
    def name(self) -> str:
        return self._catalog.name or os.path.basename(self._config_path)

    def __repr__(self) -> str:
        return f"ExtensionCatalogFileAdapter({self._config_path!r})"

    def start_file_watcher(self):
        observer = PollingObserver()
        config_dir = os.path.dirname(os.path.abspath(self._config_path))
        config_filename = os.path.basename(self._config_path)

        handler = _CatalogFileHandler(self, self._config_path, config_filename)

        observer.schedule(handler, path=config_dir, recursive=False)
        observer.start()

        self._observer = observer

    def stop_file_watcher(self):
        if hasattr(self, "_observer"):
            self._observer.stop()
            self._observer.join()

    def _atomic_update(self, new_catalog: Catalog):
        """Swap in a new catalog and carry over installed state."""
        with self._lock:
            previously_known = {ext.id for ext in self._catalog.extensions}
            known = {ext.id for ext in new_catalog.extensions}
            # file flags only seed extensions seen for the first time
            seeded = {
                ext.id for ext in new_catalog.extensions
                if ext.installed and ext.id not in previously_known
            }
            self._installed = (self._installed & known) | seeded
            self._catalog = new_catalog.model_copy(deep=True)

    def load_catalog(self):
        logger.info("(Re)Loading extension catalog from %s", self._config_path)

        try:
            with open(self._config_path, encoding="UTF-8") as file:
                content = yaml.safe_load(file)
                if content:
                    validated = Catalog.model_validate(content)
                    self._atomic_update(validated)

                    logger.info(
                        "Extension catalog (re)loaded successfully: %s extensions",
                        len(validated.extensions),
                    )
        except FileNotFoundError:
            logger.error("Extension catalog file not found: %s", self._config_path)
        except yaml.YAMLError as e:
            logger.error("Failed to parse extension catalog: %s", e)
        except ValidationError as e:
            logger.error("Validation error in extension catalog: %s", e)
        except OSError as e:
            logger.error("Could not read extension catalog %s: %s", self._config_path, e)
        except Exception as e:
            logger.error("Unexpected error loading extension catalog: %s", e)

    def _to_extension(self, entry: CatalogExtension, locale: Locale) -> Extension:
        return Extension(
            id=entry.id,
            label=resolve_text(entry.label, locale) or entry.id,
            version=entry.version,
            type=entry.type,
            link=entry.link,
            installed=entry.id in self._installed,
            description=resolve_text(entry.description, locale),
            background_color=entry.background_color,
            image_link=entry.image_link,
        )

    def _entries(self) -> Dict[str, CatalogExtension]:
        return {ext.id: ext for ext in self._catalog.extensions}

    def get_extensions(self, locale: Locale) -> List[Extension]:
        with self._lock:
            return [self._to_extension(ext, locale) for ext in self._catalog.extensions]

    def get_types(self, locale: Locale) -> List[ExtensionType]:
        with self._lock:
            return [
                ExtensionType(id=t.id, label=resolve_text(t.label, locale) or t.id)
                for t in self._catalog.types
            ]

    def get_extension(self, extension_id: str, locale: Locale) -> Optional[Extension]:
        with self._lock:
            entry = self._entries().get(extension_id)
            if entry is None or not entry.detail_available:
                return None
            return self._to_extension(entry, locale)

    def is_installed(self, extension_id: str) -> bool:
        with self._lock:
            return extension_id in self._installed

    def install(self, extension_id: str) -> None:
        with self._lock:
            if extension_id not in self._entries():
                raise ExtensionLifecycleError(
                    f"Extension '{extension_id}' is not part of catalog {self.name}",
                    extension_id=extension_id,
                    operation="install",
                )
            if extension_id in self._installed:
                raise ExtensionLifecycleError(
                    f"Extension '{extension_id}' is already installed",
                    extension_id=extension_id,
                    operation="install",
                )
            self._installed.add(extension_id)
        logger.info("Installed extension %s from catalog %s", extension_id, self.name)
        self._post(create_extension_installed_event(extension_id))

    def uninstall(self, extension_id: str) -> None:
        with self._lock:
            if extension_id not in self._installed:
                raise ExtensionLifecycleError(
                    f"Extension '{extension_id}' is not installed",
                    extension_id=extension_id,
                    operation="uninstall",
                )
            self._installed.discard(extension_id)
        logger.info("Uninstalled extension %s from catalog %s", extension_id, self.name)
        self._post(create_extension_uninstalled_event(extension_id))

    def _post(self, event):
        if self._event_publisher is not None:
            self._event_publisher.post(event)
