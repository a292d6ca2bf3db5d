# exgate/core/interfaces/extension_service.py
from abc import ABC, abstractmethod
from typing import List, Optional

from exgate.core.models.extension import Extension, ExtensionType
from exgate.core.utils.locale import Locale


class ExtensionServicePort(ABC):
    """A provider owning install/uninstall/listing for a subset of extensions.

    Extension ids are unique across all registered services. Implementations
    are called from request threads and from the lifecycle pool concurrently,
    so they must be thread-safe.
    """

    @abstractmethod
    def get_extensions(self, locale: Locale) -> List[Extension]:
        pass

    @abstractmethod
    def get_types(self, locale: Locale) -> List[ExtensionType]:
        pass

    @abstractmethod
    def get_extension(self, extension_id: str, locale: Locale) -> Optional[Extension]:
        """Return the extension's detail, or None if the service has none."""
        pass

    @abstractmethod
    def install(self, extension_id: str) -> None:
        """Install the extension; may block for a long time and may raise."""
        pass

    @abstractmethod
    def uninstall(self, extension_id: str) -> None:
        """Uninstall the extension; may block for a long time and may raise."""
        pass
