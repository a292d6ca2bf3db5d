from abc import ABC, abstractmethod

from exgate.core.models.event import ExtensionEvent


class EventPublisherPort(ABC):
    @abstractmethod
    def post(self, event: ExtensionEvent) -> None:
        """Deliver the event asynchronously or synchronously; must not raise."""
        pass
