"""Extension lifecycle events.

Events are posted to an `EventPublisherPort` by the gateway (failures) and by
extension services (successful install/uninstall). The payload is a JSON
array string so that consumers outside Python can parse it without the model.
"""

import json
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

EXTENSION_EVENT_TYPE = "ExtensionEvent"

EXTENSION_TOPIC_PREFIX = "smarthome/extensions/"
EXTENSION_INSTALLED_TOPIC = EXTENSION_TOPIC_PREFIX + "{id}/installed"
EXTENSION_UNINSTALLED_TOPIC = EXTENSION_TOPIC_PREFIX + "{id}/uninstalled"
EXTENSION_FAILURE_TOPIC = EXTENSION_TOPIC_PREFIX + "{id}/failed"


class ExtensionEvent(BaseModel):
    type: str = EXTENSION_EVENT_TYPE
    topic: str
    payload: str
    extension_id: str
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_failure(self) -> bool:
        return self.topic.endswith("/failed")


def _build(topic_template: str, extension_id: str, message: Optional[str] = None) -> ExtensionEvent:
    if not extension_id:
        raise ValueError("extension_id must not be empty")
    values = [extension_id] if message is None else [extension_id, message]
    return ExtensionEvent(
        topic=topic_template.format(id=extension_id),
        payload=json.dumps(values),
        extension_id=extension_id,
        message=message,
    )


def create_extension_installed_event(extension_id: str) -> ExtensionEvent:
    return _build(EXTENSION_INSTALLED_TOPIC, extension_id)


def create_extension_uninstalled_event(extension_id: str) -> ExtensionEvent:
    return _build(EXTENSION_UNINSTALLED_TOPIC, extension_id)


def create_extension_failure_event(extension_id: str, message: Optional[str]) -> ExtensionEvent:
    # the failed topic always carries a message slot, even when empty
    return _build(EXTENSION_FAILURE_TOPIC, extension_id, message or "")
