"""Content-change notifications.

Editing a document does not index it directly. The editor publishes a
``DocumentContentChanged`` event and whoever schedules background work
subscribes to it and calls ``index_document`` later.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentContentChanged:
    document_id: str
    title: str
    content: str
    version: int
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[DocumentContentChanged], None]


class ContentChangeNotifier:
    """Synchronous publish/subscribe hub for content-change events."""

    def __init__(self) -> None:
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register a handler; returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: DocumentContentChanged) -> int:
        """Deliver an event to every handler.

        Returns:
            int: Number of handlers notified
        """
        logger.debug(f"📣 Content changed: {event.document_id} (version {event.version})")
        for handler in list(self._handlers):
            handler(event)
        return len(self._handlers)
