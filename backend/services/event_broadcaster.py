"""
Event Broadcasting Service

Fans entry lifecycle events out to every subscribed IEntryEventListener.

Listeners are awaited one after another, so events for a given entry reach
each listener in the order they were emitted. A listener that raises is
logged and skipped; it never fails the operation that emitted the event.
"""
import logging
from typing import Callable, List, Optional

from constants import ErrorKind
from domain.entities import Entry
from domain.value_objects import TransferProgress
from services.interfaces import IEntryEventListener

logger = logging.getLogger(__name__)


class EventBroadcaster:
    """
    Service for broadcasting entry state changes and transfer progress
    to the presentation layer.
    """

    def __init__(self):
        self._listeners: List[IEntryEventListener] = []

    def subscribe(self, listener: IEntryEventListener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            Callable that unsubscribes the listener
        """
        self._listeners.append(listener)
        logger.debug(f"Listener subscribed: {type(listener).__name__} ({len(self._listeners)} total)")

        def unsubscribe():
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: IEntryEventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def _dispatch(self, method_name: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                await getattr(listener, method_name)(*args)
            except Exception as e:
                logger.error(
                    f"Listener {type(listener).__name__}.{method_name} failed: {e}",
                    exc_info=True
                )

    async def entry_created(self, entry: Entry) -> None:
        logger.info(f"Entry created: {entry.name} ({entry.id})")
        await self._dispatch("on_entry_created", entry)

    async def progress(self, entry_id: str, progress: TransferProgress) -> None:
        if progress.fraction is not None:
            logger.debug(f"Entry {entry_id}: {progress.fraction * 100:.1f}%")
        else:
            logger.debug(f"Entry {entry_id}: {progress.bytes_received} bytes")
        await self._dispatch("on_progress", entry_id, progress)

    async def entry_updated(self, entry: Entry) -> None:
        await self._dispatch("on_entry_updated", entry)

    async def entry_removed(self, entry_id: str) -> None:
        logger.info(f"Entry removed: {entry_id}")
        await self._dispatch("on_entry_removed", entry_id)

    async def operation_failed(
        self,
        entry_id: Optional[str],
        error_kind: ErrorKind,
        detail: str
    ) -> None:
        logger.error(f"Operation failed for {entry_id or 'new entry'}: {error_kind.value} - {detail}")
        await self._dispatch("on_operation_failed", entry_id, error_kind, detail)
