"""
Download Service

Orchestrates a remote download: validation, placeholder entry, admission
guard, streamed fetch with progress events, and rollback on failure.

Failure handling:
- ValidationError is raised before the registry or network is touched
- Any other failure (NetworkError, OperationCancelled or an unexpected
  exception) removes the placeholder entry and releases the DOWNLOAD guard
  before the error reaches the caller
- A download cancelled because its entry was removed is not reported as a failure
- The guard is released exactly once on every exit path
"""
import asyncio
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from constants import OperationKind
from domain.entities import Entry, default_settings_for
from domain.value_objects import MediaCategory, SourceKind, TransferProgress
from exceptions import ApplicationError, NetworkError, OperationCancelled
from services.entry_registry import EntryRegistry
from services.event_broadcaster import EventBroadcaster
from services.fetch_pipeline import StreamingFetcher
from utils.logging_utils import StructuredLogger, logging_context
from utils.media_types import filename_from_url, mime_type_for, validate_download_url

logger = StructuredLogger(__name__)

# Cancellation reason used when the user removes an entry mid-download
REMOVED_REASON = "removed"


@dataclass
class DownloadTicket:
    """Handle for one admitted download."""

    entry: Entry
    url: str
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    reason: str = "cancelled"

    def cancel(self, reason: str = "cancelled") -> None:
        if not self.cancel_event.is_set():
            self.reason = reason
            self.cancel_event.set()


class DownloadService:
    """
    Runs downloads against the shared registry and reports through the broadcaster.

    Background downloads started with start() are tracked so shutdown() can
    cancel them.
    """

    def __init__(
        self,
        registry: EntryRegistry,
        fetcher: StreamingFetcher,
        broadcaster: EventBroadcaster,
        timeout_seconds: Optional[float] = None,
    ):
        self.registry = registry
        self.fetcher = fetcher
        self.broadcaster = broadcaster
        self.timeout_seconds = timeout_seconds
        self._tickets: Dict[str, DownloadTicket] = {}
        self._tasks: Set[asyncio.Task] = set()

    async def prepare(self, url: str) -> DownloadTicket:
        """
        Validate ``url`` and register a placeholder entry for it.

        Raises:
            ValidationError: Before any registry mutation or network call
        """
        candidate = validate_download_url(url)
        filename = filename_from_url(candidate)

        entry = self.registry.create_entry(
            source_kind=SourceKind.REMOTE_DOWNLOAD,
            name=filename,
            category=MediaCategory.VIDEO,
            mime_type=mime_type_for(filename),
            settings=default_settings_for(MediaCategory.VIDEO),
            source_url=candidate,
        )
        # Fresh id: admission cannot fail here
        self.registry.try_begin_operation(entry.id, OperationKind.DOWNLOAD)
        ticket = DownloadTicket(entry=entry, url=candidate)
        self._tickets[entry.id] = ticket

        await self.broadcaster.entry_created(entry)
        return ticket

    async def run(self, ticket: DownloadTicket) -> Entry:
        """
        Stream the ticket's URL into its entry.

        Returns:
            The completed Entry with payload and exact size

        Raises:
            NetworkError: Bad status or transport failure (entry rolled back)
            OperationCancelled: Cancelled, timed out or removed (entry rolled back)
        """
        entry_id = ticket.entry.id
        timer = None
        if self.timeout_seconds:
            timer = asyncio.get_running_loop().call_later(
                self.timeout_seconds, ticket.cancel, "timed out"
            )

        async def on_total(total: int):
            entry = self.registry.record_total_size(entry_id, total)
            if entry is not None:
                await self.broadcaster.entry_updated(entry)

        async def on_progress(progress: TransferProgress):
            await self.broadcaster.progress(entry_id, progress)

        with logging_context(entry_id=entry_id, url=ticket.url):
            logger.info(f"Starting download of {ticket.entry.name}")
            try:
                data = await self.fetcher.fetch_with_progress(
                    ticket.url,
                    on_progress,
                    on_total=on_total,
                    cancel_event=ticket.cancel_event,
                    cancel_reason=lambda: ticket.reason,
                )
                entry = self.registry.attach_payload(entry_id, data)
                if entry is None:
                    raise OperationCancelled(ticket.url, REMOVED_REASON)
            except (NetworkError, OperationCancelled) as e:
                await self._rollback(entry_id, e)
                raise
            except Exception as e:
                logger.error(f"Unexpected download failure: {e!r}", exc_info=True)
                await self._rollback(entry_id, ApplicationError(f"Download of {ticket.url} failed: {e}"))
                raise
            except asyncio.CancelledError:
                self.registry.remove(entry_id)
                logger.warning("Download task cancelled")
                raise
            finally:
                if timer is not None:
                    timer.cancel()
                self.registry.end_operation(entry_id, OperationKind.DOWNLOAD)
                self._tickets.pop(entry_id, None)

            logger.info(f"Download complete: {entry.name} ({entry.size})")
        await self.broadcaster.entry_updated(entry)
        return entry

    async def _rollback(self, entry_id: str, error: ApplicationError) -> None:
        removed = self.registry.remove(entry_id)
        logger.warning(f"Download failed, rolled back entry: {error.message}")
        if removed is not None:
            await self.broadcaster.entry_removed(entry_id)
        if isinstance(error, OperationCancelled) and error.reason == REMOVED_REASON:
            # The user removed the entry; that is not a failure to report
            return
        await self.broadcaster.operation_failed(entry_id, error.kind, error.message)

    async def download(self, url: str) -> Entry:
        """Validate, register and stream ``url``; returns the completed entry."""
        ticket = await self.prepare(url)
        return await self.run(ticket)

    async def start(self, url: str) -> Entry:
        """
        Validate and register ``url``, then stream it in a background task.

        Returns:
            The placeholder entry (size and payload not yet known)
        """
        ticket = await self.prepare(url)
        task = asyncio.create_task(self.run(ticket), name=f"download-{ticket.entry.id}")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return ticket.entry

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, ApplicationError):
            # Already reported to listeners by run()
            logger.debug(f"Background download ended with {type(error).__name__}")
        elif error is not None:
            logger.error(f"Background download crashed: {error!r}")

    def cancel(self, entry_id: str, reason: str = "cancelled") -> bool:
        """
        Request cancellation of an in-flight download.

        Returns:
            True if a transfer was in flight for the entry
        """
        ticket = self._tickets.get(entry_id)
        if ticket is None:
            return False
        ticket.cancel(reason)
        return True

    def is_downloading(self, entry_id: str) -> bool:
        return entry_id in self._tickets

    async def shutdown(self) -> None:
        """Cancel every in-flight download and wait for the tasks to unwind."""
        for ticket in list(self._tickets.values()):
            ticket.cancel("cancelled at shutdown")
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
