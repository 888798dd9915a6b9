"""
Entry Registry

Single source of truth for the entries known to the session and for admission
control of long-running operations on them.

ARCHITECTURE NOTE: Atomic admission under asyncio
- Every method here is synchronous and never awaits
- try_begin_operation() performs its check-and-insert without a suspension
  point, so two coroutines racing for the same (entry, kind) cannot both win
- Absent ids are represented (None / False / no-op), never raised
"""
import uuid
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Set

from constants import OperationKind
from domain.entities import Entry, OutputSettings
from domain.value_objects import MediaCategory, SourceKind
from exceptions import ConflictError

logger = logging.getLogger(__name__)


class EntryRegistry:
    """
    In-memory mapping of entry id to Entry, plus one guard set per OperationKind.

    An instance is scoped to one application session (created in the FastAPI
    lifespan) and passed explicitly to the services that need it.
    """

    def __init__(self):
        self._entries: Dict[str, Entry] = {}
        self._active: Dict[OperationKind, Set[str]] = {kind: set() for kind in OperationKind}
        self._issued_ids: Set[str] = set()

    def _new_id(self) -> str:
        entry_id = uuid.uuid4().hex
        while entry_id in self._issued_ids:
            entry_id = uuid.uuid4().hex
        self._issued_ids.add(entry_id)
        return entry_id

    def create_entry(
        self,
        *,
        source_kind: SourceKind,
        name: str,
        category: MediaCategory,
        mime_type: str,
        settings: OutputSettings,
        size_bytes: int = 0,
        payload: Optional[bytes] = None,
        source_url: Optional[str] = None,
    ) -> Entry:
        """
        Allocate a fresh id and insert a new entry.

        Args:
            source_kind: LOCAL_FILE or REMOTE_DOWNLOAD
            name: Display filename
            category: Media category (fixed for the entry's lifetime)
            mime_type: MIME type of the source bytes
            settings: Category defaults for this entry
            size_bytes: Known size, 0 if not yet known
            payload: Raw bytes for local files
            source_url: Origin URL for remote entries

        Returns:
            The inserted Entry
        """
        entry = Entry(
            id=self._new_id(),
            source_kind=source_kind,
            name=name,
            media_category=category,
            mime_type=mime_type,
            settings=settings,
            size_bytes=size_bytes,
            payload=payload,
            source_url=source_url,
        )
        self._entries[entry.id] = entry
        logger.debug(f"Registered entry {entry.id} ({entry.name}, {category.value})")
        return entry

    def get(self, entry_id: str) -> Optional[Entry]:
        """Look up an entry; None if absent."""
        return self._entries.get(entry_id)

    def __contains__(self, entry_id: str) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def list_entries(self) -> List[Entry]:
        """All entries in insertion order."""
        return list(self._entries.values())

    def remove(self, entry_id: str) -> Optional[Entry]:
        """
        Delete an entry and clear it from every guard set.

        Idempotent: removing an absent id is a no-op.

        Returns:
            The removed Entry, or None if it was not present
        """
        for active in self._active.values():
            active.discard(entry_id)
        entry = self._entries.pop(entry_id, None)
        if entry is not None:
            logger.debug(f"Removed entry {entry_id} ({entry.name})")
        return entry

    def try_begin_operation(self, entry_id: str, kind: OperationKind) -> bool:
        """
        Admit an operation if none of the same kind is in flight for this id.

        Returns:
            True if admitted (the id is now marked active), False otherwise
        """
        active = self._active[kind]
        if entry_id in active:
            return False
        active.add(entry_id)
        return True

    def end_operation(self, entry_id: str, kind: OperationKind) -> None:
        """Release the guard for (entry_id, kind); safe to call when not held."""
        self._active[kind].discard(entry_id)

    def is_operation_active(self, entry_id: str, kind: OperationKind) -> bool:
        return entry_id in self._active[kind]

    def active_operations(self, kind: OperationKind) -> Set[str]:
        """Snapshot of ids with an operation of this kind in flight."""
        return set(self._active[kind])

    @contextmanager
    def operation(self, entry_id: str, kind: OperationKind) -> Iterator[None]:
        """
        Hold the (entry_id, kind) guard for the duration of a block.

        Raises:
            ConflictError: If the operation is already in progress
        """
        if not self.try_begin_operation(entry_id, kind):
            raise ConflictError(entry_id, kind)
        try:
            yield
        finally:
            self.end_operation(entry_id, kind)

    def record_total_size(self, entry_id: str, total_bytes: int) -> Optional[Entry]:
        """
        Record the advertised size of an in-flight transfer.

        Never moves size_bytes backward and never overrides the exact size of a
        completed payload.
        """
        entry = self._entries.get(entry_id)
        if entry is None or entry.has_payload:
            return entry
        if total_bytes > entry.size_bytes:
            entry.size_bytes = total_bytes
        return entry

    def attach_payload(self, entry_id: str, data: bytes) -> Optional[Entry]:
        """
        Hand a completed buffer to the registry.

        The registry owns the bytes from here on; size_bytes becomes the exact length.

        Returns:
            The updated Entry, or None if the entry was removed meanwhile
        """
        entry = self._entries.get(entry_id)
        if entry is None:
            return None
        entry.payload = data
        entry.size_bytes = len(data)
        return entry

    @contextmanager
    def export_payload(self, entry_id: str) -> Iterator[Optional[memoryview]]:
        """
        Scoped read-only view of an entry's payload.

        The view is released when the block exits, whatever the outcome.
        Yields None if the entry is absent or has no payload yet.
        """
        entry = self._entries.get(entry_id)
        if entry is None or entry.payload is None:
            yield None
            return
        view = memoryview(entry.payload).toreadonly()
        try:
            yield view
        finally:
            view.release()
