"""
Service Interfaces

Abstract base classes for service layer following Dependency Inversion Principle.
This allows for dependency injection and easier testing/mocking.
"""

from abc import ABC, abstractmethod
from typing import Optional

from constants import ErrorKind
from domain.entities import Entry, OutputSettings
from domain.value_objects import MediaCategory, TransferProgress


class IEntryEventListener(ABC):
    """
    Observer interface for the presentation layer.

    The core makes no assumption about rendering; the WebSocket bridge and
    test recorders both implement this.
    """

    @abstractmethod
    async def on_entry_created(self, entry: Entry) -> None:
        """A new entry was registered (upload accepted or download started)."""
        pass

    @abstractmethod
    async def on_progress(self, entry_id: str, progress: TransferProgress) -> None:
        """
        An in-flight transfer received a chunk.

        Events for one entry arrive in order with non-decreasing values.
        """
        pass

    @abstractmethod
    async def on_entry_updated(self, entry: Entry) -> None:
        """Size, payload or settings of an entry changed."""
        pass

    @abstractmethod
    async def on_entry_removed(self, entry_id: str) -> None:
        """An entry left the registry (user removal or failed download)."""
        pass

    @abstractmethod
    async def on_operation_failed(
        self,
        entry_id: Optional[str],
        error_kind: ErrorKind,
        detail: str
    ) -> None:
        """
        An operation failed.

        entry_id is None for failures that never produced an entry, such as a
        rejected upload.
        """
        pass


class IEncoder(ABC):
    """
    Pluggable transformation invoked by conversions.

    Encoders are registered per MediaCategory; the core only decides when
    to call one and what to name the output.
    """

    @abstractmethod
    def supports(self, category: MediaCategory) -> bool:
        pass

    @abstractmethod
    async def encode(self, source: memoryview, settings: OutputSettings, target_format: str) -> bytes:
        """
        Produce output bytes for the requested format.

        Args:
            source: Read-only view of the entry payload, valid only during the call
            settings: Entry's current output settings
            target_format: Output format (e.g. "mp4", "mp3")

        Returns:
            Encoded bytes owned by the caller
        """
        pass
