"""
Entry Entity

One media file known to the session, either uploaded by the user or fetched
from a direct URL.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from domain.value_objects import FileSize, MediaCategory, SourceKind
from .output_settings import OutputSettings


@dataclass(frozen=True)
class LocalFile:
    """A user-selected file as handed over by the presentation layer."""

    name: str
    mime_type: str
    size_bytes: int
    data: bytes


@dataclass
class Entry:
    """
    Mutable record for a single file.

    ``size_bytes`` starts at 0 for remote entries, becomes the advertised
    total when response headers arrive, and finally the exact received byte
    count. ``payload`` stays None until a remote transfer completes.
    """

    id: str
    source_kind: SourceKind
    name: str
    media_category: MediaCategory
    mime_type: str
    settings: OutputSettings
    size_bytes: int = 0
    payload: Optional[bytes] = field(default=None, repr=False)
    source_url: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_payload(self) -> bool:
        return self.payload is not None

    @property
    def size(self) -> FileSize:
        return FileSize(self.size_bytes)

    @property
    def stem(self) -> str:
        """Name up to the first dot, as used for exported filenames."""
        return self.name.split(".")[0]
