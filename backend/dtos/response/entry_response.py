"""
Entry Response DTOs

DTOs for entry-related API responses and WebSocket event payloads.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from domain.entities import Entry


class EntryResponse(BaseModel):
    """
    Response DTO for entry information.

    Never includes the payload bytes; clients fetch those via the export endpoints.
    """

    id: str = Field(description="Entry ID")
    name: str = Field(description="Display filename")
    source_kind: str = Field(description="local_file or remote_download")
    media_category: str = Field(description="video, audio, image or unknown")
    mime_type: str = Field(description="MIME type of the source bytes")
    size_bytes: int = Field(description="Size in bytes (0 while unknown)")
    size_formatted: str = Field(description="Human-readable size")
    settings: Dict[str, Any] = Field(description="Current output settings")
    available_formats: List[str] = Field(description="Output formats offered for this entry")
    has_payload: bool = Field(description="Whether the bytes are available for export")
    source_url: Optional[str] = Field(None, description="Origin URL for downloaded entries")
    created_at: datetime = Field(description="Registration timestamp")

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryResponse":
        return cls(
            id=entry.id,
            name=entry.name,
            source_kind=entry.source_kind.value,
            media_category=entry.media_category.value,
            mime_type=entry.mime_type,
            size_bytes=entry.size_bytes,
            size_formatted=str(entry.size),
            settings=entry.settings.to_dict(),
            available_formats=list(entry.settings.available_formats),
            has_payload=entry.has_payload,
            source_url=entry.source_url,
            created_at=entry.created_at,
        )


class IntakeResponse(BaseModel):
    """Response DTO for a local upload batch."""

    added: List[EntryResponse] = Field(description="Entries registered from the upload")
    rejected: List[str] = Field(description="Filenames refused as unsupported")


class UrlPreviewResponse(BaseModel):
    """Response DTO for the download URL preview."""

    valid: bool = Field(description="Whether the URL is a direct video link")
    filename: Optional[str] = None
    extension: Optional[str] = None
    label: Optional[str] = None
    mime_type: Optional[str] = None
