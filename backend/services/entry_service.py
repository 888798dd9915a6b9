"""
Entry Service

User-facing operations on registered entries: local file intake, settings
changes, removal, conversion and export.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional

from constants import ErrorKind, MediaOptions, OperationKind
from domain.entities import Entry, LocalFile, default_settings_for
from domain.value_objects import MediaCategory, SourceKind
from exceptions import EntryNotFoundError, ValidationError
from services.download_service import REMOVED_REASON, DownloadService
from services.encoders import EncoderRegistry, default_encoder_registry
from services.entry_registry import EntryRegistry
from services.event_broadcaster import EventBroadcaster
from utils.logging_utils import log_operation
from utils.media_types import extension_of, media_category_of, output_mime_type

logger = logging.getLogger(__name__)


@dataclass
class IntakeResult:
    """Outcome of one local file intake batch."""

    added: List[Entry] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExportedFile:
    """Bytes handed to the user for saving."""

    filename: str
    media_type: str
    data: bytes


class EntryService:
    """Operations on entries that are not downloads."""

    def __init__(
        self,
        registry: EntryRegistry,
        broadcaster: EventBroadcaster,
        downloads: Optional[DownloadService] = None,
        encoders: Optional[EncoderRegistry] = None,
        accept_unknown_media: bool = False,
    ):
        self.registry = registry
        self.broadcaster = broadcaster
        self.downloads = downloads
        self.encoders = encoders or default_encoder_registry()
        self.accept_unknown_media = accept_unknown_media

    def get_entry(self, entry_id: str) -> Entry:
        """
        Raises:
            EntryNotFoundError: If the id is not registered
        """
        entry = self.registry.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    def list_entries(self) -> List[Entry]:
        return self.registry.list_entries()

    async def add_local_files(self, files: Iterable[LocalFile]) -> IntakeResult:
        """
        Register user-selected files.

        Files whose type is not video, audio or image are rejected (and
        reported through on_operation_failed) unless unknown media is accepted.
        """
        result = IntakeResult()
        for local in files:
            mime_type = (local.mime_type or "").strip().lower()
            category = media_category_of(mime_type or extension_of(local.name))

            if category == MediaCategory.UNKNOWN and not self.accept_unknown_media:
                result.rejected.append(local.name)
                await self.broadcaster.operation_failed(
                    None, ErrorKind.VALIDATION, f"{local.name} is not a supported file type"
                )
                continue

            entry = self.registry.create_entry(
                source_kind=SourceKind.LOCAL_FILE,
                name=local.name,
                category=category,
                mime_type=mime_type or "application/octet-stream",
                settings=default_settings_for(category),
                size_bytes=len(local.data),
                payload=local.data,
            )
            result.added.append(entry)
            await self.broadcaster.entry_created(entry)

        logger.info(f"Local intake: {len(result.added)} added, {len(result.rejected)} rejected")
        return result

    async def update_setting(self, entry_id: str, field: str, value: Any) -> Entry:
        """
        Apply a settings mutation from the presentation layer.

        Raises:
            EntryNotFoundError: Unknown entry
            ValidationError: Field not applicable or value not offered
        """
        entry = self.get_entry(entry_id)
        entry.settings.apply(field, value)
        logger.debug(f"Entry {entry_id} setting {field} -> {getattr(entry.settings, field)}")
        await self.broadcaster.entry_updated(entry)
        return entry

    async def remove(self, entry_id: str) -> bool:
        """
        Remove an entry, cancelling its download if one is in flight.

        Idempotent.

        Returns:
            True if the entry existed
        """
        if self.downloads is not None:
            self.downloads.cancel(entry_id, REMOVED_REASON)
        removed = self.registry.remove(entry_id)
        if removed is None:
            return False
        await self.broadcaster.entry_removed(entry_id)
        return True

    def export(self, entry_id: str) -> ExportedFile:
        """
        Original bytes of an entry under its own name.

        Raises:
            EntryNotFoundError: Unknown entry
            ValidationError: Payload not available yet
        """
        entry = self.get_entry(entry_id)
        with self.registry.export_payload(entry_id) as view:
            if view is None:
                raise ValidationError("File not available for download", {"entry_id": entry_id})
            data = view.tobytes()
        return ExportedFile(entry.name, entry.mime_type, data)

    @log_operation("convert")
    async def convert(self, entry_id: str, to_mp3: bool = False) -> ExportedFile:
        """
        Convert an entry with its current settings, or extract its audio as MP3.

        Output is named ``converted_<stem>.<format>`` or ``<stem>_audio.mp3``,
        where stem is the name up to its first dot.

        Raises:
            EntryNotFoundError: Unknown entry
            ConflictError: A conversion is already running for this entry
            ValidationError: No payload, no output format, or MP3 requested for
                a category without audio
        """
        entry = self.get_entry(entry_id)

        if to_mp3:
            if not entry.media_category.supports_mp3_extraction():
                raise ValidationError(
                    f"{entry.name} cannot be converted to MP3", {"entry_id": entry_id}
                )
            target_format = MediaOptions.MP3_FORMAT
            filename = f"{entry.stem}_audio.{target_format}"
        else:
            target_format = entry.settings.format
            if not target_format:
                raise ValidationError(
                    f"No output format available for {entry.name}", {"entry_id": entry_id}
                )
            filename = f"converted_{entry.stem}.{target_format}"

        encoder = self.encoders.for_category(entry.media_category)
        if encoder is None:
            raise ValidationError(
                f"No encoder for {entry.media_category.value} files", {"entry_id": entry_id}
            )

        with self.registry.operation(entry_id, OperationKind.CONVERSION):
            with self.registry.export_payload(entry_id) as view:
                if view is None:
                    raise ValidationError("File not available for download", {"entry_id": entry_id})
                data = await encoder.encode(view, entry.settings, target_format)

        return ExportedFile(filename, output_mime_type(target_format), data)
