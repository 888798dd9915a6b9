"""
MediaCategory and SourceKind Value Objects

Immutable classification of an entry, derived once when the entry is created.
"""

from enum import Enum


class MediaCategory(str, Enum):
    """
    Broad media classification used to pick output formats and defaults.

    UNKNOWN is a real category with its own minimal defaults; it is never
    treated as an alias for IMAGE.
    """

    VIDEO = "video"
    AUDIO = "audio"
    IMAGE = "image"
    UNKNOWN = "unknown"

    def supports_mp3_extraction(self) -> bool:
        """Check if audio can be extracted from this category as MP3."""
        return self in {MediaCategory.VIDEO, MediaCategory.AUDIO}

    @classmethod
    def from_mime_prefix(cls, mime_type: str) -> "MediaCategory":
        """
        Classify a MIME type by its top-level type.

        Args:
            mime_type: MIME type such as "video/mp4"

        Returns:
            Matching category, or UNKNOWN
        """
        top_level = mime_type.split("/", 1)[0].strip().lower()
        try:
            category = cls(top_level)
        except ValueError:
            return cls.UNKNOWN
        return category


class SourceKind(str, Enum):
    """Where an entry's bytes came from."""

    LOCAL_FILE = "local_file"
    REMOTE_DOWNLOAD = "remote_download"
