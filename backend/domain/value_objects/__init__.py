"""
Domain Value Objects

Value objects are immutable types that represent descriptive aspects of the domain.
They have no conceptual identity and are compared by their values, not by ID.

Examples:
- MediaCategory: Video/Audio/Image/Unknown classification of an entry
- SourceKind: Where an entry's bytes came from
- FileSize: Size with formatting and validation
- TransferProgress: One progress observation of a streaming fetch
"""
from .file_size import FileSize
from .media_category import MediaCategory, SourceKind
from .transfer_progress import TransferProgress

__all__ = ["FileSize", "MediaCategory", "SourceKind", "TransferProgress"]
