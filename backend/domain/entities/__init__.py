"""
Domain Entities

Entities are business objects with identity and lifecycle.
They are mutable and have a unique identifier that persists through their lifetime.

Examples:
- Entry entity: A media file known to the session, uploaded or downloaded
- OutputSettings: The user's per-entry conversion preferences
"""
from .entry import Entry, LocalFile
from .output_settings import OutputSettings, default_settings_for

__all__ = ["Entry", "LocalFile", "OutputSettings", "default_settings_for"]
