"""
Request DTOs

DTOs for incoming API requests. These decouple the API from domain entities
and provide a clear contract for what data the API expects.
"""
from .entry_request import DownloadRequest, SettingUpdateRequest

__all__ = ["DownloadRequest", "SettingUpdateRequest"]
