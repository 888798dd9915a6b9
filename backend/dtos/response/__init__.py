"""
Response DTOs

DTOs for outgoing API responses. These decouple the API from domain entities
and provide a clear contract for what data the API returns.
"""
from .entry_response import EntryResponse, IntakeResponse, UrlPreviewResponse

__all__ = ["EntryResponse", "IntakeResponse", "UrlPreviewResponse"]
