"""
Entry Request DTOs

DTOs for download and settings requests.
"""

from typing import Union

from pydantic import BaseModel, Field, field_validator


class DownloadRequest(BaseModel):
    """
    Request DTO for downloading a direct video link.

    Only presence is checked here; scheme and extension rules are enforced by
    the download service so every caller gets the same validation.
    """

    url: str = Field(description="Direct http(s) link to a video file")

    @field_validator("url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        return v.strip()

    model_config = {
        "json_schema_extra": {
            "example": {"url": "https://example.com/videos/clip.mp4"}
        }
    }


class SettingUpdateRequest(BaseModel):
    """Request DTO for changing one output setting of an entry."""

    field: str = Field(description="Setting name: format, quality, resolution, fps or bitrate")
    value: Union[int, float, str] = Field(description="New value")

    model_config = {
        "json_schema_extra": {
            "example": {"field": "quality", "value": 70}
        }
    }
