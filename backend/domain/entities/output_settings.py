"""
OutputSettings Entity

The user's per-entry conversion preferences. Which fields exist depends on the
entry's media category: resolution and fps for video, bitrate for audio.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple

from constants import MediaOptions
from domain.value_objects import MediaCategory
from exceptions import ValidationError


_FORMATS_BY_CATEGORY: Dict[MediaCategory, Tuple[str, ...]] = {
    MediaCategory.VIDEO: MediaOptions.VIDEO_FORMATS,
    MediaCategory.AUDIO: MediaOptions.AUDIO_FORMATS,
    MediaCategory.IMAGE: MediaOptions.IMAGE_FORMATS,
    MediaCategory.UNKNOWN: (),
}

_FIELDS_BY_CATEGORY: Dict[MediaCategory, Tuple[str, ...]] = {
    MediaCategory.VIDEO: ("format", "quality", "resolution", "fps"),
    MediaCategory.AUDIO: ("format", "quality", "bitrate"),
    MediaCategory.IMAGE: ("format", "quality"),
    MediaCategory.UNKNOWN: ("quality",),
}


@dataclass
class OutputSettings:
    """Mutable output preferences for one entry."""

    category: MediaCategory
    format: Optional[str]
    quality: int
    resolution: Optional[str] = None
    fps: Optional[int] = None
    bitrate: Optional[int] = None

    @property
    def available_formats(self) -> Tuple[str, ...]:
        return _FORMATS_BY_CATEGORY[self.category]

    @property
    def editable_fields(self) -> Tuple[str, ...]:
        return _FIELDS_BY_CATEGORY[self.category]

    def apply(self, field: str, value: Any) -> None:
        """
        Apply one settings mutation.

        Quality and bitrate are snapped to their enumerated options; format,
        resolution and fps must already be one of the offered values.

        Args:
            field: Setting name
            value: New value (strings from form inputs are accepted)

        Raises:
            ValidationError: If the field does not apply to this category or
                the value is not an offered option
        """
        if field not in self.editable_fields:
            raise ValidationError(
                f"Setting '{field}' is not available for {self.category.value} files",
                {field: value},
            )

        if field == "format":
            fmt = str(value).strip().lower()
            if fmt not in self.available_formats:
                raise ValidationError(f"Unsupported output format: {value}", {field: value})
            self.format = fmt
        elif field == "quality":
            self.quality = clamp_quality(_as_int(field, value))
        elif field == "bitrate":
            self.bitrate = nearest_option(_as_int(field, value), MediaOptions.BITRATE_OPTIONS)
        elif field == "resolution":
            resolution = str(value).strip().lower()
            if resolution not in MediaOptions.RESOLUTIONS:
                raise ValidationError(f"Unsupported resolution: {value}", {field: value})
            self.resolution = resolution
        elif field == "fps":
            fps = _as_int(field, value)
            if fps not in MediaOptions.FPS_OPTIONS:
                raise ValidationError(f"Unsupported frame rate: {value}", {field: value})
            self.fps = fps

    def to_dict(self) -> Dict[str, Any]:
        """Only the fields that apply to this category."""
        values = asdict(self)
        return {name: values[name] for name in ("format",) + self.editable_fields if name in values}


def _as_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Setting '{field}' must be a number", {field: value})
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"Setting '{field}' must be a number", {field: value})


def clamp_quality(value: int) -> int:
    """Clamp into [10, 100] and snap to the nearest step of 10."""
    bounded = max(MediaOptions.QUALITY_MIN, min(MediaOptions.QUALITY_MAX, value))
    step = MediaOptions.QUALITY_STEP
    return int((bounded + step // 2) // step * step)


def nearest_option(value: int, options: Tuple[int, ...]) -> int:
    """Pick the closest offered option; ties go to the higher value."""
    return min(options, key=lambda option: (abs(option - value), -option))


def default_settings_for(category: MediaCategory) -> OutputSettings:
    """
    Fresh default settings for a category.

    Args:
        category: Media category of the entry

    Returns:
        New OutputSettings instance (never shared between entries)
    """
    if category == MediaCategory.VIDEO:
        return OutputSettings(category, format="mp4", quality=80, resolution="1920x1080", fps=30)
    if category == MediaCategory.AUDIO:
        return OutputSettings(category, format="mp3", quality=80, bitrate=192)
    if category == MediaCategory.IMAGE:
        return OutputSettings(category, format="jpeg", quality=90)
    return OutputSettings(category, format=None, quality=80)
