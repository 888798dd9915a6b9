"""
URL and media type helpers.

Classification of filenames, MIME types and download URLs. Everything here is
pure and synchronous so it can run before any registry mutation or network call.
"""
import time
from typing import Optional
from urllib.parse import unquote, urlsplit

from constants import MediaTypes
from domain.value_objects import MediaCategory
from exceptions import ValidationError


def is_downloadable_url(value: str) -> bool:
    """
    Check that a string is an absolute http(s) URL.

    Args:
        value: Candidate URL

    Returns:
        True if the URL has an http/https scheme, a host name and, when
        present, a valid port
    """
    if not value or not isinstance(value, str):
        return False
    try:
        parts = urlsplit(value.strip())
        # Raises for a non-numeric or out-of-range port
        port = parts.port
    except ValueError:
        return False
    if port == 0:
        return False
    return parts.scheme.lower() in MediaTypes.ALLOWED_URL_SCHEMES and bool(parts.hostname)


def extension_of(path: str) -> str:
    """
    Lower-cased extension of the final path component.

    Args:
        path: URL path or filename

    Returns:
        Text after the last '.', or an empty string when there is none
    """
    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def media_category_of(mime_type_or_extension: str) -> MediaCategory:
    """
    Classify a MIME type ("video/mp4") or a bare extension ("mp4").

    Args:
        mime_type_or_extension: MIME type or extension, with or without a leading dot

    Returns:
        MediaCategory, UNKNOWN when unrecognized
    """
    value = (mime_type_or_extension or "").strip().lower()
    if "/" in value:
        return MediaCategory.from_mime_prefix(value)

    ext = value.lstrip(".")
    if ext in MediaTypes.VIDEO_EXTENSIONS:
        return MediaCategory.VIDEO
    if ext in MediaTypes.AUDIO_EXTENSIONS:
        return MediaCategory.AUDIO
    if ext in MediaTypes.IMAGE_EXTENSIONS:
        return MediaCategory.IMAGE
    return MediaCategory.UNKNOWN


def is_video_extension(ext: str) -> bool:
    return ext.lower() in MediaTypes.VIDEO_EXTENSIONS


def mime_type_for(filename: str) -> str:
    """MIME type of a video filename; unrecognized extensions map to video/mp4."""
    return MediaTypes.VIDEO_MIME_TYPES.get(extension_of(filename), MediaTypes.DEFAULT_VIDEO_MIME_TYPE)


def output_mime_type(fmt: str) -> str:
    """Content type for an exported file in the given output format."""
    return MediaTypes.OUTPUT_MIME_TYPES.get(fmt.lower(), MediaTypes.FALLBACK_MIME_TYPE)


def filename_from_url(url: str) -> str:
    """
    Display name for a remote entry.

    Args:
        url: Download URL

    Returns:
        Percent-decoded last path segment when it looks like a filename,
        otherwise a synthesized ``video_<epoch-millis>.mp4``
    """
    try:
        segment = unquote(urlsplit(url).path.rsplit("/", 1)[-1])
    except ValueError:
        segment = ""
    if segment and "." in segment:
        return segment
    return f"video_{int(time.time() * 1000)}.mp4"


def validate_download_url(url: str) -> str:
    """
    Reject anything that is not a direct http(s) link to a video file.

    Args:
        url: User-supplied URL

    Returns:
        The stripped URL

    Raises:
        ValidationError: If the URL is empty, malformed, uses another scheme,
            or does not end in a recognized video extension
    """
    candidate = (url or "").strip()
    if not candidate:
        raise ValidationError("Please enter a video URL", {"url": url})
    if not is_downloadable_url(candidate):
        raise ValidationError("Please enter a valid http(s) URL", {"url": url})

    ext = extension_of(urlsplit(candidate).path)
    if not is_video_extension(ext):
        raise ValidationError(
            "URL must be a direct link to a video file (mp4, avi, mov, etc.)",
            {"url": url, "extension": ext},
        )
    return candidate


def describe_url(url: str) -> Optional[dict]:
    """
    Preview information for a URL being typed into the download box.

    Returns:
        Dict with filename and type label, or None if the URL is not a direct video link
    """
    try:
        candidate = validate_download_url(url)
    except ValidationError:
        return None
    path = urlsplit(candidate).path
    filename = unquote(path.rsplit("/", 1)[-1])
    ext = extension_of(path)
    return {
        "filename": filename or "Video File",
        "extension": ext,
        "label": f"Type: {ext.upper()} | Direct Link",
        "mime_type": mime_type_for(filename),
    }
