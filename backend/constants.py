"""
Application-wide constants and configuration keys.

This module centralizes all magic strings and numbers used throughout the application
to improve maintainability and reduce duplication.
"""
from enum import Enum


class OperationKind(str, Enum):
    """
    Kinds of long-running work that can be in flight for an entry.

    The registry keeps one admission guard set per kind, so an entry may be
    downloading and converting at the same time but never converting twice.
    """

    CONVERSION = 'CONVERSION'
    DOWNLOAD = 'DOWNLOAD'


class ErrorKind(str, Enum):
    """Error categories reported to observers and API clients"""

    VALIDATION = 'validation'
    NETWORK = 'network'
    CANCELLED = 'cancelled'
    CONFLICT = 'conflict'
    NOT_FOUND = 'not_found'
    UNKNOWN = 'unknown'

    @classmethod
    def get_ui_label(cls, kind: 'ErrorKind') -> str:
        """Get human-readable label for UI display"""
        labels = {
            cls.VALIDATION: "Invalid Request",
            cls.NETWORK: "Download Failed",
            cls.CANCELLED: "Download Cancelled",
            cls.CONFLICT: "Already In Progress",
            cls.NOT_FOUND: "File Not Found",
            cls.UNKNOWN: "Unknown Error"
        }
        return labels.get(kind, "Unknown Error")

    @classmethod
    def is_user_facing(cls, kind: 'ErrorKind') -> bool:
        """Conflicts are reported as no-ops, never as user-facing errors"""
        return kind != cls.CONFLICT


class MediaTypes:
    """Recognized extensions and MIME mappings"""

    VIDEO_EXTENSIONS = frozenset({
        'mp4', 'avi', 'mov', 'mkv', 'webm', 'flv', 'wmv', 'm4v', '3gp', 'ogv'
    })
    AUDIO_EXTENSIONS = frozenset({
        'mp3', 'wav', 'flac', 'aac', 'ogg', 'm4a', 'opus', 'wma'
    })
    IMAGE_EXTENSIONS = frozenset({
        'jpg', 'jpeg', 'png', 'webp', 'gif', 'bmp', 'svg', 'tif', 'tiff'
    })

    VIDEO_MIME_TYPES = {
        'mp4': 'video/mp4',
        'avi': 'video/x-msvideo',
        'mov': 'video/quicktime',
        'mkv': 'video/x-matroska',
        'webm': 'video/webm',
        'flv': 'video/x-flv',
        'wmv': 'video/x-ms-wmv',
        'm4v': 'video/x-m4v',
        '3gp': 'video/3gpp',
        'ogv': 'video/ogg',
    }
    DEFAULT_VIDEO_MIME_TYPE = 'video/mp4'

    # Content types for exported files, keyed by output format
    OUTPUT_MIME_TYPES = {
        **VIDEO_MIME_TYPES,
        'mp3': 'audio/mpeg',
        'wav': 'audio/wav',
        'flac': 'audio/flac',
        'aac': 'audio/aac',
        'ogg': 'audio/ogg',
        'jpeg': 'image/jpeg',
        'png': 'image/png',
        'webp': 'image/webp',
        'gif': 'image/gif',
        'bmp': 'image/bmp',
    }
    FALLBACK_MIME_TYPE = 'application/octet-stream'

    ALLOWED_URL_SCHEMES = frozenset({'http', 'https'})


class MediaOptions:
    """Enumerated output setting options offered to the user"""

    VIDEO_FORMATS = ('mp4', 'avi', 'mov', 'mkv', 'webm')
    AUDIO_FORMATS = ('mp3', 'wav', 'flac', 'aac', 'ogg')
    IMAGE_FORMATS = ('jpeg', 'png', 'webp', 'gif', 'bmp')

    QUALITY_MIN = 10
    QUALITY_MAX = 100
    QUALITY_STEP = 10

    RESOLUTIONS = ('3840x2160', '1920x1080', '1280x720', '854x480')
    FPS_OPTIONS = (60, 30, 24)
    BITRATE_OPTIONS = (320, 256, 192, 128, 96)  # kbps

    MP3_FORMAT = 'mp3'


class ServerConfig:
    """Server configuration constants"""

    HOST = "127.0.0.1"
    PORT = 8890


class NetworkConfig:
    """Outbound HTTP configuration constants"""

    CONNECT_TIMEOUT_SECONDS = 10.0
    READ_TIMEOUT_SECONDS = 60.0
    FOLLOW_REDIRECTS = True
    USER_AGENT = "MediaForge/1.0"


class WebSocketConfig:
    """WebSocket configuration constants"""

    SEND_QUEUE_SIZE = 1000  # Per-client queued messages before dropping


class HTTPStatus:
    """HTTP status codes used throughout the application"""

    # Success
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204

    # Client Errors
    BAD_REQUEST = 400
    NOT_FOUND = 404
    CONFLICT = 409
    REQUEST_ENTITY_TOO_LARGE = 413

    # Server Errors
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503

    @staticmethod
    def is_success(status_code: int) -> bool:
        """True for any 2xx status"""
        return 200 <= status_code < 300
