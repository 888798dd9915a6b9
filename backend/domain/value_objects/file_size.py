"""
FileSize Value Object

Immutable representation of a file size with formatting capabilities.
"""

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class FileSize:
    """
    Immutable file size value object.

    Provides human-readable formatting and validation.
    """

    bytes: int

    UNITS = ("Bytes", "KB", "MB", "GB")

    def __post_init__(self):
        """Validate file size."""
        if self.bytes < 0:
            raise ValueError(f"File size cannot be negative: {self.bytes}")

    def to_human_readable(self) -> str:
        """
        Format size in human-readable format.

        Uses two decimals with trailing zeros dropped, capped at GB.

        Returns:
            String like "1.5 MB", "256 KB" or "0 Bytes"
        """
        if self.bytes == 0:
            return "0 Bytes"
        exponent = min(int(math.floor(math.log(self.bytes, 1024))), len(self.UNITS) - 1)
        value = round(self.bytes / (1024 ** exponent), 2)
        return f"{value:g} {self.UNITS[exponent]}"

    def __str__(self) -> str:
        """String representation."""
        return self.to_human_readable()
