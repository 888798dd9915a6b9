"""
TransferProgress Value Object

One progress observation emitted by the streaming fetch pipeline.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class TransferProgress:
    """
    Progress of a streaming transfer.

    ``fraction`` is only present when the server advertised a total length;
    without one, consumers get the cumulative ``bytes_received`` and must show
    indeterminate progress.
    """

    bytes_received: int
    total_bytes: Optional[int] = None
    fraction: Optional[float] = None

    @property
    def is_determinate(self) -> bool:
        return self.fraction is not None

    @property
    def percent(self) -> Optional[float]:
        """Fraction as a 0-100 percentage, or None when indeterminate."""
        if self.fraction is None:
            return None
        return self.fraction * 100
