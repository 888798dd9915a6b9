"""
Encoders for entry conversion.

No real transcoding happens in this application: the passthrough encoder
hands back the source bytes unchanged and only the exported filename and
content type change. A real encoder can be registered per media category
without touching the conversion flow.
"""
import logging
from typing import Dict, Optional

from domain.entities import OutputSettings
from domain.value_objects import MediaCategory
from services.interfaces import IEncoder

logger = logging.getLogger(__name__)


class PassthroughEncoder(IEncoder):
    """Returns a copy of the source bytes for any supported category."""

    def __init__(self, categories=None):
        self.categories = frozenset(categories or (
            MediaCategory.VIDEO, MediaCategory.AUDIO, MediaCategory.IMAGE
        ))

    def supports(self, category: MediaCategory) -> bool:
        return category in self.categories

    async def encode(self, source: memoryview, settings: OutputSettings, target_format: str) -> bytes:
        logger.debug(f"Passthrough encode to {target_format} ({source.nbytes} bytes)")
        return source.tobytes()


class EncoderRegistry:
    """Maps media categories to the encoder responsible for them."""

    def __init__(self, default: Optional[IEncoder] = None):
        self._encoders: Dict[MediaCategory, IEncoder] = {}
        self._default = default

    def register(self, category: MediaCategory, encoder: IEncoder) -> None:
        if not encoder.supports(category):
            raise ValueError(f"{type(encoder).__name__} does not support {category.value}")
        self._encoders[category] = encoder

    def for_category(self, category: MediaCategory) -> Optional[IEncoder]:
        encoder = self._encoders.get(category)
        if encoder is not None:
            return encoder
        if self._default is not None and self._default.supports(category):
            return self._default
        return None


def default_encoder_registry() -> EncoderRegistry:
    return EncoderRegistry(default=PassthroughEncoder())
