# imagepipe/services/image_pipeline/analyzer.py
"""
Image Analyzer - read-only probes of an input image.

Nothing here is cached; every call decodes the input again.
"""

import asyncio
from functools import partial

from ...enums import LogEmoji, LoggerName, LogSource
from ...exceptions import EngineError, ImageProcessingError
from ...models.pipeline_step_model import DecodedImage
from ...models.processed_result_model import ImageStats
from ...utils.validation_helpers import ImageInput
from ..logger import get_service_logger
from .engines.base_engine import ImageEngine

logger = get_service_logger(LoggerName.IMAGE_ANALYZER, LogSource.PIPELINE, LogEmoji.SEARCH)


class ImageAnalyzer:
    """Metadata and color statistics on top of an engine."""

    def __init__(self, engine: ImageEngine):
        self.engine = engine

    async def _decode(self, data: ImageInput) -> DecodedImage:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(self.engine.decode, data))
        except ImageProcessingError as e:
            if e.stage is None:
                e.stage = "decode"
            raise
        except Exception as e:
            raise EngineError(
                f"Engine failed during decode: {e}", stage="decode", cause=e
            ) from e

    async def get_stats(self, data: ImageInput) -> ImageStats:
        """
        Read dimensions and format details of an input.

        aspect_ratio is width / height, with a zero height treated as 1. size is
        the input length in bytes, or the file size for a path reference.
        """
        meta = (await self._decode(data)).metadata
        size = meta.byte_size or (len(data) if isinstance(data, bytes) else 0)
        return ImageStats(
            size=size,
            format=meta.format,
            width=meta.width,
            height=meta.height,
            aspect_ratio=meta.width / (meta.height or 1),
            has_alpha=meta.has_alpha,
            color_space=meta.color_space,
            channels=meta.channels,
            compression=meta.compression,
        )

    async def get_dominant_color(self, data: ImageInput) -> str:
        """Return the most frequent color as an "rgb(r, g, b)" string."""
        decoded = await self._decode(data)
        loop = asyncio.get_running_loop()
        try:
            red, green, blue = await loop.run_in_executor(
                None, partial(self.engine.dominant_color, decoded.pixels)
            )
        except ImageProcessingError:
            raise
        except Exception as e:
            raise EngineError(
                f"Engine failed computing dominant color: {e}", cause=e
            ) from e

        color = f"rgb({red}, {green}, {blue})"
        logger.debug(f"Dominant color {color}")
        return color

    async def is_animated(self, data: ImageInput) -> bool:
        """True when the input has more than one frame or page."""
        return (await self._decode(data)).metadata.is_animated
