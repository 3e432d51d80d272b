# imagepipe/services/image_pipeline/utils/font_cache.py
"""
Font Cache - shared font loading for overlay text rendering.

Fonts are resolved once per (family, size) and reused across renders. When no
TrueType file can be found for a family, Pillow's bundled default font is
used at the requested size so rendering never depends on system fonts.
"""

from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Dict, List, Union

from PIL import ImageFont

from ....enums import LoggerName, LogSource
from ...logger import get_service_logger

logger = get_service_logger(LoggerName.OVERLAY_RENDERER, LogSource.PIPELINE)

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]


@dataclass
class FontCacheStats:
    """Statistics for font cache performance monitoring."""

    cache_hits: int = 0
    cache_misses: int = 0
    fonts_loaded: int = 0
    total_requests: int = 0

    @property
    def hit_ratio(self) -> float:
        """Calculate cache hit ratio as percentage."""
        if self.total_requests == 0:
            return 0.0
        return (self.cache_hits / self.total_requests) * 100.0


class FontCache:
    """
    Thread-safe font cache.

    Engine work runs in executor threads, so lookups are guarded by a lock.
    """

    # Font fallback hierarchy
    FONT_FALLBACKS: Dict[str, List[str]] = {
        "Arial": [
            "/System/Library/Fonts/Supplemental/Arial.ttf",  # macOS
            "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",  # Linux
            "C:\\Windows\\Fonts\\arial.ttf",  # Windows
        ],
        "Helvetica": [
            "/System/Library/Fonts/Helvetica.ttc",  # macOS
            "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",  # Linux
            "C:\\Windows\\Fonts\\arial.ttf",  # Windows fallback
        ],
        "Times New Roman": [
            "/System/Library/Fonts/Supplemental/Times New Roman.ttf",  # macOS
            "/usr/share/fonts/truetype/liberation/LiberationSerif-Regular.ttf",  # Linux
            "C:\\Windows\\Fonts\\times.ttf",  # Windows
        ],
        "Courier New": [
            "/System/Library/Fonts/Supplemental/Courier New.ttf",  # macOS
            "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",  # Linux
            "C:\\Windows\\Fonts\\cour.ttf",  # Windows
        ],
    }

    DEFAULT_FONT_PATH = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"

    def __init__(self):
        self._fonts: Dict[str, FontType] = {}
        self._lock = Lock()
        self._stats = FontCacheStats()

    def get_font(self, font_family: str, size: int) -> FontType:
        """
        Get a font, loading it on first use.

        Args:
            font_family: Font family name (e.g., 'Arial', 'Helvetica')
            size: Font size in pixels

        Returns:
            Loaded font object, with fallback if requested font unavailable
        """
        cache_key = f"{font_family}_{size}"

        with self._lock:
            self._stats.total_requests += 1

            if cache_key in self._fonts:
                self._stats.cache_hits += 1
                return self._fonts[cache_key]

            self._stats.cache_misses += 1
            font = self._load_font_with_fallback(font_family, size)
            self._fonts[cache_key] = font
            self._stats.fonts_loaded += 1
            return font

    def _load_font_with_fallback(self, font_family: str, size: int) -> FontType:
        for font_path in self.FONT_FALLBACKS.get(font_family, []):
            if Path(font_path).exists():
                try:
                    logger.debug(f"Loading font {font_family}:{size} from {font_path}")
                    return ImageFont.truetype(font_path, size)
                except OSError as e:
                    logger.warning(f"Failed to load font from {font_path}: {e}")

        # System font discovery by name
        try:
            return ImageFont.truetype(font_family, size)
        except OSError:
            pass

        if Path(self.DEFAULT_FONT_PATH).exists():
            return ImageFont.truetype(self.DEFAULT_FONT_PATH, size)

        logger.debug(f"Font {font_family}:{size} not found, using Pillow default font")
        return ImageFont.load_default(size=size)

    def get_stats(self) -> FontCacheStats:
        """Get current cache performance statistics."""
        with self._lock:
            return FontCacheStats(
                cache_hits=self._stats.cache_hits,
                cache_misses=self._stats.cache_misses,
                fonts_loaded=self._stats.fonts_loaded,
                total_requests=self._stats.total_requests,
            )

    def clear(self) -> None:
        """Clear font cache."""
        with self._lock:
            self._fonts.clear()
            self._stats = FontCacheStats()


# Shared instance; fonts are immutable so sharing across processors is safe
font_cache = FontCache()


def get_font(font_family: str, size: int) -> FontType:
    """Font lookup through the shared cache."""
    return font_cache.get_font(font_family, size)
