# imagepipe/services/image_pipeline/utils/__init__.py
"""
Image pipeline utilities.
"""

from .fingerprint import build_fingerprint, canonical_options_json, digest_input
from .font_cache import FontCache, font_cache, get_font
from .overlay_utils import OverlayRenderer
from .positioning import Placement, estimate_text_width, place

__all__ = [
    "build_fingerprint",
    "canonical_options_json",
    "digest_input",
    "FontCache",
    "font_cache",
    "get_font",
    "OverlayRenderer",
    "Placement",
    "estimate_text_width",
    "place",
]
