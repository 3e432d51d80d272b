# imagepipe/constants.py
"""
Global Constants for imagepipe

Centralized location for defaults that would otherwise be hardcoded
throughout the codebase.
"""

from typing import Dict, Tuple

from .enums import AnchorPosition, FitMode, ImageFormat, TextAlignment

# =============================================================================
# CACHE DEFAULTS
# =============================================================================

DEFAULT_CACHE_MAX_SIZE = 100
DEFAULT_CACHE_TTL_SECONDS = 3600

# =============================================================================
# ENCODING DEFAULTS
# =============================================================================

DEFAULT_QUALITY = 80
MIN_QUALITY = 1
MAX_QUALITY = 100

# Formats whose encoders take a lossy quality parameter
QUALITY_AWARE_FORMATS = {ImageFormat.JPEG, ImageFormat.WEBP, ImageFormat.AVIF}

# =============================================================================
# RESIZE DEFAULTS
# =============================================================================

DEFAULT_FIT_MODE = FitMode.COVER
DEFAULT_GRAVITY = AnchorPosition.CENTER

# Gravity -> Pillow centering tuple used by ImageOps.fit/pad
GRAVITY_CENTERING: Dict[AnchorPosition, Tuple[float, float]] = {
    AnchorPosition.TOP_LEFT: (0.0, 0.0),
    AnchorPosition.TOP_RIGHT: (1.0, 0.0),
    AnchorPosition.BOTTOM_LEFT: (0.0, 1.0),
    AnchorPosition.BOTTOM_RIGHT: (1.0, 1.0),
    AnchorPosition.CENTER: (0.5, 0.5),
}

# =============================================================================
# CONTRAST
# =============================================================================

# Mid-gray value held fixed by the linear contrast transform
CONTRAST_MIDPOINT = 128

# =============================================================================
# OVERLAY DEFAULTS
# =============================================================================

DEFAULT_OVERLAY_FONT = "Arial"
DEFAULT_OVERLAY_SIZE = 24
DEFAULT_OVERLAY_COLOR = "white"
DEFAULT_OVERLAY_OPACITY = 1.0
DEFAULT_OVERLAY_POSITION = AnchorPosition.BOTTOM_RIGHT
DEFAULT_OVERLAY_PADDING = 10

# Monospace heuristic: average glyph advance as a fraction of the font size
TEXT_WIDTH_FACTOR = 0.6

# Pillow text anchors, bottom-aligned so y marks the text's lower edge
TEXT_ANCHORS: Dict[TextAlignment, str] = {
    TextAlignment.START: "ld",
    TextAlignment.MIDDLE: "md",
    TextAlignment.END: "rd",
}

# =============================================================================
# AVATAR DEFAULTS
# =============================================================================

DEFAULT_AVATAR_SIZE = 100
AVATAR_FORMAT = ImageFormat.PNG
AVATAR_QUALITY = 100

# =============================================================================
# ANALYSIS
# =============================================================================

# Histogram bins per channel used for dominant color detection
DOMINANT_COLOR_BINS = 16

DEFAULT_TRIM_THRESHOLD = 10
