# imagepipe/enums.py
"""
Centralized enums for imagepipe.

Type-safe constants shared by the models, the pipeline and the logger.
"""

from enum import Enum


# =============================================================================
# IMAGE ENUMS
# =============================================================================


class ImageFormat(str, Enum):
    """Output formats accepted by the pipeline."""

    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"
    GIF = "gif"
    TIFF = "tiff"


class FitMode(str, Enum):
    """How an image is fitted into a width/height box when both are given."""

    COVER = "cover"
    CONTAIN = "contain"
    FILL = "fill"
    INSIDE = "inside"
    OUTSIDE = "outside"


class AnchorPosition(str, Enum):
    """Anchor used for overlays and for the cover/contain gravity."""

    TOP_LEFT = "top-left"
    TOP_RIGHT = "top-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_RIGHT = "bottom-right"
    CENTER = "center"


class TextAlignment(str, Enum):
    """Horizontal text alignment relative to the computed x coordinate."""

    START = "start"
    MIDDLE = "middle"
    END = "end"


class StepKind(str, Enum):
    """Discrete transform steps understood by an image engine."""

    RESIZE = "resize"
    CROP = "crop"
    BLUR = "blur"
    SHARPEN = "sharpen"
    GRAYSCALE = "grayscale"
    TINT = "tint"
    MODULATE = "modulate"
    LINEAR_CONTRAST = "linear_contrast"
    ROTATE = "rotate"
    FLIP = "flip"
    FLOP = "flop"
    COMPOSITE_OVERLAY = "composite_overlay"
    CIRCULAR_MASK = "circular_mask"
    TRIM = "trim"
    ENCODE = "encode"


class BlendMode(str, Enum):
    """Compositing rules for overlay layers."""

    OVER = "over"
    DEST_IN = "dest-in"


class Operation(str, Enum):
    """Public operation names carried by classified errors."""

    PROCESS = "process"
    BATCH_PROCESS = "batch_process"
    CONVERT = "convert"
    CREATE_AVATAR = "create_avatar"
    GET_STATS = "get_stats"
    GET_DOMINANT_COLOR = "get_dominant_color"
    ADD_WATERMARK = "add_watermark"
    IS_ANIMATED = "is_animated"
    TRIM = "trim"


# =============================================================================
# LOGGING ENUMS
# =============================================================================


class LogLevel(str, Enum):
    """Log level constants for centralized logging system."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogSource(str, Enum):
    """Log source constants for identifying log origins."""

    SYSTEM = "system"
    PIPELINE = "pipeline"
    CACHE = "cache"
    SCHEDULER = "scheduler"
    ENGINE = "engine"


class LoggerName(str, Enum):
    """Logger name constants for categorizing log entries."""

    IMAGE_PIPELINE = "image_pipeline"
    PIPELINE_COMPOSER = "pipeline_composer"
    RESULT_CACHE = "result_cache"
    BATCH_SCHEDULER = "batch_scheduler"
    IMAGE_ENGINE = "image_engine"
    OVERLAY_RENDERER = "overlay_renderer"
    IMAGE_ANALYZER = "image_analyzer"
    SYSTEM = "system"


class LogEmoji(str, Enum):
    """Type-safe emoji constants for log messages."""

    # Status emojis
    SUCCESS = "✅"
    FAILED = "❌"
    ERROR = "❌"
    WARNING = "⚠️"
    INFO = "ℹ️"
    DEBUG = "🐞"
    CRITICAL = "☠️"

    # Work emojis
    PROCESSING = "🔄"
    QUEUE = "📋"

    # Image emojis
    IMAGE = "🖼️"
    OVERLAY = "🎨"

    # Cache emojis
    CACHE = "🗄️"
    HIT = "🎯"
    MISS = "❓"
    STORE = "💾"
    EXPIRED = "🗑️"
    CLEANUP = "🧹"

    # System emojis
    SYSTEM = "⚙️"
    STARTUP = "🚀"
    CHART = "📊"
    SEARCH = "🔍"
