"""
imagepipe - cached, sequenced image transform pipelines.

Usage:
    from imagepipe import ImageProcessor

    processor = ImageProcessor()
    result = await processor.process(data, {"width": 800, "format": "webp"})
"""

from .config import Settings, settings
from .enums import AnchorPosition, FitMode, ImageFormat, Operation, StepKind
from .exceptions import (
    EngineError,
    GeometryError,
    ImageProcessingError,
    UnsupportedFormatError,
    ValidationError,
    classify_error,
    reclassify,
)
from .models import (
    BackgroundColor,
    CropRegion,
    ImageStats,
    OverlayOptions,
    PipelineStep,
    ProcessedResult,
    ProcessOptions,
)
from .services.image_pipeline import (
    ImageEngine,
    ImageProcessor,
    PillowEngine,
    PipelineComposer,
    Placement,
    SequentialBatchScheduler,
    build_fingerprint,
    place,
)
from .services.logger import configure_logging, get_service_logger
from .utils.cache_manager import ResultCache

__version__ = "0.1.0"

__all__ = [
    "AnchorPosition",
    "BackgroundColor",
    "CropRegion",
    "EngineError",
    "FitMode",
    "GeometryError",
    "ImageEngine",
    "ImageFormat",
    "ImageProcessingError",
    "ImageProcessor",
    "ImageStats",
    "Operation",
    "OverlayOptions",
    "PillowEngine",
    "PipelineComposer",
    "PipelineStep",
    "Placement",
    "ProcessOptions",
    "ProcessedResult",
    "ResultCache",
    "SequentialBatchScheduler",
    "Settings",
    "StepKind",
    "UnsupportedFormatError",
    "ValidationError",
    "build_fingerprint",
    "classify_error",
    "configure_logging",
    "get_service_logger",
    "place",
    "reclassify",
    "settings",
]
