"""
Models for the image pipeline.
"""

from .pipeline_step_model import (
    DecodedImage,
    EncodedImage,
    PipelineStep,
    SourceMetadata,
)
from .processed_result_model import ImageStats, ProcessedResult, ResultMetadata
from .process_options_model import (
    BackgroundColor,
    CropRegion,
    OptionsInput,
    OverlayOptions,
    ProcessOptions,
    coerce_options,
)

__all__ = [
    "BackgroundColor",
    "CropRegion",
    "DecodedImage",
    "EncodedImage",
    "ImageStats",
    "OptionsInput",
    "OverlayOptions",
    "PipelineStep",
    "ProcessOptions",
    "ProcessedResult",
    "ResultMetadata",
    "SourceMetadata",
    "coerce_options",
]
