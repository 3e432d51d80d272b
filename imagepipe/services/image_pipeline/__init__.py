# imagepipe/services/image_pipeline/__init__.py
"""
Image Pipeline Service Module

Request orchestration for image transforms:
- ImageProcessor: public operations with caching and batch sequencing
- PipelineComposer: option bag -> ordered engine steps
- SequentialBatchScheduler: one-at-a-time FIFO execution
- ImageAnalyzer: uncached metadata and color probes
"""

from .analyzer import ImageAnalyzer
from .batch_scheduler import QueueItem, SequentialBatchScheduler
from .composer import PipelineComposer, ResolvedGeometry, resolve_geometry, round_half_up
from .engines import ImageEngine, PillowEngine
from .image_pipeline import ImageProcessor
from .utils import Placement, build_fingerprint, estimate_text_width, place

__all__ = [
    "ImageAnalyzer",
    "ImageEngine",
    "ImageProcessor",
    "PillowEngine",
    "PipelineComposer",
    "Placement",
    "QueueItem",
    "ResolvedGeometry",
    "SequentialBatchScheduler",
    "build_fingerprint",
    "estimate_text_width",
    "place",
    "resolve_geometry",
    "round_half_up",
]
