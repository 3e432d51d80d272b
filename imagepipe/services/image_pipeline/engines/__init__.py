# imagepipe/services/image_pipeline/engines/__init__.py
"""
Image engines - pluggable pixel backends for the pipeline.
"""

from .base_engine import ImageEngine
from .pillow_engine import PillowEngine

__all__ = ["ImageEngine", "PillowEngine"]
