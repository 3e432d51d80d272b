# imagepipe/models/pipeline_step_model.py
"""
Pipeline step and engine value objects.

PipelineStep is the tagged variant the composer produces and the engine
consumes. The engine-side dataclasses carry decoded pixels and metadata
between engine calls without exposing engine internals to the composer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..enums import StepKind


@dataclass(frozen=True)
class PipelineStep:
    """
    One discrete transform.

    Params by kind:
        resize: width, height, fit, gravity, background
        crop: left, top, width, height
        blur: sigma
        tint: color
        modulate: brightness, saturation
        linear_contrast: multiplier, offset
        rotate: angle
        composite_overlay: overlay (OverlayOptions) before rendering,
                           layer (engine image) after, blend
        circular_mask: radius, blend
        trim: threshold
        encode: format, quality
    """

    kind: StepKind
    params: Dict[str, Any] = field(default_factory=dict)

    def with_params(self, **params: Any) -> "PipelineStep":
        return PipelineStep(kind=self.kind, params={**self.params, **params})


@dataclass(frozen=True)
class SourceMetadata:
    """What the engine learned while decoding an input."""

    format: str
    width: int
    height: int
    has_alpha: bool = False
    channels: int = 0
    color_space: str = "unknown"
    page_count: int = 1
    compression: Optional[str] = None
    byte_size: int = 0

    @property
    def is_animated(self) -> bool:
        return self.page_count > 1


@dataclass
class DecodedImage:
    """Engine pixels plus the metadata of the source they came from."""

    pixels: Any
    metadata: SourceMetadata


@dataclass(frozen=True)
class EncodedImage:
    """Engine encode output."""

    data: bytes
    metadata: SourceMetadata
