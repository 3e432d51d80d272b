# imagepipe/services/image_pipeline/engines/base_engine.py
"""
Base Image Engine - Abstract interface for the pixel-processing backend.

The pipeline never touches pixels itself. It asks an engine to decode bytes,
apply one step at a time and encode the result. Any backend that implements
this contract can be plugged into the ImageProcessor.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple, Union

from ....enums import ImageFormat, StepKind
from ....models.pipeline_step_model import DecodedImage, EncodedImage, PipelineStep


class ImageEngine(ABC):
    """
    Abstract base class for image engines.

    Engines are synchronous; the pipeline offloads every call to an executor.
    Engines may raise classified errors (GeometryError, UnsupportedFormatError)
    when they know the failure kind. Anything else is classified by the
    composer as an EngineError for the failing stage.
    """

    @property
    @abstractmethod
    def supported_steps(self) -> list[StepKind]:
        """Return the step kinds this engine can apply."""
        pass

    @abstractmethod
    def decode(self, data: Union[bytes, str]) -> DecodedImage:
        """
        Decode image bytes (or an engine-understood reference) into pixels.

        Raises:
            Exception: If the input is corrupt or its format is unknown
        """
        pass

    @abstractmethod
    def apply(self, pixels: Any, step: PipelineStep) -> Any:
        """
        Apply one transform step and return the new pixels.

        Raises:
            GeometryError: If the step's geometry does not fit the pixels
            Exception: For any other failure
        """
        pass

    @abstractmethod
    def encode(
        self,
        pixels: Any,
        format: Union[ImageFormat, str],
        quality: Optional[int] = None,
    ) -> EncodedImage:
        """
        Encode pixels.

        Args:
            pixels: Engine pixels
            format: Target format
            quality: Encoder quality, None for the encoder default

        Raises:
            UnsupportedFormatError: If the engine cannot write the format
        """
        pass

    @abstractmethod
    def render_layer(self, pixels: Any, step: PipelineStep) -> PipelineStep:
        """
        Materialize an overlay step against the current pixels.

        composite_overlay and circular_mask steps are composed before the final
        geometry is known; this turns them into steps carrying a ready layer.
        """
        pass

    @abstractmethod
    def dominant_color(self, pixels: Any) -> Tuple[int, int, int]:
        """Return the most frequent color as (r, g, b)."""
        pass

    def supports_step(self, kind: StepKind) -> bool:
        """Check if this engine can apply the given step kind."""
        return kind in self.supported_steps
