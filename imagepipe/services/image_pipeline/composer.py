# imagepipe/services/image_pipeline/composer.py
"""
Pipeline Composer - turns a ProcessOptions bag into an ordered list of
engine steps and runs them.

Step order is fixed regardless of how the options were built:

    resize -> crop
    blur -> sharpen -> grayscale -> tint
    modulate -> linear_contrast
    rotate -> flip -> flop
    composite_overlay -> circular_mask
    encode

Overlay steps are composed without pixel sizes and materialized by the
engine right before they run, against the geometry produced by the steps
before them.
"""

import asyncio
import math
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, List, Optional, Union

from ...constants import CONTRAST_MIDPOINT, DEFAULT_QUALITY
from ...enums import BlendMode, ImageFormat, LogEmoji, LoggerName, LogSource, StepKind
from ...exceptions import EngineError, ImageProcessingError, StageName
from ...models.pipeline_step_model import EncodedImage, PipelineStep
from ...models.process_options_model import OptionsInput, ProcessOptions, coerce_options
from ...models.processed_result_model import ProcessedResult, ResultMetadata
from ...utils.validation_helpers import ImageInput
from ..logger import get_service_logger
from .engines.base_engine import ImageEngine

logger = get_service_logger(
    LoggerName.PIPELINE_COMPOSER, LogSource.PIPELINE, LogEmoji.PROCESSING
)

DECODE_STAGE = "decode"

LAYER_STEPS = (StepKind.COMPOSITE_OVERLAY, StepKind.CIRCULAR_MASK)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class ResolvedGeometry:
    """Target dimensions after option precedence has been applied."""

    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def is_set(self) -> bool:
        return self.width is not None or self.height is not None


def resolve_geometry(options: ProcessOptions) -> ResolvedGeometry:
    """
    Resolve width/height/aspect_ratio into target dimensions.

    Precedence:
        1. aspect_ratio with width -> height = round_half_up(width / aspect_ratio)
        2. otherwise width and/or height as given

    aspect_ratio without width has no effect.
    """
    if options.aspect_ratio and options.width:
        return ResolvedGeometry(
            width=options.width,
            height=max(1, round_half_up(options.width / options.aspect_ratio)),
        )
    return ResolvedGeometry(width=options.width, height=options.height)


def _stage_name(stage: StageName) -> str:
    return stage.value if isinstance(stage, StepKind) else str(stage)


class PipelineComposer:
    """
    Builds and executes transform pipelines on an engine.

    Composition is pure. Execution offloads every engine call to the default
    executor so the event loop stays responsive while pixels are processed.
    """

    def __init__(self, engine: ImageEngine, default_quality: int = DEFAULT_QUALITY):
        """
        Args:
            engine: Backend that decodes, applies steps and encodes
            default_quality: Encoder quality when a format is set without one
        """
        self.engine = engine
        self.default_quality = default_quality

    def compose(self, options: OptionsInput) -> List[PipelineStep]:
        """
        Build the ordered step list for a request.

        Options that are unset (or falsy, e.g. blur=0, rotate=0) add no step.
        The encode step is only present when an output format was requested.
        """
        options = coerce_options(options)
        steps: List[PipelineStep] = []

        # Geometry
        geometry = resolve_geometry(options)
        if geometry.is_set:
            steps.append(
                PipelineStep(
                    StepKind.RESIZE,
                    {
                        "width": geometry.width,
                        "height": geometry.height,
                        "fit": options.fit,
                        "gravity": options.position,
                        "background": options.background,
                    },
                )
            )
        if options.crop:
            steps.append(
                PipelineStep(
                    StepKind.CROP,
                    {
                        "left": options.crop.left,
                        "top": options.crop.top,
                        "width": options.crop.width,
                        "height": options.crop.height,
                    },
                )
            )

        # Effects
        if options.blur:
            steps.append(PipelineStep(StepKind.BLUR, {"sigma": options.blur}))
        if options.sharpen:
            steps.append(PipelineStep(StepKind.SHARPEN))
        if options.grayscale:
            steps.append(PipelineStep(StepKind.GRAYSCALE))
        if options.tint:
            steps.append(PipelineStep(StepKind.TINT, {"color": options.tint}))

        # Tone
        if options.brightness or options.saturation:
            steps.append(
                PipelineStep(
                    StepKind.MODULATE,
                    {
                        "brightness": options.brightness,
                        "saturation": options.saturation,
                    },
                )
            )
        if options.contrast:
            steps.append(
                PipelineStep(
                    StepKind.LINEAR_CONTRAST,
                    {
                        "multiplier": options.contrast,
                        "offset": -(options.contrast - 1) * CONTRAST_MIDPOINT,
                    },
                )
            )

        # Orientation
        if options.rotate:
            steps.append(PipelineStep(StepKind.ROTATE, {"angle": options.rotate}))
        if options.flip:
            steps.append(PipelineStep(StepKind.FLIP))
        if options.flop:
            steps.append(PipelineStep(StepKind.FLOP))

        # Overlays
        if options.watermark:
            steps.append(
                PipelineStep(
                    StepKind.COMPOSITE_OVERLAY,
                    {"overlay": options.watermark, "blend": BlendMode.OVER},
                )
            )
        if options.radius:
            steps.append(
                PipelineStep(
                    StepKind.CIRCULAR_MASK,
                    {"radius": options.radius, "blend": BlendMode.DEST_IN},
                )
            )

        # Output
        if options.format:
            quality = (
                options.quality if options.quality is not None else self.default_quality
            )
            steps.append(
                PipelineStep(
                    StepKind.ENCODE, {"format": options.format, "quality": quality}
                )
            )

        return steps

    async def run(self, data: ImageInput, options: OptionsInput) -> ProcessedResult:
        """
        Decode, apply every composed step and encode.

        No retries. Failures are classified with the stage that raised them.

        Raises:
            ImageProcessingError: Tagged with stage decode, a step kind or encode
        """
        return await self.run_steps(data, self.compose(options))

    async def run_steps(
        self, data: ImageInput, steps: List[PipelineStep]
    ) -> ProcessedResult:
        """
        Execute a prepared step list. The encode step, if any, must be last.

        Raises:
            EngineError: Before decoding, if the engine cannot apply a step
        """
        for step in steps:
            if step.kind != StepKind.ENCODE and not self.engine.supports_step(step.kind):
                raise EngineError(
                    f"Engine does not support step '{step.kind.value}'",
                    stage=step.kind,
                )

        decoded = await self._run_stage(DECODE_STAGE, self.engine.decode, data)
        pixels = decoded.pixels

        output_format: Union[ImageFormat, str] = decoded.metadata.format
        quality: Optional[int] = None

        for step in steps:
            if step.kind == StepKind.ENCODE:
                output_format = step.params["format"]
                quality = step.params.get("quality")
                continue

            if step.kind in LAYER_STEPS:
                step = await self._run_stage(
                    step.kind, self.engine.render_layer, pixels, step
                )
            pixels = await self._run_stage(step.kind, self.engine.apply, pixels, step)

        encoded = await self._run_stage(
            StepKind.ENCODE, self.engine.encode, pixels, output_format, quality
        )

        logger.debug(
            f"Pipeline finished with {len(steps)} step(s)",
            extra_context={
                "steps": ",".join(step.kind.value for step in steps) or "none",
                "format": encoded.metadata.format,
                "bytes": len(encoded.data),
            },
        )
        return self.to_result(encoded)

    @staticmethod
    def to_result(encoded: EncodedImage) -> ProcessedResult:
        meta = encoded.metadata
        return ProcessedResult(
            data=encoded.data,
            format=meta.format,
            width=meta.width,
            height=meta.height,
            byte_size=len(encoded.data),
            metadata=ResultMetadata(
                has_alpha=meta.has_alpha,
                is_animated=meta.is_animated,
                page_count=meta.page_count,
                compression=meta.compression,
                color_space=meta.color_space,
            ),
        )

    async def _run_stage(self, stage: StageName, func: Callable, *args: Any) -> Any:
        """Run one engine call in the executor and classify its failure."""
        stage_name = _stage_name(stage)
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, partial(func, *args))
        except ImageProcessingError as e:
            if e.stage is None:
                e.stage = stage_name
            raise
        except Exception as e:
            raise EngineError(
                f"Engine failed during {stage_name}: {e}", stage=stage_name, cause=e
            ) from e
