# imagepipe/services/image_pipeline/image_pipeline.py
"""
Image Pipeline Service - public entry point for image requests.

Flow for cached operations:

    validate input -> fingerprint -> cache lookup
        hit  -> return the stored result
        miss -> compose + run pipeline on the engine -> store -> return

Every public operation re-raises failures as classified errors tagged with
its own operation name, and logs them once here.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Union

from ...config import Settings
from ...config import settings as default_settings
from ...constants import (
    AVATAR_FORMAT,
    AVATAR_QUALITY,
    DEFAULT_FIT_MODE,
    DEFAULT_QUALITY,
    DEFAULT_TRIM_THRESHOLD,
)
from ...enums import ImageFormat, LogEmoji, LoggerName, LogSource, Operation, StepKind
from ...exceptions import (
    ImageProcessingError,
    UnsupportedFormatError,
    ValidationError,
    reclassify,
)
from ...models.pipeline_step_model import PipelineStep
from ...models.process_options_model import OptionsInput, ProcessOptions
from ...models.processed_result_model import ImageStats, ProcessedResult
from ...utils.cache_manager import ResultCache
from ...utils.validation_helpers import (
    ImageInput,
    validate_image_input,
    validate_options,
    validate_positive_size,
)
from ..logger import get_service_logger
from .analyzer import ImageAnalyzer
from .batch_scheduler import SequentialBatchScheduler
from .composer import PipelineComposer
from .engines.base_engine import ImageEngine
from .engines.pillow_engine import PillowEngine
from .utils.fingerprint import build_fingerprint

logger = get_service_logger(LoggerName.IMAGE_PIPELINE, LogSource.PIPELINE, LogEmoji.IMAGE)


class ImageProcessor:
    """
    Orchestrates caching, sequencing and engine execution for image requests.

    Each processor owns its cache, its batch queue and its engine. Nothing is
    shared between processors.
    """

    def __init__(
        self,
        engine: Optional[ImageEngine] = None,
        cache: Optional[ResultCache] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Args:
            engine: Image backend; a PillowEngine when omitted
            cache: Result cache; built from settings when omitted
            settings: Settings instance; the global settings when omitted
        """
        self.settings = settings or default_settings
        self.engine = engine or PillowEngine(overlay_padding=self.settings.overlay_padding)
        self.cache = cache or ResultCache(
            max_size=self.settings.cache_max_size,
            ttl_seconds=self.settings.cache_ttl_seconds,
        )
        self.composer = PipelineComposer(
            self.engine, default_quality=self.settings.default_quality
        )
        self.analyzer = ImageAnalyzer(self.engine)
        self.scheduler = SequentialBatchScheduler(self._process_item)

        # fingerprint -> running pipeline, shared by concurrent identical requests
        self._in_flight: Dict[str, "asyncio.Task[ProcessedResult]"] = {}

    # ------------------------------------------------------------------
    # Boundary helpers
    # ------------------------------------------------------------------

    async def _guarded(self, operation: Operation, coro) -> Any:
        """Await coro, reclassify its failure for operation and log it once."""
        try:
            with reclassify(operation):
                return await coro
        except ImageProcessingError as e:
            context: Dict[str, Any] = {"operation": e.operation}
            if e.stage:
                context["stage"] = e.stage
            context["kind"] = type(e).__name__
            if isinstance(e, ValidationError):
                logger.warning(f"Rejected request: {e.message}", extra_context=context)
            else:
                logger.error(
                    f"Image operation failed: {e.message}",
                    exception=e.__cause__ or e,
                    error_context=context,
                )
            raise

    async def _process_cached(
        self, data: ImageInput, options: OptionsInput
    ) -> ProcessedResult:
        data = validate_image_input(data, Operation.PROCESS)
        process_options = validate_options(options, Operation.PROCESS)

        fingerprint = build_fingerprint(
            data, process_options, self.settings.fingerprint_sample_bytes
        )
        cached = await self.cache.get(fingerprint)
        if cached is not None:
            return cached

        task = self._in_flight.get(fingerprint)
        if task is None:
            task = asyncio.ensure_future(
                self._compute(fingerprint, data, process_options)
            )
            task.add_done_callback(self._consume_task_exception)
            self._in_flight[fingerprint] = task
        else:
            logger.debug(
                f"Joining in-flight request {fingerprint[:16]}", emoji=LogEmoji.PROCESSING
            )

        # Shielded so one cancelled caller does not cancel the shared run
        return await asyncio.shield(task)

    async def _process_item(
        self, data: ImageInput, options: OptionsInput
    ) -> ProcessedResult:
        """Batch handler: one item, its failure tagged as a process error."""
        with reclassify(Operation.PROCESS):
            return await self._process_cached(data, options)

    @staticmethod
    def _consume_task_exception(task: "asyncio.Task[ProcessedResult]") -> None:
        # Every waiter may have been cancelled before the shared run failed
        if not task.cancelled():
            task.exception()

    async def _compute(
        self, fingerprint: str, data: ImageInput, options: ProcessOptions
    ) -> ProcessedResult:
        try:
            result = await self.composer.run(data, options)
            await self.cache.set(fingerprint, result)
            return result
        finally:
            self._in_flight.pop(fingerprint, None)

    async def _run_uncached(
        self, data: ImageInput, steps: List[PipelineStep]
    ) -> ProcessedResult:
        return await self.composer.run_steps(data, steps)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def process(
        self, data: ImageInput, options: OptionsInput = None
    ) -> ProcessedResult:
        """
        Transform one image. Results are memoized by input and options.

        Args:
            data: Image bytes, or a reference string understood by the engine
            options: ProcessOptions or an equivalent dict

        Returns:
            ProcessedResult; an identical earlier request returns the same object

        Raises:
            ValidationError: Empty input or invalid options (engine not called)
            UnsupportedFormatError: Output format the engine cannot write
            GeometryError: Crop outside the source or unusable mask geometry
            EngineError: Any other engine failure
        """
        return await self._guarded(
            Operation.PROCESS, self._process_cached(data, options)
        )

    async def batch_process(
        self,
        inputs: Sequence[ImageInput],
        options: OptionsInput = None,
        return_exceptions: bool = False,
    ) -> List[Union[ProcessedResult, ImageProcessingError]]:
        """
        Process several inputs with the same options, one at a time.

        Results keep the order of inputs. Every input runs even if an earlier
        one fails.

        Args:
            inputs: Image inputs
            options: Options shared by every input
            return_exceptions: Return per-item errors in place instead of
                raising the first one

        Raises:
            ImageProcessingError: First failing item, tagged batch_process,
                unless return_exceptions is set
        """

        async def _batch() -> List[Any]:
            if isinstance(inputs, (bytes, bytearray, memoryview, str)):
                raise ValidationError(
                    "batch_process expects a sequence of inputs",
                    operation=Operation.BATCH_PROCESS,
                )
            shared_options = validate_options(options, Operation.BATCH_PROCESS)
            logger.info(
                f"Queued batch of {len(inputs)} image(s)", emoji=LogEmoji.QUEUE
            )
            return await self.scheduler.submit_all(
                [(data, shared_options) for data in inputs],
                return_exceptions=return_exceptions,
            )

        return await self._guarded(Operation.BATCH_PROCESS, _batch())

    async def convert(
        self,
        data: ImageInput,
        format: Union[ImageFormat, str],
        quality: int = DEFAULT_QUALITY,
    ) -> ProcessedResult:
        """Re-encode an image. Same as process() with only format and quality set."""

        async def _convert() -> ProcessedResult:
            validate_image_input(data, Operation.CONVERT)
            try:
                target = ImageFormat(str(getattr(format, "value", format)).lower())
            except ValueError as e:
                raise UnsupportedFormatError(
                    f"Unsupported output format: {format}",
                    operation=Operation.CONVERT,
                    cause=e,
                    details={"format": str(format)},
                ) from e
            options = validate_options(
                {"format": target, "quality": quality}, Operation.CONVERT
            )
            return await self._process_cached(data, options)

        return await self._guarded(Operation.CONVERT, _convert())

    async def create_avatar(
        self, data: ImageInput, size: Optional[int] = None
    ) -> ProcessedResult:
        """
        Square cover crop of size x size with a circular mask, encoded as PNG.

        Args:
            data: Image input
            size: Edge length; settings.avatar_default_size when omitted
        """

        async def _avatar() -> ProcessedResult:
            edge = validate_positive_size(
                size if size is not None else self.settings.avatar_default_size,
                "size",
                Operation.CREATE_AVATAR,
            )
            validate_image_input(data, Operation.CREATE_AVATAR)
            options = ProcessOptions(
                width=edge,
                height=edge,
                fit=DEFAULT_FIT_MODE,
                radius=edge / 2,
                format=AVATAR_FORMAT,
                quality=AVATAR_QUALITY,
            )
            return await self._process_cached(data, options)

        return await self._guarded(Operation.CREATE_AVATAR, _avatar())

    async def add_watermark(
        self, data: ImageInput, text: str, **overlay: Any
    ) -> ProcessedResult:
        """
        Draw a text overlay and keep the source format.

        Args:
            data: Image input
            text: Overlay text
            **overlay: OverlayOptions fields (font, size, color, opacity, position)
        """

        async def _watermark() -> ProcessedResult:
            validate_image_input(data, Operation.ADD_WATERMARK)
            options = validate_options(
                {"watermark": {**overlay, "text": text}}, Operation.ADD_WATERMARK
            )
            return await self._process_cached(data, options)

        return await self._guarded(Operation.ADD_WATERMARK, _watermark())

    async def trim(
        self, data: ImageInput, threshold: int = DEFAULT_TRIM_THRESHOLD
    ) -> ProcessedResult:
        """
        Crop away a uniform border matching the top-left pixel.

        Not cached. The source format is kept.
        """

        async def _trim() -> ProcessedResult:
            checked = validate_image_input(data, Operation.TRIM)
            if threshold < 0:
                raise ValidationError(
                    f"threshold must not be negative, got {threshold}",
                    operation=Operation.TRIM,
                    details={"threshold": threshold},
                )
            return await self._run_uncached(
                checked, [PipelineStep(StepKind.TRIM, {"threshold": threshold})]
            )

        return await self._guarded(Operation.TRIM, _trim())

    async def get_stats(self, data: ImageInput) -> ImageStats:
        """Read-only metadata probe. Not cached."""

        async def _stats() -> ImageStats:
            checked = validate_image_input(data, Operation.GET_STATS)
            return await self.analyzer.get_stats(checked)

        return await self._guarded(Operation.GET_STATS, _stats())

    async def get_dominant_color(self, data: ImageInput) -> str:
        """Most frequent color as "rgb(r, g, b)". Not cached."""

        async def _dominant() -> str:
            checked = validate_image_input(data, Operation.GET_DOMINANT_COLOR)
            return await self.analyzer.get_dominant_color(checked)

        return await self._guarded(Operation.GET_DOMINANT_COLOR, _dominant())

    async def is_animated(self, data: ImageInput) -> bool:
        """True when the input has more than one frame. Not cached."""

        async def _animated() -> bool:
            checked = validate_image_input(data, Operation.IS_ANIMATED)
            return await self.analyzer.is_animated(checked)

        return await self._guarded(Operation.IS_ANIMATED, _animated())

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    async def clear_cache(self) -> None:
        """Drop every memoized result."""
        await self.cache.clear()

    async def get_cache_stats(self) -> Dict[str, Any]:
        """Cache size, hit/miss counters and eviction counts."""
        return await self.cache.get_stats()
