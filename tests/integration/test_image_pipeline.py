#!/usr/bin/env python3
# tests/integration/test_image_pipeline.py
"""
Image Pipeline Integration Tests.

Runs the public ImageProcessor operations end to end: caching and single
flight on the recording engine, real transforms on the Pillow engine.
"""

import asyncio
import gc
import io

import pytest
from PIL import Image

from imagepipe.enums import StepKind
from imagepipe.exceptions import (
    EngineError,
    GeometryError,
    ImageProcessingError,
    UnsupportedFormatError,
    ValidationError,
)
from imagepipe.models.processed_result_model import ImageStats


def open_result(result):
    return Image.open(io.BytesIO(result.data))


# ====================================================================
# CACHING AND VALIDATION (recording engine)
# ====================================================================


@pytest.mark.integration
@pytest.mark.cache
class TestProcessCaching:
    @pytest.mark.asyncio
    async def test_identical_requests_hit_cache(self, processor, recording_engine):
        first = await processor.process(b"image-1", {"width": 100, "format": "webp"})
        second = await processor.process(b"image-1", {"format": "webp", "width": 100})

        assert second is first
        assert recording_engine.call_count("decode") == 1

    @pytest.mark.asyncio
    async def test_different_options_miss(self, processor, recording_engine):
        await processor.process(b"image-1", {"width": 800})
        await processor.process(b"image-1", {"width": 801})

        assert recording_engine.call_count("decode") == 2

    @pytest.mark.asyncio
    async def test_expired_entry_recomputed(self, processor, recording_engine, fake_clock):
        await processor.process(b"image-1", {"width": 10})
        fake_clock.advance(3600 + 1)
        await processor.process(b"image-1", {"width": 10})

        assert recording_engine.call_count("decode") == 2

    @pytest.mark.asyncio
    async def test_concurrent_identical_requests_share_one_run(
        self, processor, recording_engine
    ):
        recording_engine.delays[b"slow"] = 0.05

        results = await asyncio.gather(
            *(processor.process(b"slow", {"grayscale": True}) for _ in range(4))
        )

        assert recording_engine.call_count("decode") == 1
        assert all(result is results[0] for result in results)

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, processor, recording_engine):
        recording_engine.decode_failures[b"flaky"] = OSError("read error")
        with pytest.raises(EngineError):
            await processor.process(b"flaky", {})

        del recording_engine.decode_failures[b"flaky"]
        result = await processor.process(b"flaky", {})

        assert result.format == "png"

    @pytest.mark.asyncio
    async def test_failure_after_all_callers_cancelled_is_retrieved(
        self, processor, recording_engine
    ):
        loop = asyncio.get_running_loop()
        reported = []
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(lambda _loop, context: reported.append(context))
        recording_engine.delays[b"slow"] = 0.05
        recording_engine.decode_failures[b"slow"] = OSError("corrupt")

        try:
            caller = asyncio.ensure_future(processor.process(b"slow", {}))
            await asyncio.sleep(0.01)
            (task,) = processor._in_flight.values()
            caller.cancel()
            with pytest.raises(asyncio.CancelledError):
                await caller

            await asyncio.wait([task])
            assert task.done() and not task.cancelled()
            del task, caller
            gc.collect()
        finally:
            loop.set_exception_handler(previous_handler)

        assert processor._in_flight == {}
        assert reported == []

    @pytest.mark.asyncio
    async def test_cache_stats_and_clear(self, processor):
        await processor.process(b"image-1", {})
        await processor.process(b"image-1", {})

        stats = await processor.get_cache_stats()
        assert stats["hits"] == 1
        assert stats["total_entries"] == 1

        await processor.clear_cache()
        assert (await processor.get_cache_stats())["total_entries"] == 0


@pytest.mark.integration
class TestValidationAtBoundary:
    @pytest.mark.asyncio
    async def test_empty_buffer_rejected_without_engine(self, processor, recording_engine):
        with pytest.raises(ValidationError) as exc_info:
            await processor.process(b"", {})

        assert exc_info.value.operation == "process"
        assert recording_engine.calls == []

    @pytest.mark.asyncio
    async def test_blank_reference_rejected(self, processor, recording_engine):
        with pytest.raises(ValidationError):
            await processor.get_stats("   ")
        assert recording_engine.calls == []

    @pytest.mark.asyncio
    async def test_convert_tags_its_own_operation(self, processor):
        with pytest.raises(ValidationError) as exc_info:
            await processor.convert(b"", "png")

        assert exc_info.value.operation == "convert"

    @pytest.mark.asyncio
    async def test_convert_unknown_format(self, processor, recording_engine):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            await processor.convert(b"image-1", "bmp")

        assert exc_info.value.operation == "convert"
        assert recording_engine.calls == []

    @pytest.mark.asyncio
    async def test_invalid_quality(self, processor):
        with pytest.raises(ValidationError):
            await processor.process(b"image-1", {"format": "jpeg", "quality": 0})

    @pytest.mark.asyncio
    async def test_avatar_size_must_be_positive(self, processor, recording_engine):
        with pytest.raises(ValidationError) as exc_info:
            await processor.create_avatar(b"image-1", size=0)

        assert exc_info.value.operation == "create_avatar"
        assert recording_engine.calls == []

    @pytest.mark.asyncio
    async def test_geometry_error_tagged_with_operation_and_stage(self, processor):
        with pytest.raises(GeometryError) as exc_info:
            await processor.process(
                b"image-1", {"crop": {"left": 390, "top": 0, "width": 50, "height": 10}}
            )

        assert exc_info.value.operation == "process"
        assert exc_info.value.stage == "crop"


@pytest.mark.integration
class TestBatchProcess:
    @pytest.mark.asyncio
    async def test_results_keep_input_order(self, processor, recording_engine):
        recording_engine.delays[b"a"] = 0.05
        recording_engine.delays[b"c"] = 0.02

        results = await processor.batch_process([b"a", b"b", b"c"], {"format": "png"})

        assert [result.data[-1:] for result in results] == [b"a", b"b", b"c"]
        assert recording_engine.max_active == 1

    @pytest.mark.asyncio
    async def test_failure_raised_as_batch_error(self, processor, recording_engine):
        recording_engine.decode_failures[b"b"] = OSError("corrupt")

        with pytest.raises(EngineError) as exc_info:
            await processor.batch_process([b"a", b"b", b"c"])

        assert exc_info.value.operation == "batch_process"
        assert recording_engine.call_count("decode") == 3

    @pytest.mark.asyncio
    async def test_return_exceptions(self, processor):
        results = await processor.batch_process(
            [b"a", b"", b"c"], return_exceptions=True
        )

        assert results[0].format == "png"
        assert isinstance(results[1], ValidationError)
        assert results[2].format == "png"

    @pytest.mark.asyncio
    async def test_returned_engine_error_tagged_with_process(
        self, processor, recording_engine
    ):
        recording_engine.decode_failures[b"b"] = OSError("corrupt")

        results = await processor.batch_process(
            [b"a", b"b", b"c"], return_exceptions=True
        )

        error = results[1]
        assert isinstance(error, EngineError)
        assert error.operation == "process"
        assert error.stage == "decode"
        assert isinstance(error.cause, OSError)
        assert results[0].format == results[2].format == "png"

    @pytest.mark.asyncio
    async def test_batch_reuses_cache(self, processor, recording_engine):
        await processor.batch_process([b"a", b"a", b"a"])
        assert recording_engine.call_count("decode") == 1

    @pytest.mark.asyncio
    async def test_single_bytes_rejected(self, processor):
        with pytest.raises(ValidationError):
            await processor.batch_process(b"not-a-list")


@pytest.mark.integration
class TestAnalysisOnRecordingEngine:
    @pytest.mark.asyncio
    async def test_stats_not_cached(self, processor, recording_engine):
        await processor.get_stats(b"image-1")
        await processor.get_stats(b"image-1")

        assert recording_engine.call_count("decode") == 2

    @pytest.mark.asyncio
    async def test_dominant_color_string(self, processor):
        assert await processor.get_dominant_color(b"image-1") == "rgb(8, 24, 248)"

    @pytest.mark.asyncio
    async def test_avatar_steps(self, processor, recording_engine):
        result = await processor.create_avatar(b"image-1", size=64)

        applied = [step for name, step in recording_engine.calls if name == "apply"]
        assert [step.kind for step in applied] == [
            StepKind.RESIZE,
            StepKind.CIRCULAR_MASK,
        ]
        assert applied[1].params["radius"] == 32
        assert ("encode", ("png", 100)) in recording_engine.calls
        assert (result.width, result.height) == (64, 64)


# ====================================================================
# PILLOW ENGINE END TO END
# ====================================================================


@pytest.mark.integration
@pytest.mark.pipeline
class TestPillowPipeline:
    @pytest.mark.asyncio
    async def test_resize_and_convert(self, pillow_processor, png_bytes):
        result = await pillow_processor.process(
            png_bytes, {"width": 200, "format": "jpeg", "quality": 70}
        )

        assert result.format == "jpeg"
        assert (result.width, result.height) == (200, 150)
        assert result.byte_size == len(result.data)
        assert open_result(result).format == "JPEG"

    @pytest.mark.asyncio
    async def test_aspect_ratio(self, pillow_processor, png_bytes):
        result = await pillow_processor.process(
            png_bytes, {"width": 160, "aspect_ratio": 2.0}
        )
        assert (result.width, result.height) == (160, 80)

    @pytest.mark.asyncio
    async def test_source_format_kept(self, pillow_processor, jpeg_bytes):
        result = await pillow_processor.process(jpeg_bytes, {"grayscale": True})

        assert result.format == "jpeg"
        assert result.metadata.color_space == "b-w"

    @pytest.mark.asyncio
    async def test_convert(self, pillow_processor, png_bytes):
        result = await pillow_processor.convert(png_bytes, "webp", quality=60)
        assert result.format == "webp"

    @pytest.mark.asyncio
    async def test_create_avatar(self, pillow_processor, png_bytes):
        result = await pillow_processor.create_avatar(png_bytes, size=64)

        image = open_result(result)
        assert result.format == "png"
        assert image.size == (64, 64)
        assert result.metadata.has_alpha is True
        assert image.convert("RGBA").getpixel((0, 0))[3] == 0
        assert image.convert("RGBA").getpixel((32, 32))[3] == 255

    @pytest.mark.asyncio
    async def test_create_avatar_default_size(self, pillow_processor, png_bytes):
        result = await pillow_processor.create_avatar(png_bytes)
        assert (result.width, result.height) == (100, 100)

    @pytest.mark.asyncio
    async def test_add_watermark_keeps_size_and_format(self, pillow_processor, png_bytes):
        result = await pillow_processor.add_watermark(
            png_bytes, "(c) imagepipe", size=18, position="bottom-left"
        )

        assert result.format == "png"
        assert (result.width, result.height) == (400, 300)

    @pytest.mark.asyncio
    async def test_trim(self, pillow_processor, bordered_png_bytes):
        result = await pillow_processor.trim(bordered_png_bytes)
        assert (result.width, result.height) == (40, 20)

    @pytest.mark.asyncio
    async def test_crop_outside_source(self, pillow_processor, png_bytes):
        with pytest.raises(GeometryError) as exc_info:
            await pillow_processor.process(
                png_bytes, {"crop": {"left": 350, "top": 0, "width": 100, "height": 10}}
            )

        assert exc_info.value.stage == "crop"

    @pytest.mark.asyncio
    async def test_corrupt_input(self, pillow_processor):
        with pytest.raises(EngineError) as exc_info:
            await pillow_processor.process(b"\x00\x01garbage", {})

        assert exc_info.value.stage == "decode"
        assert exc_info.value.operation == "process"

    @pytest.mark.asyncio
    async def test_get_stats(self, pillow_processor, rgba_png_bytes):
        stats = await pillow_processor.get_stats(rgba_png_bytes)

        assert isinstance(stats, ImageStats)
        assert stats.format == "png"
        assert (stats.width, stats.height) == (200, 200)
        assert stats.aspect_ratio == 1.0
        assert stats.has_alpha is True
        assert stats.channels == 4
        assert stats.size == len(rgba_png_bytes)

    @pytest.mark.asyncio
    async def test_get_dominant_color(self, pillow_processor, png_bytes):
        assert await pillow_processor.get_dominant_color(png_bytes) == "rgb(248, 8, 8)"

    @pytest.mark.asyncio
    async def test_is_animated(self, pillow_processor, animated_gif_bytes, png_bytes):
        assert await pillow_processor.is_animated(animated_gif_bytes) is True
        assert await pillow_processor.is_animated(png_bytes) is False

    @pytest.mark.asyncio
    async def test_errors_share_base_class(self, pillow_processor):
        with pytest.raises(ImageProcessingError):
            await pillow_processor.get_dominant_color(b"")

    @pytest.mark.asyncio
    async def test_source_format_outside_output_set(self, pillow_processor):
        buffer = io.BytesIO()
        Image.new("RGB", (10, 10), color="green").save(buffer, "BMP")
        bmp_bytes = buffer.getvalue()

        with pytest.raises(UnsupportedFormatError) as exc_info:
            await pillow_processor.process(bmp_bytes, {})

        assert exc_info.value.stage == "encode"
        assert exc_info.value.operation == "process"

        result = await pillow_processor.process(bmp_bytes, {"format": "png"})
        assert result.format == "png"

    @pytest.mark.asyncio
    async def test_get_stats_from_path(self, pillow_processor, png_bytes, tmp_path):
        path = tmp_path / "source.png"
        path.write_bytes(png_bytes)

        stats = await pillow_processor.get_stats(str(path))

        assert stats.size == len(png_bytes)
        assert (stats.width, stats.height) == (400, 300)
