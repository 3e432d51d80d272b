#!/usr/bin/env python3
# tests/conftest.py
"""
Pytest configuration and shared fixtures for imagepipe tests.
"""

import io
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import pytest
from PIL import Image, ImageDraw

from imagepipe.config import Settings
from imagepipe.enums import StepKind
from imagepipe.exceptions import GeometryError
from imagepipe.models.pipeline_step_model import (
    DecodedImage,
    EncodedImage,
    PipelineStep,
    SourceMetadata,
)
from imagepipe.services.image_pipeline import ImageProcessor, PillowEngine
from imagepipe.services.image_pipeline.engines.base_engine import ImageEngine
from imagepipe.utils.cache_manager import ResultCache


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: fast tests with no real engine work")
    config.addinivalue_line(
        "markers", "integration: tests that run the Pillow engine end to end"
    )
    config.addinivalue_line("markers", "cache: result cache behaviour")
    config.addinivalue_line("markers", "pipeline: pipeline composition and execution")


# ====================================================================
# CLOCK
# ====================================================================


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Provide a controllable clock."""
    return FakeClock()


# ====================================================================
# RECORDING ENGINE
# ====================================================================


@dataclass
class FakePixels:
    """Stand-in pixels that remember which steps touched them."""

    width: int
    height: int
    source: bytes
    applied: List[str] = field(default_factory=list)


class RecordingEngine(ImageEngine):
    """
    In-memory engine that records every call.

    Inputs are treated as opaque; every decode yields a 400x300 png source.
    Per-input delays (seconds) simulate slow items.
    """

    def __init__(self, size: Tuple[int, int] = (400, 300), source_format: str = "png"):
        self.size = size
        self.source_format = source_format
        self.delays: Dict[bytes, float] = {}
        self.calls: List[Tuple[str, object]] = []
        self.decode_failures: Dict[bytes, Exception] = {}
        self.unsupported: List[StepKind] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    @property
    def supported_steps(self) -> list:
        return [
            kind
            for kind in StepKind
            if kind != StepKind.ENCODE and kind not in self.unsupported
        ]

    def call_count(self, name: str) -> int:
        return sum(1 for call_name, _ in self.calls if call_name == name)

    def decode(self, data):
        key = data if isinstance(data, bytes) else str(data).encode()
        with self._lock:
            self.calls.append(("decode", key))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if key in self.delays:
                time.sleep(self.delays[key])
            if key in self.decode_failures:
                raise self.decode_failures[key]
            width, height = self.size
            return DecodedImage(
                pixels=FakePixels(width, height, key),
                metadata=SourceMetadata(
                    format=self.source_format,
                    width=width,
                    height=height,
                    has_alpha=False,
                    channels=3,
                    color_space="srgb",
                    byte_size=len(key),
                ),
            )
        finally:
            with self._lock:
                self.active -= 1

    def apply(self, pixels: FakePixels, step: PipelineStep) -> FakePixels:
        self.calls.append(("apply", step))
        width, height = pixels.width, pixels.height
        if step.kind == StepKind.RESIZE:
            width = step.params["width"] or width
            height = step.params["height"] or height
        elif step.kind == StepKind.CROP:
            if step.params["left"] + step.params["width"] > width:
                raise GeometryError("Crop rectangle exceeds source bounds")
            width, height = step.params["width"], step.params["height"]
        return FakePixels(width, height, pixels.source, pixels.applied + [step.kind.value])

    def encode(self, pixels: FakePixels, format, quality=None) -> EncodedImage:
        format_name = getattr(format, "value", format)
        self.calls.append(("encode", (format_name, quality)))
        data = f"{format_name}:{','.join(pixels.applied)}".encode() + pixels.source
        return EncodedImage(
            data=data,
            metadata=SourceMetadata(
                format=format_name,
                width=pixels.width,
                height=pixels.height,
                has_alpha=StepKind.CIRCULAR_MASK.value in pixels.applied,
                channels=3,
                color_space="srgb",
                byte_size=len(data),
            ),
        )

    def render_layer(self, pixels: FakePixels, step: PipelineStep) -> PipelineStep:
        self.calls.append(("render_layer", step))
        return step.with_params(layer_size=(pixels.width, pixels.height))

    def dominant_color(self, pixels: FakePixels) -> Tuple[int, int, int]:
        self.calls.append(("dominant_color", None))
        return (8, 24, 248)


@pytest.fixture
def recording_engine():
    """Provide a fresh RecordingEngine."""
    return RecordingEngine()


# ====================================================================
# SETTINGS / PROCESSORS
# ====================================================================


@pytest.fixture
def test_settings():
    """Settings isolated from the environment."""
    return Settings(
        environment="testing",
        cache_max_size=100,
        cache_ttl_seconds=3600,
        default_quality=80,
        avatar_default_size=100,
        overlay_padding=10,
    )


@pytest.fixture
def processor(recording_engine, test_settings, fake_clock):
    """ImageProcessor on the recording engine with a controllable cache clock."""
    cache = ResultCache(max_size=100, ttl_seconds=3600, clock=fake_clock)
    return ImageProcessor(engine=recording_engine, cache=cache, settings=test_settings)


@pytest.fixture
def pillow_processor(test_settings):
    """ImageProcessor on the real Pillow engine."""
    return ImageProcessor(
        engine=PillowEngine(overlay_padding=test_settings.overlay_padding),
        settings=test_settings,
    )


# ====================================================================
# SAMPLE IMAGES
# ====================================================================


def encode_image(img: Image.Image, format: str, **save_kwargs) -> bytes:
    """Encode a PIL image to bytes."""
    buffer = io.BytesIO()
    img.save(buffer, format, **save_kwargs)
    return buffer.getvalue()


@pytest.fixture
def png_bytes():
    """400x300 RGB png: red background with a blue rectangle."""
    img = Image.new("RGB", (400, 300), color="red")
    draw = ImageDraw.Draw(img)
    draw.rectangle([50, 50, 150, 150], fill="blue")
    return encode_image(img, "PNG")


@pytest.fixture
def rgba_png_bytes():
    """200x200 RGBA png, fully opaque green."""
    img = Image.new("RGBA", (200, 200), color=(0, 200, 0, 255))
    return encode_image(img, "PNG")


@pytest.fixture
def jpeg_bytes():
    """320x240 RGB jpeg."""
    img = Image.new("RGB", (320, 240), color=(30, 60, 200))
    return encode_image(img, "JPEG", quality=90)


@pytest.fixture
def animated_gif_bytes():
    """Three-frame 64x64 gif."""
    frames = [Image.new("RGB", (64, 64), color=color) for color in ("red", "lime", "blue")]
    buffer = io.BytesIO()
    frames[0].save(buffer, "GIF", save_all=True, append_images=frames[1:], duration=100)
    return buffer.getvalue()


@pytest.fixture
def bordered_png_bytes():
    """100x80 white image with a 40x20 black block at (30, 30)."""
    img = Image.new("RGB", (100, 80), color="white")
    ImageDraw.Draw(img).rectangle([30, 30, 69, 49], fill="black")
    return encode_image(img, "PNG")
