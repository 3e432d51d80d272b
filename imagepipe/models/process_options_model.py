# imagepipe/models/process_options_model.py
"""
Process option models - Pydantic models describing a single transform request.

Every field is optional; an unset field means the matching step does not run.
Unknown keys are ignored so option bags from callers can carry extra data.
"""

from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..constants import (
    DEFAULT_OVERLAY_COLOR,
    DEFAULT_OVERLAY_FONT,
    DEFAULT_OVERLAY_OPACITY,
    DEFAULT_OVERLAY_POSITION,
    DEFAULT_OVERLAY_SIZE,
    MAX_QUALITY,
    MIN_QUALITY,
)
from ..enums import AnchorPosition, FitMode, ImageFormat


class BackgroundColor(BaseModel):
    """RGBA fill used when resizing leaves uncovered area"""

    r: int = Field(..., ge=0, le=255, description="Red channel")
    g: int = Field(..., ge=0, le=255, description="Green channel")
    b: int = Field(..., ge=0, le=255, description="Blue channel")
    alpha: float = Field(1.0, ge=0, le=1, description="Opacity from 0 to 1")

    model_config = ConfigDict(frozen=True)

    def as_rgba(self) -> tuple:
        return (self.r, self.g, self.b, round(self.alpha * 255))


class CropRegion(BaseModel):
    """Rectangle to extract, in source pixel coordinates"""

    left: int = Field(..., ge=0, description="Left edge in pixels")
    top: int = Field(..., ge=0, description="Top edge in pixels")
    width: int = Field(..., gt=0, description="Region width in pixels")
    height: int = Field(..., gt=0, description="Region height in pixels")

    model_config = ConfigDict(frozen=True)

    @property
    def box(self) -> tuple:
        """Pillow box tuple (left, upper, right, lower)."""
        return (self.left, self.top, self.left + self.width, self.top + self.height)


class OverlayOptions(BaseModel):
    """Text overlay (watermark) configuration"""

    text: str = Field(..., min_length=1, description="Text to render")
    font: str = Field(DEFAULT_OVERLAY_FONT, description="Font family name")
    size: int = Field(DEFAULT_OVERLAY_SIZE, gt=0, description="Font size in pixels")
    color: str = Field(DEFAULT_OVERLAY_COLOR, description="Text color (name or hex)")
    opacity: float = Field(
        DEFAULT_OVERLAY_OPACITY, ge=0, le=1, description="Text opacity from 0 to 1"
    )
    position: AnchorPosition = Field(
        DEFAULT_OVERLAY_POSITION, description="Anchor of the text on the image"
    )

    model_config = ConfigDict(frozen=True, extra="ignore")


class ProcessOptions(BaseModel):
    """Configuration bag for one processing request"""

    # Geometry
    width: Optional[int] = Field(None, gt=0, description="Target width in pixels")
    height: Optional[int] = Field(None, gt=0, description="Target height in pixels")
    fit: Optional[FitMode] = Field(
        None, description="Fit mode when both width and height are given"
    )
    position: Optional[AnchorPosition] = Field(
        None, description="Gravity for cover/contain resizing"
    )
    background: Optional[BackgroundColor] = Field(
        None, description="Fill color for padded areas"
    )
    crop: Optional[CropRegion] = Field(
        None, description="Region extracted after resizing"
    )
    aspect_ratio: Optional[float] = Field(
        None, gt=0, description="Width / height ratio used with width to derive height"
    )

    # Effects
    radius: Optional[float] = Field(
        None, ge=0, description="Corner radius of the transparency mask"
    )
    blur: Optional[float] = Field(None, ge=0, description="Gaussian blur sigma")
    sharpen: Optional[bool] = Field(None, description="Apply a sharpening filter")
    grayscale: Optional[bool] = Field(None, description="Convert to grayscale")
    tint: Optional[str] = Field(None, description="Tint color (name or hex)")

    # Tone
    brightness: Optional[float] = Field(
        None, ge=0, description="Brightness multiplier"
    )
    saturation: Optional[float] = Field(
        None, ge=0, description="Saturation multiplier"
    )
    contrast: Optional[float] = Field(None, ge=0, description="Contrast multiplier")

    # Orientation
    rotate: Optional[float] = Field(None, description="Clockwise rotation in degrees")
    flip: Optional[bool] = Field(None, description="Mirror vertically")
    flop: Optional[bool] = Field(None, description="Mirror horizontally")

    # Output
    format: Optional[ImageFormat] = Field(None, description="Output format")
    quality: Optional[int] = Field(
        None, ge=MIN_QUALITY, le=MAX_QUALITY, description="Encoder quality"
    )

    # Overlay
    watermark: Optional[OverlayOptions] = Field(
        None, description="Text overlay composited over the final geometry"
    )

    model_config = ConfigDict(frozen=True, extra="ignore")

    def to_canonical_dict(self) -> Dict[str, Any]:
        """Set fields only, JSON-compatible, for fingerprinting and logging."""
        return self.model_dump(mode="json", exclude_none=True)


OptionsInput = Union[ProcessOptions, Mapping[str, Any], None]


def coerce_options(options: OptionsInput) -> ProcessOptions:
    """
    Accept a ProcessOptions, a plain mapping or None.

    Raises:
        pydantic.ValidationError: If a mapping carries invalid values
    """
    if options is None:
        return ProcessOptions()
    if isinstance(options, ProcessOptions):
        return options
    return ProcessOptions.model_validate(dict(options))
