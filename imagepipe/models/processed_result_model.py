# imagepipe/models/processed_result_model.py
"""
Result models - immutable outputs of the pipeline and the analyzer.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ResultMetadata(BaseModel):
    """Properties of the encoded output image"""

    has_alpha: bool = Field(False, description="Output carries an alpha channel")
    is_animated: bool = Field(False, description="Output has more than one frame")
    page_count: Optional[int] = Field(None, ge=1, description="Number of frames/pages")
    compression: Optional[str] = Field(None, description="Container compression, if any")
    color_space: Optional[str] = Field(None, description="Color space, e.g. srgb, b-w")

    model_config = ConfigDict(frozen=True)


class ProcessedResult(BaseModel):
    """Encoded image plus its dimensions and metadata"""

    data: bytes = Field(..., description="Encoded image bytes")
    format: str = Field(..., description="Encoded format, e.g. png")
    width: int = Field(..., ge=0, description="Width in pixels")
    height: int = Field(..., ge=0, description="Height in pixels")
    byte_size: int = Field(..., ge=0, description="Length of data in bytes")
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)

    model_config = ConfigDict(frozen=True)


class ImageStats(BaseModel):
    """Read-only metadata probe of an input image"""

    size: int = Field(..., ge=0, description="Input size in bytes")
    format: str = Field(..., description="Detected source format")
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)
    aspect_ratio: float = Field(..., description="width / height")
    has_alpha: bool = False
    color_space: str = "unknown"
    channels: int = Field(0, ge=0)
    compression: Optional[str] = None

    model_config = ConfigDict(frozen=True)
