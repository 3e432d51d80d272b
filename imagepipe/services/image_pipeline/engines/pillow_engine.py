# imagepipe/services/image_pipeline/engines/pillow_engine.py
"""
Pillow Image Engine - default engine backed by PIL/Pillow and numpy.

Maps each pipeline step onto the matching Pillow operation. Only the first
frame of multi-frame sources is processed; the frame count is still reported
in the decoded metadata.
"""

import io
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import numpy as np
from PIL import (
    Image,
    ImageChops,
    ImageColor,
    ImageEnhance,
    ImageFilter,
    ImageOps,
    UnidentifiedImageError,
)

from ....constants import (
    DEFAULT_FIT_MODE,
    DEFAULT_GRAVITY,
    DEFAULT_OVERLAY_PADDING,
    DOMINANT_COLOR_BINS,
    GRAVITY_CENTERING,
    QUALITY_AWARE_FORMATS,
)
from ....enums import BlendMode, FitMode, ImageFormat, LoggerName, LogSource, StepKind
from ....exceptions import EngineError, GeometryError, UnsupportedFormatError
from ....models.pipeline_step_model import (
    DecodedImage,
    EncodedImage,
    PipelineStep,
    SourceMetadata,
)
from ...logger import get_service_logger
from ..utils.overlay_utils import OverlayRenderer
from .base_engine import ImageEngine

logger = get_service_logger(LoggerName.IMAGE_ENGINE, LogSource.ENGINE)

# Pillow format names keyed by pipeline format
PILLOW_FORMATS: Dict[ImageFormat, str] = {
    ImageFormat.JPEG: "JPEG",
    ImageFormat.PNG: "PNG",
    ImageFormat.WEBP: "WEBP",
    ImageFormat.AVIF: "AVIF",
    ImageFormat.GIF: "GIF",
    ImageFormat.TIFF: "TIFF",
}

# Modes each encoder can write without conversion
ENCODER_MODES: Dict[ImageFormat, Tuple[str, ...]] = {
    ImageFormat.JPEG: ("RGB", "L", "CMYK"),
    ImageFormat.PNG: ("RGB", "RGBA", "L", "LA", "P", "1"),
    ImageFormat.WEBP: ("RGB", "RGBA"),
    ImageFormat.AVIF: ("RGB", "RGBA"),
    ImageFormat.GIF: ("P", "L", "RGB", "RGBA"),
    ImageFormat.TIFF: ("RGB", "RGBA", "L", "LA", "CMYK", "1"),
}

ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")


def _color_space(image: Image.Image) -> str:
    if image.mode in ("1", "L", "LA", "I", "I;16", "F"):
        return "b-w"
    if image.mode == "CMYK":
        return "cmyk"
    if image.mode in ("LAB",):
        return "lab"
    return "srgb"


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ALPHA_MODES or (
        image.mode == "P" and "transparency" in image.info
    )


def _describe(image: Image.Image, byte_size: int = 0) -> SourceMetadata:
    compression = image.info.get("compression")
    return SourceMetadata(
        format=(image.format or "unknown").lower(),
        width=image.width,
        height=image.height,
        has_alpha=_has_alpha(image),
        channels=len(image.getbands()),
        color_space=_color_space(image),
        page_count=getattr(image, "n_frames", 1),
        compression=str(compression) if compression else None,
        byte_size=byte_size,
    )


def _split_alpha(image: Image.Image) -> Tuple[Image.Image, Optional[Image.Image]]:
    """Separate color bands from alpha so filters leave transparency alone."""
    if image.mode in ("RGBA", "LA"):
        return image.convert("RGB" if image.mode == "RGBA" else "L"), image.getchannel("A")
    if image.mode not in ("RGB", "L"):
        if _has_alpha(image):
            rgba = image.convert("RGBA")
            return rgba.convert("RGB"), rgba.getchannel("A")
        return image.convert("RGB"), None
    return image, None


def _merge_alpha(image: Image.Image, alpha: Optional[Image.Image]) -> Image.Image:
    if alpha is None:
        return image
    merged = image.convert("RGBA" if image.mode == "RGB" else "LA")
    merged.putalpha(alpha)
    return merged


class PillowEngine(ImageEngine):
    """
    Engine implementation on top of Pillow.

    Handles:
    - decode/encode for jpeg, png, webp, gif, tiff (avif when the installed
      Pillow provides the encoder)
    - every pipeline step kind
    - text overlay and mask layer rendering
    - dominant color from a coarse numpy histogram
    """

    def __init__(self, overlay_padding: int = DEFAULT_OVERLAY_PADDING):
        self.renderer = OverlayRenderer(padding=overlay_padding)
        self._handlers: Dict[StepKind, Callable[[Image.Image, Dict[str, Any]], Image.Image]] = {
            StepKind.RESIZE: self._resize,
            StepKind.CROP: self._crop,
            StepKind.BLUR: self._blur,
            StepKind.SHARPEN: self._sharpen,
            StepKind.GRAYSCALE: self._grayscale,
            StepKind.TINT: self._tint,
            StepKind.MODULATE: self._modulate,
            StepKind.LINEAR_CONTRAST: self._linear_contrast,
            StepKind.ROTATE: self._rotate,
            StepKind.FLIP: self._flip,
            StepKind.FLOP: self._flop,
            StepKind.COMPOSITE_OVERLAY: self._composite_overlay,
            StepKind.CIRCULAR_MASK: self._circular_mask,
            StepKind.TRIM: self._trim,
        }

    @property
    def supported_steps(self) -> list[StepKind]:
        return list(self._handlers.keys())

    # ------------------------------------------------------------------
    # Decode / encode
    # ------------------------------------------------------------------

    def decode(self, data: Union[bytes, str]) -> DecodedImage:
        if isinstance(data, str):
            source, byte_size = data, Path(data).stat().st_size
        else:
            source, byte_size = io.BytesIO(data), len(data)
        try:
            with Image.open(source) as opened:
                metadata = _describe(opened, byte_size)
                opened.seek(0)
                pixels = opened.copy()
        except UnidentifiedImageError as e:
            raise EngineError(
                "Input is not a recognized image format", stage="decode", cause=e
            ) from e

        logger.debug(
            f"Decoded {metadata.format} {metadata.width}x{metadata.height}",
            extra_context={"mode": pixels.mode, "pages": metadata.page_count},
        )
        return DecodedImage(pixels=pixels, metadata=metadata)

    def encode(
        self,
        pixels: Image.Image,
        format: Union[ImageFormat, str],
        quality: Optional[int] = None,
    ) -> EncodedImage:
        try:
            target = ImageFormat(str(getattr(format, "value", format)).lower())
        except ValueError as e:
            raise UnsupportedFormatError(
                f"Unsupported output format: {format}", stage="encode", cause=e
            ) from e

        pillow_format = PILLOW_FORMATS[target]
        Image.init()
        if pillow_format not in Image.SAVE:
            raise UnsupportedFormatError(
                f"Output format '{target.value}' is not available in this Pillow build",
                stage="encode",
                details={"format": target.value},
            )

        image = pixels
        if image.mode not in ENCODER_MODES[target]:
            image = image.convert("RGBA" if _has_alpha(image) and "RGBA" in ENCODER_MODES[target] else "RGB")

        save_kwargs: Dict[str, Any] = {}
        if quality is not None and target in QUALITY_AWARE_FORMATS:
            save_kwargs["quality"] = quality
        if target == ImageFormat.PNG:
            save_kwargs["optimize"] = True

        buffer = io.BytesIO()
        image.save(buffer, pillow_format, **save_kwargs)
        data = buffer.getvalue()

        with Image.open(io.BytesIO(data)) as encoded:
            metadata = _describe(encoded, len(data))

        logger.debug(
            f"Encoded {metadata.format} {metadata.width}x{metadata.height} ({len(data)} bytes)"
        )
        return EncodedImage(data=data, metadata=metadata)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def apply(self, pixels: Image.Image, step: PipelineStep) -> Image.Image:
        handler = self._handlers.get(step.kind)
        if handler is None:
            raise EngineError(f"Step '{step.kind}' is not supported", stage=step.kind)
        return handler(pixels, step.params)

    def render_layer(self, pixels: Image.Image, step: PipelineStep) -> PipelineStep:
        if step.kind == StepKind.COMPOSITE_OVERLAY and "overlay" in step.params:
            layer = self.renderer.render_text_layer(pixels.size, step.params["overlay"])
            return PipelineStep(
                kind=step.kind,
                params={"layer": layer, "blend": step.params.get("blend", BlendMode.OVER)},
            )
        if step.kind == StepKind.CIRCULAR_MASK:
            mask = self.renderer.render_rounded_mask(pixels.size, step.params.get("radius"))
            return step.with_params(layer=mask)
        return step

    def _resize(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        width: Optional[int] = params.get("width")
        height: Optional[int] = params.get("height")
        src_width, src_height = image.size

        if width is None and height is None:
            return image
        if width is None:
            width = max(1, round(src_width * height / src_height))
            return image.resize((width, height), Image.Resampling.LANCZOS)
        if height is None:
            height = max(1, round(src_height * width / src_width))
            return image.resize((width, height), Image.Resampling.LANCZOS)

        fit = FitMode(params.get("fit") or DEFAULT_FIT_MODE)
        centering = GRAVITY_CENTERING[params.get("gravity") or DEFAULT_GRAVITY]
        size = (width, height)

        if fit == FitMode.FILL:
            return image.resize(size, Image.Resampling.LANCZOS)
        if fit == FitMode.COVER:
            return ImageOps.fit(image, size, Image.Resampling.LANCZOS, centering=centering)
        if fit == FitMode.CONTAIN:
            background = params.get("background")
            color = background.as_rgba() if background is not None else (0, 0, 0, 0)
            if color[3] < 255 or _has_alpha(image):
                image = image.convert("RGBA")
            else:
                image = image.convert("RGB")
                color = color[:3]
            return ImageOps.pad(
                image, size, Image.Resampling.LANCZOS, color=color, centering=centering
            )
        if fit == FitMode.INSIDE:
            return ImageOps.contain(image, size, Image.Resampling.LANCZOS)

        # OUTSIDE: smallest size that covers the box, aspect preserved
        scale = max(width / src_width, height / src_height)
        return image.resize(
            (max(1, round(src_width * scale)), max(1, round(src_height * scale))),
            Image.Resampling.LANCZOS,
        )

    def _crop(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        left, top = params["left"], params["top"]
        width, height = params["width"], params["height"]
        src_width, src_height = image.size

        if left < 0 or top < 0 or left + width > src_width or top + height > src_height:
            raise GeometryError(
                f"Crop rectangle {width}x{height}+{left}+{top} exceeds "
                f"source bounds {src_width}x{src_height}",
                stage=StepKind.CROP,
                details={
                    "crop": {"left": left, "top": top, "width": width, "height": height},
                    "source_size": (src_width, src_height),
                },
            )
        return image.crop((left, top, left + width, top + height))

    def _blur(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        color, alpha = _split_alpha(image)
        blurred = color.filter(ImageFilter.GaussianBlur(radius=params["sigma"]))
        return _merge_alpha(blurred, alpha)

    def _sharpen(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        color, alpha = _split_alpha(image)
        sharpened = color.filter(ImageFilter.UnsharpMask(radius=2, percent=150, threshold=3))
        return _merge_alpha(sharpened, alpha)

    def _grayscale(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        color, alpha = _split_alpha(image)
        return _merge_alpha(ImageOps.grayscale(color), alpha)

    def _tint(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        color, alpha = _split_alpha(image)
        tint_rgb = ImageColor.getrgb(params["color"])[:3]
        tinted = ImageOps.colorize(ImageOps.grayscale(color), black=(0, 0, 0), white=tint_rgb)
        return _merge_alpha(tinted, alpha)

    def _modulate(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        color, alpha = _split_alpha(image)
        if params.get("brightness") is not None:
            color = ImageEnhance.Brightness(color).enhance(params["brightness"])
        if params.get("saturation") is not None and color.mode == "RGB":
            color = ImageEnhance.Color(color).enhance(params["saturation"])
        return _merge_alpha(color, alpha)

    def _linear_contrast(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        multiplier, offset = params["multiplier"], params["offset"]
        lookup = [
            max(0, min(255, int(round(multiplier * value + offset)))) for value in range(256)
        ]
        color, alpha = _split_alpha(image)
        adjusted = color.point(lookup * len(color.getbands()))
        return _merge_alpha(adjusted, alpha)

    def _rotate(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        # Pillow rotates counter-clockwise; pipeline angles are clockwise
        angle = params["angle"]
        if angle % 90 == 0:
            transposes = {
                90: Image.Transpose.ROTATE_270,
                180: Image.Transpose.ROTATE_180,
                270: Image.Transpose.ROTATE_90,
            }
            turn = int(angle % 360)
            return image.transpose(transposes[turn]) if turn else image
        return image.rotate(-angle, resample=Image.Resampling.BICUBIC, expand=True)

    def _flip(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        return ImageOps.flip(image)

    def _flop(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        return ImageOps.mirror(image)

    def _composite_overlay(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        layer: Image.Image = params["layer"]
        base = image.convert("RGBA") if image.mode != "RGBA" else image
        if layer.size != base.size:
            raise GeometryError(
                "Overlay layer does not match image size",
                stage=StepKind.COMPOSITE_OVERLAY,
                details={"layer_size": layer.size, "image_size": base.size},
            )
        return Image.alpha_composite(base, layer.convert("RGBA"))

    def _circular_mask(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        mask: Image.Image = params["layer"]
        rgba = image.convert("RGBA")
        # dest-in: keep destination pixels only where the mask is opaque
        rgba.putalpha(ImageChops.multiply(rgba.getchannel("A"), mask))
        return rgba

    def _trim(self, image: Image.Image, params: Dict[str, Any]) -> Image.Image:
        threshold = params.get("threshold", 10)
        rgb = image.convert("RGB")
        background = Image.new("RGB", rgb.size, rgb.getpixel((0, 0)))
        difference = ImageChops.difference(rgb, background).convert("L")
        bbox = difference.point(lambda value: 255 if value > threshold else 0).getbbox()
        if bbox is None:
            return image
        return image.crop(bbox)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def dominant_color(self, pixels: Image.Image) -> Tuple[int, int, int]:
        rgba = np.asarray(pixels.convert("RGBA"))
        opaque = rgba[rgba[..., 3] > 0][:, :3]
        if opaque.size == 0:
            opaque = rgba[..., :3].reshape(-1, 3)

        bin_width = 256 // DOMINANT_COLOR_BINS
        bins = opaque.astype(np.int64) // bin_width
        flat = (bins[:, 0] * DOMINANT_COLOR_BINS + bins[:, 1]) * DOMINANT_COLOR_BINS + bins[:, 2]
        winner = int(np.bincount(flat).argmax())

        red_bin, rest = divmod(winner, DOMINANT_COLOR_BINS * DOMINANT_COLOR_BINS)
        green_bin, blue_bin = divmod(rest, DOMINANT_COLOR_BINS)
        half = bin_width // 2
        return (
            red_bin * bin_width + half,
            green_bin * bin_width + half,
            blue_bin * bin_width + half,
        )
