# imagepipe/services/image_pipeline/utils/overlay_utils.py
"""
Overlay Utilities - Pillow-based rendering of overlay layers.

Produces the layers the engine composites onto the working image:
- text layers (composited with "over" alpha blending)
- rounded/circular masks (composited with "dest-in" blending)

Placement comes from the positioning calculator; this module only draws.
"""

from typing import Tuple

from PIL import Image, ImageColor, ImageDraw

from ....constants import TEXT_ANCHORS
from ....enums import LoggerName, LogSource, StepKind
from ....exceptions import GeometryError
from ....models.process_options_model import OverlayOptions
from ...logger import get_service_logger
from .font_cache import get_font
from .positioning import estimate_text_width, place

logger = get_service_logger(LoggerName.OVERLAY_RENDERER, LogSource.PIPELINE)


class OverlayRenderer:
    """
    Renders overlay layers sized to the image they will be composited onto.
    """

    def __init__(self, padding: int):
        """
        Args:
            padding: Distance in pixels between text and the image edge
        """
        self.padding = padding

    def render_text_layer(
        self, image_size: Tuple[int, int], overlay: OverlayOptions
    ) -> Image.Image:
        """
        Render overlay text onto a transparent RGBA layer.

        Args:
            image_size: (width, height) of the image the layer covers
            overlay: Text, font and placement settings

        Returns:
            Transparent layer the size of the image with the text drawn on it
        """
        width, height = image_size
        if width <= 0 or height <= 0:
            raise GeometryError(
                "Unable to determine image dimensions for overlay",
                stage=StepKind.COMPOSITE_OVERLAY,
                details={"image_size": image_size},
            )

        placement = place(
            width,
            height,
            estimate_text_width(overlay.text, overlay.size),
            overlay.size,
            overlay.position,
            self.padding,
        )

        red, green, blue = ImageColor.getrgb(overlay.color)[:3]
        fill = (red, green, blue, round(overlay.opacity * 255))

        layer = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        draw = ImageDraw.Draw(layer)
        draw.text(
            (placement.x, placement.y),
            overlay.text,
            font=get_font(overlay.font, overlay.size),
            fill=fill,
            anchor=TEXT_ANCHORS[placement.alignment],
        )

        logger.debug(
            f"Rendered text overlay '{overlay.text}' at ({placement.x}, {placement.y})",
            extra_context={"alignment": placement.alignment.value},
        )
        return layer

    def render_rounded_mask(
        self, image_size: Tuple[int, int], radius: float
    ) -> Image.Image:
        """
        Render an opaque rounded rectangle covering the image.

        A radius of at least half the shorter side yields a circle on square
        images.

        Raises:
            GeometryError: If the image has no size or the radius is not positive
        """
        width, height = image_size
        if width <= 0 or height <= 0:
            raise GeometryError(
                "Unable to determine image dimensions for mask",
                stage=StepKind.CIRCULAR_MASK,
                details={"image_size": image_size},
            )
        if radius is None or radius <= 0:
            raise GeometryError(
                f"Mask radius must be positive, got {radius!r}",
                stage=StepKind.CIRCULAR_MASK,
                details={"radius": radius},
            )

        effective_radius = min(radius, min(width, height) / 2)
        mask = Image.new("L", (width, height), 0)
        ImageDraw.Draw(mask).rounded_rectangle(
            (0, 0, width - 1, height - 1), radius=effective_radius, fill=255
        )
        return mask
