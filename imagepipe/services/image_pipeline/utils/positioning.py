# imagepipe/services/image_pipeline/utils/positioning.py
"""
Overlay positioning - pure placement math for text and graphic overlays.

No rendering and no I/O happens here, so placement can be tested on its own.
"""

from typing import NamedTuple, Union

from ....constants import TEXT_WIDTH_FACTOR
from ....enums import AnchorPosition, TextAlignment

Number = Union[int, float]


class Placement(NamedTuple):
    """Anchor point for an overlay and how text aligns to it."""

    x: Number
    y: Number
    alignment: TextAlignment


def estimate_text_width(text: str, font_size: Number) -> float:
    """
    Monospace-width heuristic for rendered text.

    Not exact glyph metrics; proportional fonts will render narrower or wider.
    """
    return len(text) * font_size * TEXT_WIDTH_FACTOR


def place(
    container_width: Number,
    container_height: Number,
    content_width_estimate: Number,
    content_height: Number,
    anchor: Union[AnchorPosition, str],
    padding: Number,
) -> Placement:
    """
    Compute where an overlay goes inside a container.

    y marks the lower edge of the content:
        top    -> padding + content_height
        bottom -> container_height - padding
        other  -> container_height / 2

    x marks the alignment edge:
        left   -> padding, start
        right  -> container_width - padding, end
        other  -> container_width / 2, middle

    content_width_estimate is accepted for callers that lay out a box; the
    alignment makes the renderer grow the text away from x.
    """
    anchor_name = anchor.value if isinstance(anchor, AnchorPosition) else str(anchor)

    if "top" in anchor_name:
        y = padding + content_height
    elif "bottom" in anchor_name:
        y = container_height - padding
    else:
        y = container_height / 2

    if "left" in anchor_name:
        x = padding
        alignment = TextAlignment.START
    elif "right" in anchor_name:
        x = container_width - padding
        alignment = TextAlignment.END
    else:
        x = container_width / 2
        alignment = TextAlignment.MIDDLE

    return Placement(x=x, y=y, alignment=alignment)
