#!/usr/bin/env python3
# tests/unit/services/test_positioning.py
"""
Unit tests for overlay placement math.
"""

import pytest

from imagepipe.enums import AnchorPosition, TextAlignment
from imagepipe.services.image_pipeline.utils.positioning import (
    Placement,
    estimate_text_width,
    place,
)


@pytest.mark.unit
class TestPlace:
    def test_bottom_right(self):
        assert place(200, 200, 40, 24, "bottom-right", 10) == Placement(
            190, 190, TextAlignment.END
        )

    def test_top_left(self):
        assert place(200, 200, 40, 24, "top-left", 10) == Placement(
            10, 34, TextAlignment.START
        )

    def test_center(self):
        assert place(200, 200, 40, 24, "center", 10) == Placement(
            100, 100, TextAlignment.MIDDLE
        )

    def test_top_right(self):
        placement = place(300, 100, 40, 20, AnchorPosition.TOP_RIGHT, 5)
        assert (placement.x, placement.y) == (295, 25)
        assert placement.alignment == TextAlignment.END

    def test_bottom_left(self):
        placement = place(300, 100, 40, 20, AnchorPosition.BOTTOM_LEFT, 5)
        assert (placement.x, placement.y) == (5, 95)
        assert placement.alignment == TextAlignment.START

    def test_odd_container_centers_on_half_pixel(self):
        placement = place(201, 101, 10, 10, "center", 0)
        assert placement.x == 100.5
        assert placement.y == 50.5


@pytest.mark.unit
def test_estimate_text_width():
    assert estimate_text_width("Hello", 20) == pytest.approx(60.0)
    assert estimate_text_width("", 20) == 0
