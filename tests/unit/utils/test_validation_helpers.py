#!/usr/bin/env python3
# tests/unit/utils/test_validation_helpers.py
"""
Unit tests for input and option validation.
"""

import pytest

from imagepipe.enums import ImageFormat, Operation
from imagepipe.exceptions import UnsupportedFormatError, ValidationError
from imagepipe.models.process_options_model import ProcessOptions
from imagepipe.utils.validation_helpers import (
    validate_image_input,
    validate_options,
    validate_positive_size,
)


@pytest.mark.unit
class TestValidateImageInput:
    def test_empty_bytes_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_image_input(b"", Operation.PROCESS)

        assert exc_info.value.operation == "process"
        assert "Empty buffer" in exc_info.value.message

    @pytest.mark.parametrize("reference", ["", "   ", "\n\t"])
    def test_blank_string_rejected(self, reference):
        with pytest.raises(ValidationError) as exc_info:
            validate_image_input(reference, Operation.CONVERT)

        assert exc_info.value.operation == "convert"

    def test_bytearray_normalized_to_bytes(self):
        result = validate_image_input(bytearray(b"abc"), Operation.PROCESS)
        assert result == b"abc"
        assert isinstance(result, bytes)

    def test_reference_string_passes_through(self):
        assert validate_image_input("photos/cat.png", Operation.PROCESS) == "photos/cat.png"

    def test_unsupported_type_rejected(self):
        with pytest.raises(ValidationError):
            validate_image_input(12345, Operation.PROCESS)


@pytest.mark.unit
class TestValidateOptions:
    def test_none_gives_empty_options(self):
        assert validate_options(None, Operation.PROCESS) == ProcessOptions()

    def test_dict_is_validated(self):
        options = validate_options({"width": 800, "format": "webp"}, Operation.PROCESS)
        assert options.width == 800
        assert options.format == ImageFormat.WEBP

    def test_unknown_keys_ignored(self):
        options = validate_options({"width": 10, "sparkle": True}, Operation.PROCESS)
        assert options.width == 10

    def test_quality_out_of_range(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_options({"format": "jpeg", "quality": 101}, Operation.PROCESS)

        assert exc_info.value.operation == "process"
        assert exc_info.value.details["errors"]

    def test_negative_width(self):
        with pytest.raises(ValidationError):
            validate_options({"width": -5}, Operation.PROCESS)

    def test_unknown_format_is_unsupported(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            validate_options({"format": "bmp"}, Operation.PROCESS)

        assert exc_info.value.details["format"] == "bmp"


@pytest.mark.unit
class TestValidatePositiveSize:
    @pytest.mark.parametrize("size", [0, -1, 2.5, True, "100"])
    def test_rejects_non_positive_or_non_int(self, size):
        with pytest.raises(ValidationError):
            validate_positive_size(size, "size", Operation.CREATE_AVATAR)

    def test_accepts_positive_int(self):
        assert validate_positive_size(64, "size", Operation.CREATE_AVATAR) == 64
