# imagepipe/utils/validation_helpers.py
"""
Input validation helpers.

Everything here runs before the engine is touched, so a failure never costs
a decode.
"""

from typing import Union

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import OperationName, UnsupportedFormatError, ValidationError
from ..models.process_options_model import OptionsInput, ProcessOptions, coerce_options

ImageInput = Union[bytes, bytearray, memoryview, str]


def validate_image_input(data: ImageInput, operation: OperationName) -> ImageInput:
    """
    Reject empty buffers and blank string references.

    Args:
        data: Raw image bytes or a non-blank reference string
        operation: Calling operation, used to tag the error

    Returns:
        The input, with bytearray/memoryview normalized to bytes

    Raises:
        ValidationError: If the input is empty, blank or of an unsupported type
    """
    if isinstance(data, str):
        if not data.strip():
            raise ValidationError("Empty string provided", operation=operation)
        return data

    if isinstance(data, (bytearray, memoryview)):
        data = bytes(data)

    if not isinstance(data, bytes):
        raise ValidationError(
            f"Unsupported input type: {type(data).__name__}",
            operation=operation,
            details={"input_type": type(data).__name__},
        )

    if len(data) == 0:
        raise ValidationError("Empty buffer provided", operation=operation)

    return data


def validate_options(options: OptionsInput, operation: OperationName) -> ProcessOptions:
    """
    Validate a raw option bag into ProcessOptions.

    Raises:
        ValidationError: If any option value is out of range or malformed
    """
    try:
        return coerce_options(options)
    except PydanticValidationError as e:
        errors = e.errors(include_url=False)
        if any(error["loc"] == ("format",) for error in errors):
            requested = dict(options).get("format") if options is not None else None
            raise UnsupportedFormatError(
                f"Unsupported output format: {requested}",
                operation=operation,
                cause=e,
                details={"format": requested},
            ) from e
        raise ValidationError(
            f"Invalid processing options: {e.error_count()} error(s)",
            operation=operation,
            cause=e,
            details={"errors": errors},
        ) from e


def validate_positive_size(size: int, name: str, operation: OperationName) -> int:
    """Require a positive integer dimension."""
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise ValidationError(
            f"{name} must be a positive integer, got {size!r}",
            operation=operation,
            details={name: size},
        )
    return size
