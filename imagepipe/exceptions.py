# imagepipe/exceptions.py
"""
Image Processing Exceptions - Uniform Error Shape

Every failure leaving a public operation is an ImageProcessingError (or one of
its kinds) carrying the operation name, the failing stage when known, and the
original cause.

Architecture Pattern:
- Engines raise their own errors, or a classified kind when they know it
  (GeometryError for an out-of-bounds crop, UnsupportedFormatError for an
  encoder that does not exist)
- The pipeline composer tags anything else with the failing stage
- Public operations re-tag with their own operation name via reclassify()

Usage Examples:
    # At a public boundary:
    with reclassify(Operation.PROCESS):
        validate_image_input(data)
        return await self._composer.run(data, options)

    # Anywhere else:
    raise GeometryError(
        "Crop rectangle exceeds source bounds",
        stage=StepKind.CROP,
        details={"crop": crop, "source_size": size},
    )
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Union

from .enums import Operation, StepKind

OperationName = Union[Operation, str]
StageName = Union[StepKind, str]


def _enum_value(value: Optional[Union[Operation, StepKind, str]]) -> Optional[str]:
    if value is None:
        return None
    return value.value if hasattr(value, "value") else str(value)


class ImageProcessingError(Exception):
    """
    Base exception for all image processing failures.

    Attributes:
        message: Human readable description
        operation: Public operation that surfaced the error
        cause: The underlying exception, preserved as-is
        stage: Pipeline stage that failed (decode, a step kind, encode)
        details: Extra structured context
    """

    def __init__(
        self,
        message: str,
        operation: Optional[OperationName] = None,
        cause: Optional[BaseException] = None,
        stage: Optional[StageName] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.operation = _enum_value(operation)
        self.cause = cause
        self.stage = _enum_value(stage)
        self.details = details or {}

    def __str__(self):
        text = self.message
        if self.stage:
            text = f"[{self.stage}] {text}"
        if self.operation:
            text = f"{self.operation}: {text}"
        return text

    def retag(
        self, operation: OperationName, cause: Optional[BaseException] = None
    ) -> "ImageProcessingError":
        """Return a copy of this error of the same kind tagged with another operation."""
        return type(self)(
            self.message,
            operation=operation,
            cause=cause if cause is not None else self,
            stage=self.stage,
            details=dict(self.details),
        )


class ValidationError(ImageProcessingError):
    """Empty or blank input, or invalid option values. Raised before any engine call."""

    pass


class UnsupportedFormatError(ImageProcessingError):
    """Requested output format rejected by the engine."""

    pass


class GeometryError(ImageProcessingError):
    """Crop rectangle outside source bounds, or dimensions that cannot be resolved."""

    pass


class EngineError(ImageProcessingError):
    """Any other failure surfaced by the engine's decode/apply/encode capability."""

    pass


def classify_error(
    operation: OperationName, error: BaseException
) -> ImageProcessingError:
    """
    Wrap any failure into the uniform error shape for the given operation.

    Already classified errors keep their kind. When they already carry this
    operation they are returned unchanged; otherwise a tagged copy is
    returned and the original is left untouched.
    Unclassified errors become EngineError.
    """
    operation_name = _enum_value(operation)

    if isinstance(error, ImageProcessingError):
        if error.operation == operation_name:
            return error
        if error.operation is None:
            return error.retag(operation_name, cause=error.cause)
        return error.retag(operation_name)

    return EngineError(
        f"Failed to {operation_name.replace('_', ' ')}: {error}",
        operation=operation_name,
        cause=error,
    )


@contextmanager
def reclassify(operation: OperationName) -> Iterator[None]:
    """
    Scoped catch-and-reclassify helper used at every public boundary.

    Re-raises any exception as a classified error tagged with operation,
    chaining the original via ``raise ... from``.
    """
    try:
        yield
    except Exception as e:
        classified = classify_error(operation, e)
        if classified is e:
            raise
        raise classified from e
