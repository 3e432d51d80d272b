# imagepipe/services/logger/logger_service.py
"""
Centralized Logger Service for imagepipe.

Thin layer over loguru that gives every component a pre-configured service
logger with a consistent message shape:

- Emoji prefix resolved from direct / instance / level fallback
- logger_name and source bound as loguru extras
- Optional structured context appended to the message
- Exceptions attached with loguru's ``opt(exception=...)``

Sinks are installed by configure_logging(); until then loguru's default
stderr sink is used.
"""

import sys
from typing import Any, Dict, Optional

from loguru import logger

from ...enums import LogEmoji, LoggerName, LogLevel, LogSource
from .constants import (
    CONSOLE_LOG_FORMAT,
    FILE_LOG_FORMAT,
    LOG_FILE_COMPRESSION,
    LOG_FILE_RETENTION,
    LOG_FILE_ROTATION,
    MAX_CONTEXT_ITEMS,
)

_configured_sink_ids: list = []


def configure_logging(settings=None) -> None:
    """
    Install console (and optional file) sinks for the whole process.

    Safe to call more than once; previously installed sinks are replaced.

    Args:
        settings: Settings instance; the global settings are used when omitted
    """
    if settings is None:
        from ...config import settings as global_settings

        settings = global_settings

    logger.remove()
    _configured_sink_ids.clear()
    # Records from outside the service loggers still need these extras
    logger.configure(
        extra={"logger_name": LoggerName.SYSTEM.value, "source": LogSource.SYSTEM.value}
    )

    level = settings.log_level.value
    if sys.stderr is not None:
        _configured_sink_ids.append(
            logger.add(
                sys.stderr,
                format=CONSOLE_LOG_FORMAT,
                level=level,
                colorize=True,
            )
        )

    if settings.log_file_path:
        _configured_sink_ids.append(
            logger.add(
                settings.log_file_path,
                format=FILE_LOG_FORMAT,
                level=LogLevel.DEBUG.value,
                rotation=LOG_FILE_ROTATION,
                retention=LOG_FILE_RETENTION,
                compression=LOG_FILE_COMPRESSION,
                encoding="utf-8",
            )
        )


def _format_message(
    message: str, emoji: LogEmoji, context: Optional[Dict[str, Any]]
) -> str:
    text = f"{emoji.value} {message}"
    if context:
        preview = ", ".join(
            f"{key}={value}" for key, value in list(context.items())[:MAX_CONTEXT_ITEMS]
        )
        text = f"{text} ({preview})"
    return text


def get_service_logger(
    logger_name: LoggerName,
    source: LogSource = LogSource.SYSTEM,
    default_emoji: Optional[LogEmoji] = None,
):
    """
    Factory function to create a pre-configured logger for a specific service.

    Emoji priority system (highest to lowest):
    1. Direct: Emoji passed directly to log method call
    2. Instance-set: Default emoji set when creating the service logger
    3. Fallback: Default emoji based on log level (ERROR, WARNING, INFO, DEBUG)

    Args:
        logger_name: The logger name enum to use for all calls
        source: The log source enum to use for all calls (defaults to SYSTEM)
        default_emoji: Instance-level default emoji that overrides level-based fallbacks

    Returns:
        ServiceLogger instance with error, warning, info, debug methods

    Example:
        logger = get_service_logger(LoggerName.RESULT_CACHE, LogSource.CACHE)
        logger.debug("Cache hit", emoji=LogEmoji.HIT)
    """

    bound = logger.bind(logger_name=logger_name.value, source=source.value)

    def _resolve_emoji(
        method_emoji: Optional[LogEmoji], fallback_emoji: LogEmoji
    ) -> LogEmoji:
        if method_emoji is not None:
            return method_emoji
        if default_emoji is not None:
            return default_emoji
        return fallback_emoji

    class ServiceLogger:
        logger_name_value = logger_name.value
        source_value = source.value

        @staticmethod
        def error(
            message: str,
            exception: Optional[BaseException] = None,
            error_context: Optional[Dict[str, Any]] = None,
            emoji: Optional[LogEmoji] = None,
            **kwargs,
        ):
            """Log an error, attaching the exception traceback when given."""
            text = _format_message(
                message, _resolve_emoji(emoji, LogEmoji.ERROR), error_context
            )
            if exception is not None:
                bound.opt(exception=exception).error(text)
            else:
                bound.error(text)

        @staticmethod
        def warning(
            message: str,
            extra_context: Optional[Dict[str, Any]] = None,
            emoji: Optional[LogEmoji] = None,
            exception: Optional[BaseException] = None,
            **kwargs,
        ):
            """Log a warning."""
            text = _format_message(
                message, _resolve_emoji(emoji, LogEmoji.WARNING), extra_context
            )
            if exception is not None:
                text = f"{text}: {exception}"
            bound.warning(text)

        @staticmethod
        def info(
            message: str,
            extra_context: Optional[Dict[str, Any]] = None,
            emoji: Optional[LogEmoji] = None,
            **kwargs,
        ):
            """Log an info message."""
            bound.info(
                _format_message(
                    message, _resolve_emoji(emoji, LogEmoji.INFO), extra_context
                )
            )

        @staticmethod
        def debug(
            message: str,
            extra_context: Optional[Dict[str, Any]] = None,
            emoji: Optional[LogEmoji] = None,
            **kwargs,
        ):
            """Log a debug message."""
            bound.debug(
                _format_message(
                    message, _resolve_emoji(emoji, LogEmoji.DEBUG), extra_context
                )
            )

    return ServiceLogger()
