"""
Logger Service Constants

Local constants for the logger service to avoid hardcoded values.
"""

# ====================================================================
# CONSOLE SINK
# ====================================================================

CONSOLE_LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[logger_name]}</cyan> | <level>{message}</level>"
)

# ====================================================================
# FILE SINK
# ====================================================================

FILE_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | "
    "{extra[source]}.{extra[logger_name]} | {message}"
)
LOG_FILE_ROTATION = "10 MB"
LOG_FILE_RETENTION = "7 days"
LOG_FILE_COMPRESSION = "zip"

# ====================================================================
# MESSAGE FORMATTING
# ====================================================================

# Context items appended to a single log line
MAX_CONTEXT_ITEMS = 3
