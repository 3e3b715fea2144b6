"""Error system for objprefetch."""

from objprefetch.foundation.errors.errors import (
    ERROR_MESSAGES,
    RECOVERY_HINTS,
    ErrorCode,
    PrefetchError,
    config_error,
    file_list_error,
)

__all__ = [
    "ErrorCode",
    "ERROR_MESSAGES",
    "RECOVERY_HINTS",
    "PrefetchError",
    "config_error",
    "file_list_error",
]
