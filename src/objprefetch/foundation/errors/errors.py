"""objprefetch error system.

Provides structured error handling with:
- Numeric error codes for programmatic handling
- User-friendly messages
- Recovery hints for operators
- Context for debugging
"""


from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes organized by category.

    Format: XYYY where X = category, YYY = specific error

    Categories:
        1xxx - Helper invocation errors
        2xxx - Configuration errors
        3xxx - Input/IO errors
    """

    # 1xxx - Helper Errors
    HELPER_NOT_FOUND = 1001
    HELPER_PERMISSION_DENIED = 1002
    HELPER_SPAWN_FAILED = 1003
    HELPER_RUNTIME_FAILED = 1004

    # 2xxx - Configuration Errors
    CONFIG_INVALID = 2001
    CONFIG_PARSE_ERROR = 2002

    # 3xxx - Input/IO Errors
    FILE_LIST_NOT_FOUND = 3001
    FILE_LIST_UNREADABLE = 3002

    @property
    def category(self) -> str:
        """Get the error category name."""
        prefix = self.value // 1000
        return {
            1: "helper",
            2: "config",
            3: "io",
        }.get(prefix, "unknown")

    @property
    def is_recoverable(self) -> bool:
        """Whether this error type is typically recoverable."""
        # A missing helper just means prefetch is unavailable here
        non_recoverable = {
            ErrorCode.HELPER_PERMISSION_DENIED,
            ErrorCode.CONFIG_INVALID,
            ErrorCode.CONFIG_PARSE_ERROR,
        }
        return self not in non_recoverable


# Human-readable error messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    # Helper errors
    ErrorCode.HELPER_NOT_FOUND: "Prefetch helper '{helper}' not found on PATH.",
    ErrorCode.HELPER_PERMISSION_DENIED: "Permission denied running prefetch helper '{helper}'.",
    ErrorCode.HELPER_SPAWN_FAILED: "Failed to start prefetch helper '{helper}': {detail}",
    ErrorCode.HELPER_RUNTIME_FAILED: "Prefetch helper '{helper}' failed: {detail}",

    # Config errors
    ErrorCode.CONFIG_INVALID: "Invalid configuration for '{key}': {detail}",
    ErrorCode.CONFIG_PARSE_ERROR: "Failed to parse config file '{path}': {detail}",

    # IO errors
    ErrorCode.FILE_LIST_NOT_FOUND: "File list not found: {path}",
    ErrorCode.FILE_LIST_UNREADABLE: "Cannot read file list '{path}': {detail}",
}


# Recovery hints
RECOVERY_HINTS: dict[ErrorCode, list[str]] = {
    ErrorCode.HELPER_NOT_FOUND: [
        "Install '{helper}' or add its directory to PATH",
        "Ignore this if running in a sandbox without network filesystem access",
        "Disable prefetch with OBJPREFETCH_PREFETCH_ENABLED=false",
    ],
    ErrorCode.HELPER_PERMISSION_DENIED: [
        "Check the executable bit on '{helper}'",
        "Point prefetch.helper at a binary you are allowed to run",
    ],
    ErrorCode.CONFIG_INVALID: [
        "Fix the value in .objprefetch/config.yaml",
        "Check OBJPREFETCH_* environment variables",
        "Run 'objprefetch config init' to write a fresh template",
    ],
    ErrorCode.CONFIG_PARSE_ERROR: [
        "Check the YAML syntax of '{path}'",
        "Run 'objprefetch config init' to write a fresh template",
    ],
    ErrorCode.FILE_LIST_NOT_FOUND: [
        "Check the path passed to --from-file",
        "Use '-' to read the file list from stdin",
    ],
}


class PrefetchError(Exception):
    """Base error type for all objprefetch errors.

    Provides structured error information for:
    - Programmatic error handling (code)
    - User-friendly display (message)
    - Operator guidance (recovery_hints)
    - Debugging (context, cause)

    Example:
        >>> err = PrefetchError(
        ...     code=ErrorCode.HELPER_NOT_FOUND,
        ...     context={"helper": "objfsutil"}
        ... )
        >>> print(err)
        [OP-1001] Prefetch helper 'objfsutil' not found on PATH.
    """

    def __init__(
        self,
        code: ErrorCode,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.code = code
        self.context = context or {}
        self.cause = cause
        super().__init__(str(self))

    @property
    def message(self) -> str:
        """Get the formatted user-friendly message."""
        template = ERROR_MESSAGES.get(self.code, "An error occurred: {detail}")
        try:
            return template.format(**self.context)
        except KeyError:
            # Fallback if context doesn't have all keys
            return template

    @property
    def recovery_hints(self) -> list[str]:
        """Get recovery suggestions for this error."""
        hints = RECOVERY_HINTS.get(self.code, [])
        formatted = []
        for hint in hints:
            try:
                formatted.append(hint.format(**self.context))
            except KeyError:
                formatted.append(hint)
        return formatted

    @property
    def is_recoverable(self) -> bool:
        """Whether this error is typically recoverable."""
        return self.code.is_recoverable

    @property
    def category(self) -> str:
        """Get the error category."""
        return self.code.category

    @property
    def error_id(self) -> str:
        """Get the error ID string (e.g., 'OP-1001')."""
        return f"OP-{self.code.value}"

    def __str__(self) -> str:
        return f"[{self.error_id}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, context={self.context!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for logging and --json output."""
        return {
            "error_id": self.error_id,
            "code": self.code.value,
            "category": self.category,
            "message": self.message,
            "recoverable": self.is_recoverable,
            "recovery_hints": self.recovery_hints,
            "context": self.context,
        }


# Convenience factory functions

def config_error(
    key: str,
    detail: str,
    cause: Exception | None = None,
) -> PrefetchError:
    """Create a CONFIG_INVALID error."""
    return PrefetchError(
        code=ErrorCode.CONFIG_INVALID,
        context={"key": key, "detail": detail},
        cause=cause,
    )


def file_list_error(path: str, cause: OSError) -> PrefetchError:
    """Translate an OSError raised while reading a file list."""
    if isinstance(cause, FileNotFoundError):
        return PrefetchError(
            code=ErrorCode.FILE_LIST_NOT_FOUND,
            context={"path": path},
            cause=cause,
        )
    return PrefetchError(
        code=ErrorCode.FILE_LIST_UNREADABLE,
        context={"path": path, "detail": cause.strerror or str(cause)},
        cause=cause,
    )
