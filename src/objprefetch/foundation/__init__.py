"""Foundation domain - base types, config, errors and logging.

This domain has no dependencies on other objprefetch modules.
Everything else imports from here.
"""

from objprefetch.foundation.config import (
    ObjPrefetchConfig,
    PrefetchConfig,
    get_config,
    load_config,
    reset_config,
    save_default_config,
)
from objprefetch.foundation.errors import ErrorCode, PrefetchError
from objprefetch.foundation.logging import configure_logging, logging_trace

__all__ = [
    # Config
    "ObjPrefetchConfig",
    "PrefetchConfig",
    "get_config",
    "load_config",
    "reset_config",
    "save_default_config",
    # Errors
    "ErrorCode",
    "PrefetchError",
    # Logging
    "configure_logging",
    "logging_trace",
]
