"""Configuration management for objprefetch."""

from objprefetch.foundation.config.loader import (
    get_config,
    load_config,
    reset_config,
    save_default_config,
)
from objprefetch.foundation.types.config import ObjPrefetchConfig, PrefetchConfig

__all__ = [
    "ObjPrefetchConfig",
    "PrefetchConfig",
    "get_config",
    "load_config",
    "reset_config",
    "save_default_config",
]
