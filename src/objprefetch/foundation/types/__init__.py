"""Shared type definitions."""

from objprefetch.foundation.types.config import ObjPrefetchConfig, PrefetchConfig, Transport

__all__ = [
    "ObjPrefetchConfig",
    "PrefetchConfig",
    "Transport",
]
