"""objprefetch - fire-and-forget prefetch for network filesystems.

Hands the list of files a client is about to read to ``objfsutil prefetch``
in one request, without ever blocking or failing the caller.
"""

from objprefetch.foundation.errors import ErrorCode, PrefetchError
from objprefetch.prefetch import (
    ExitStatus,
    PlatformCapability,
    Prefetcher,
    PrefetchHandle,
    PrefetchResult,
    PrefetchState,
    SpawnError,
    SpawnErrorKind,
    build_candidate_set,
    detect_platform_capability,
    prefetch,
)

__version__ = "0.1.0"

__all__ = [
    # Trigger
    "prefetch",
    "Prefetcher",
    "build_candidate_set",
    "detect_platform_capability",
    "PlatformCapability",
    # Outcomes
    "ExitStatus",
    "PrefetchHandle",
    "PrefetchResult",
    "PrefetchState",
    # Errors
    "ErrorCode",
    "PrefetchError",
    "SpawnError",
    "SpawnErrorKind",
]
