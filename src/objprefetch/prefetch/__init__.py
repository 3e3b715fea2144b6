"""Remote-file prefetch trigger.

Turns N sequential high-latency reads from a network filesystem into one
parallel warm-up request to the ``objfsutil prefetch`` helper.
"""

from objprefetch.prefetch.candidates import build_candidate_set, derive_sidecars
from objprefetch.prefetch.platform import PlatformCapability, detect_platform_capability
from objprefetch.prefetch.spawn import (
    AsyncioSpawner,
    HelperInput,
    HelperProcess,
    SpawnError,
    SpawnErrorKind,
    Spawner,
    classify_os_error,
)
from objprefetch.prefetch.trigger import (
    Prefetcher,
    TraceSink,
    get_prefetcher,
    prefetch,
    reset_prefetcher,
)
from objprefetch.prefetch.types import ExitStatus, PrefetchHandle, PrefetchResult, PrefetchState

__all__ = [
    # Candidates
    "build_candidate_set",
    "derive_sidecars",
    # Platform
    "PlatformCapability",
    "detect_platform_capability",
    # Spawning
    "AsyncioSpawner",
    "HelperInput",
    "HelperProcess",
    "SpawnError",
    "SpawnErrorKind",
    "Spawner",
    "classify_os_error",
    # Trigger
    "Prefetcher",
    "TraceSink",
    "get_prefetcher",
    "prefetch",
    "reset_prefetcher",
    # Outcomes
    "ExitStatus",
    "PrefetchHandle",
    "PrefetchResult",
    "PrefetchState",
]
