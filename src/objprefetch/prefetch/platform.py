"""Process-spawning capability of the host.

Decided once at startup and passed to the trigger, so the prefetch code
never inspects the interpreter inline.
"""

import os
import sys
from enum import Enum

# Interpreters that run without child processes
_NO_SPAWN_PLATFORMS = frozenset({"emscripten", "wasi"})


class PlatformCapability(Enum):
    """Whether the host can launch helper processes."""

    PRESENT = "present"
    ABSENT = "absent"


def detect_platform_capability(platform: str | None = None) -> PlatformCapability:
    """Detect whether this interpreter can spawn subprocesses.

    Args:
        platform: Override for ``sys.platform`` (used in tests)

    Returns:
        PRESENT when child processes can be started, ABSENT otherwise
    """
    name = platform or sys.platform
    if name in _NO_SPAWN_PLATFORMS:
        return PlatformCapability.ABSENT
    if name == "win32":
        return PlatformCapability.PRESENT
    # POSIX hosts need fork or posix_spawn
    if hasattr(os, "fork") or hasattr(os, "posix_spawn"):
        return PlatformCapability.PRESENT
    return PlatformCapability.ABSENT
