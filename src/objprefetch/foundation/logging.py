"""Logging configuration for objprefetch.

Provides centralized logging setup with sensible defaults:
- Default: WARNING level (quiet operation)
- --debug flag: DEBUG level with full context
- OBJPREFETCH_DEBUG=true or OBJPREFETCH_LOG_LEVEL=DEBUG env vars: Override for CI/scripting
- Config file: debug: true in .objprefetch/config.yaml (persistent)
- Persistent logs: Stored in .objprefetch/logs/ with session rotation (opt-in)

Usage:
    from objprefetch.foundation.logging import configure_logging
    configure_logging(debug=args.debug)

Priority for level resolution (highest to lowest):
    1. Explicit `level` parameter (programmatic override)
    2. OBJPREFETCH_LOG_LEVEL env var (any level: DEBUG, INFO, WARNING, etc.)
    3. OBJPREFETCH_DEBUG=true env var (simple boolean)
    4. `debug=True` parameter (--debug flag)
    5. `config_debug=True` parameter (debug: true in config)
    6. WARNING (default)
"""

import logging
import os
import sys
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

# Format includes module path for tracing issues
_DEBUG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"
_DEFAULT_FORMAT = "%(name)s: %(message)s"

# Noisy libraries we want to quiet even in debug mode
_NOISY_LOGGERS = (
    "asyncio",
    "markdown_it",
)

# Session log retention
_MAX_LOG_SESSIONS = 10


def _get_log_directory() -> Path:
    """Get or create the persistent log directory."""
    for base in [Path.cwd(), Path.home()]:
        state_dir = base / ".objprefetch"
        if state_dir.exists():
            log_dir = state_dir / "logs"
            log_dir.mkdir(exist_ok=True)
            return log_dir

    log_dir = Path.cwd() / ".objprefetch" / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _cleanup_old_logs(log_dir: Path, max_sessions: int = _MAX_LOG_SESSIONS) -> None:
    """Remove old session logs, keeping only the most recent N.

    Args:
        log_dir: Directory containing log files
        max_sessions: Maximum number of session logs to retain
    """
    if not log_dir.exists():
        return

    log_files = sorted(
        log_dir.glob("session_*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,  # Newest first
    )

    for old_log in log_files[max_sessions:]:
        try:
            old_log.unlink()
        except OSError:
            pass  # Ignore errors during cleanup


def configure_logging(
    *,
    debug: bool = False,
    level: int | str | None = None,
    stream: object = None,
    persist: bool = False,
    config_debug: bool = False,
) -> int:
    """Configure logging for the objprefetch CLI.

    Call this early in the CLI entrypoint.

    Args:
        debug: Enable DEBUG level with detailed format
        level: Override log level (int or string like "DEBUG", "INFO")
        stream: Output stream (default: stderr)
        persist: Store logs in .objprefetch/logs/ with session rotation
        config_debug: The ``debug`` value from the loaded config

    Returns:
        The resolved console log level.
    """
    resolved_level: int
    if level is not None:
        resolved_level = _parse_level(level)
    elif env_level := os.environ.get("OBJPREFETCH_LOG_LEVEL"):
        resolved_level = _parse_level(env_level)
    elif os.environ.get("OBJPREFETCH_DEBUG", "").lower() in ("true", "1", "yes"):
        resolved_level = logging.DEBUG
    elif debug or config_debug:
        resolved_level = logging.DEBUG
    else:
        resolved_level = logging.WARNING

    console_format = _DEBUG_FORMAT if resolved_level <= logging.DEBUG else _DEFAULT_FORMAT

    root_logger = logging.getLogger()
    # When persisting to file, root must allow DEBUG through so file handler can capture it
    root_logger.setLevel(logging.DEBUG if persist else resolved_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(resolved_level)
    console_handler.setFormatter(logging.Formatter(console_format))
    root_logger.addHandler(console_handler)

    if persist:
        try:
            log_dir = _get_log_directory()
            _cleanup_old_logs(log_dir)

            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            log_file = log_dir / f"session_{timestamp}.log"

            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(_DEBUG_FORMAT))
            root_logger.addHandler(file_handler)

        except OSError as e:
            # Non-fatal: log to stderr if file logging fails
            sys.stderr.write(f"Warning: Could not enable persistent logging: {e}\n")

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s, debug=%s, persist=%s",
        logging.getLevelName(resolved_level),
        debug,
        persist,
    )
    return resolved_level


def logging_trace(
    logger: logging.Logger | None = None,
    level: int = logging.INFO,
) -> Callable[[str], None]:
    """Adapt a logger into a trace sink for the prefetch trigger.

    Args:
        logger: Logger to write to (default: ``objprefetch.trace``)
        level: Level used for every trace message

    Returns:
        A single-argument callable accepting a message.
    """
    target = logger or logging.getLogger("objprefetch.trace")

    def trace(message: str) -> None:
        target.log(level, "%s", message)

    return trace


def _parse_level(level: int | str) -> int:
    """Parse log level from int or string."""
    if isinstance(level, int):
        return level
    numeric = getattr(logging, level.upper(), None)
    if isinstance(numeric, int):
        return numeric
    try:
        return int(level)
    except ValueError:
        return logging.WARNING
