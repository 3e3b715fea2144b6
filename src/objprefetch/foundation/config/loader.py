"""objprefetch configuration management.

Loads configuration from .objprefetch/config.yaml with sensible defaults.
All settings can be overridden via environment variables (OBJPREFETCH_*).

Config locations (in priority order):
1. Explicit path passed to load_config()
2. .objprefetch/config.yaml (project-local)
3. ~/.objprefetch/config.yaml (user-global)
4. Built-in defaults

Thread Safety:
    Uses threading.Lock for thread-safe lazy initialization; the trigger
    may run its background job on a separate thread.
"""


import codecs
import os
import threading
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

import yaml

from objprefetch.foundation.errors import ErrorCode, PrefetchError, config_error
from objprefetch.foundation.types.config import ObjPrefetchConfig, PrefetchConfig

_ENV_PREFIX = "OBJPREFETCH_"
_TRANSPORTS = ("stdin", "argv")

# Global config instance (lazy-loaded, thread-safe)
_config: ObjPrefetchConfig | None = None
_config_lock = threading.Lock()


def _deep_update(base: dict, updates: dict) -> dict:
    """Recursively update a dict with another dict."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value
    return base


def _coerce(value: str) -> bool | int | str:
    """Coerce an environment string to bool or int where it looks like one."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
        return int(value)
    return value


def _apply_env_overrides(config_dict: dict) -> dict:
    """Apply environment variable overrides.

    Environment variables follow pattern: OBJPREFETCH_SECTION_KEY

    Examples:
        OBJPREFETCH_PREFETCH_ENABLED=false
        OBJPREFETCH_PREFETCH_HELPER=/opt/objfs/bin/objfsutil
        OBJPREFETCH_DEBUG=true
    """
    prefetch_keys = {f.name for f in fields(PrefetchConfig)}

    for key, value in os.environ.items():
        if not key.startswith(_ENV_PREFIX):
            continue

        path_str = key[len(_ENV_PREFIX):].lower()

        if path_str == "debug":
            config_dict["debug"] = _coerce(value)
            continue

        if not path_str.startswith("prefetch_"):
            # Unknown section (or OBJPREFETCH_LOG_LEVEL), skip
            continue

        name = path_str[len("prefetch_"):]
        if name not in prefetch_keys:
            continue

        # Suffixes and names stay strings even when they look numeric
        if name in ("enabled", "failure_exit_code"):
            config_dict.setdefault("prefetch", {})[name] = _coerce(value)
        else:
            config_dict.setdefault("prefetch", {})[name] = value

    return config_dict


def _validate_prefetch(cfg: PrefetchConfig) -> PrefetchConfig:
    """Reject values the trigger cannot work with."""
    if not cfg.helper:
        raise config_error("prefetch.helper", "must not be empty")
    if not cfg.subcommand:
        raise config_error("prefetch.subcommand", "must not be empty")
    if not cfg.declaration_suffix:
        raise config_error("prefetch.declaration_suffix", "must not be empty")
    if cfg.transport not in _TRANSPORTS:
        raise config_error(
            "prefetch.transport",
            f"expected one of {', '.join(_TRANSPORTS)}, got {cfg.transport!r}",
        )
    if not isinstance(cfg.enabled, bool):
        raise config_error("prefetch.enabled", f"expected a boolean, got {cfg.enabled!r}")
    code = cfg.failure_exit_code
    if isinstance(code, bool) or not isinstance(code, int) or code == 0:
        raise config_error(
            "prefetch.failure_exit_code",
            f"expected a nonzero integer, got {cfg.failure_exit_code!r}",
        )
    try:
        codecs.lookup(cfg.encoding)
    except LookupError as e:
        raise config_error("prefetch.encoding", f"unknown encoding {cfg.encoding!r}", e) from e
    return cfg


def _dict_to_config(data: dict) -> ObjPrefetchConfig:
    """Convert a dict to ObjPrefetchConfig."""
    prefetch_data = data.get("prefetch") or {}
    if not isinstance(prefetch_data, dict):
        raise config_error("prefetch", "expected a mapping")

    try:
        prefetch_config = PrefetchConfig(**prefetch_data)
    except TypeError as e:
        raise config_error("prefetch", str(e), e) from e

    return ObjPrefetchConfig(
        prefetch=_validate_prefetch(prefetch_config),
        debug=bool(data.get("debug", False)),
    )


def load_config(path: str | Path | None = None) -> ObjPrefetchConfig:
    """Load configuration from file with defaults and env overrides.

    Priority (highest to lowest):
    1. Environment variables (OBJPREFETCH_*)
    2. Explicit path if provided
    3. .objprefetch/config.yaml (project-local)
    4. ~/.objprefetch/config.yaml (user-global)
    5. Built-in defaults

    Args:
        path: Optional explicit config file path.

    Returns:
        Merged ObjPrefetchConfig instance.

    Raises:
        PrefetchError: CONFIG_PARSE_ERROR for unreadable YAML,
            CONFIG_INVALID for values that fail validation.
    """
    global _config

    # Start with defaults from dataclasses (single source of truth)
    config_dict: dict[str, Any] = asdict(ObjPrefetchConfig())

    config_paths = []
    if path:
        config_paths.append(Path(path))
    config_paths.extend([
        Path(".objprefetch/config.yaml"),
        Path.home() / ".objprefetch" / "config.yaml",
    ])

    for config_path in config_paths:
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise PrefetchError(
                    code=ErrorCode.CONFIG_PARSE_ERROR,
                    context={"path": str(config_path), "detail": str(e)},
                    cause=e,
                ) from e
            if not isinstance(file_config, dict):
                raise PrefetchError(
                    code=ErrorCode.CONFIG_PARSE_ERROR,
                    context={"path": str(config_path), "detail": "top level must be a mapping"},
                )
            _deep_update(config_dict, file_config)
            break  # Use first found config

    config_dict = _apply_env_overrides(config_dict)

    _config = _dict_to_config(config_dict)
    return _config


def get_config() -> ObjPrefetchConfig:
    """Get the current configuration, loading if needed.

    Thread-safe with double-check locking.
    """
    global _config

    # Fast path: already initialized
    if _config is not None:
        return _config

    with _config_lock:
        if _config is None:
            _config = load_config()
        return _config


def reset_config() -> None:
    """Reset the global config (useful for testing)."""
    global _config
    with _config_lock:
        _config = None


def save_default_config(path: str | Path = ".objprefetch/config.yaml") -> Path:
    """Save the default configuration to a file.

    Args:
        path: Where to save the config.

    Returns:
        Path to the saved config file.
    """
    config_content = '''# objprefetch configuration
#
# NOTE: Actual defaults are defined in objprefetch/foundation/types/config.py.
# This file is an example template - edit values you want to override.

prefetch:
  # Set to false to turn every prefetch request into a no-op
  enabled: true

  # Helper executable (looked up on PATH) and its subcommand
  helper: "objfsutil"
  subcommand: "prefetch"

  # Every file ending in declaration_suffix also requests the same path
  # with sidecar_suffix. Sidecars may not exist; the helper tolerates that.
  declaration_suffix: ".d.ts"
  sidecar_suffix: ".metadata.json"

  # Encoding of the newline-separated file list
  encoding: "utf-8"

  # stdin: write the list to the helper's stdin (default)
  # argv:  pass the files as command-line arguments
  transport: "stdin"

  # Exit status recorded when the helper fails for a reason other than
  # not being installed
  failure_exit_code: 1

# Enable debug logging
debug: false
'''

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config_content, encoding="utf-8")
    return path
