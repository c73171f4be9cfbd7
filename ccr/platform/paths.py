"""Platform-aware path utilities.

This module provides functions for locating user-level directories
(home, global config). Per-repository release state lives below
`user_config_dir()`; see `ccr.release.config`.
"""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path

__all__ = [
    "APP_NAME",
    "home",
    "is_windows",
    "user_config_dir",
]

# Application name used for directory naming
APP_NAME = "ccr"


def is_windows() -> bool:
    """Check if running on Windows."""
    return sys.platform == "win32"


@lru_cache(maxsize=1)
def home() -> Path:
    """Get user's home directory.

    Uses USERPROFILE on Windows, HOME on Unix.
    Falls back to Path.home() which handles edge cases.
    """
    if is_windows():
        userprofile = os.environ.get("USERPROFILE")
        if userprofile:
            return Path(userprofile)
    else:
        home_env = os.environ.get("HOME")
        if home_env:
            return Path(home_env)

    return Path.home()


@lru_cache(maxsize=1)
def user_config_dir() -> Path:
    """Get the user-level configuration directory.

    Location: ~/.config/ccr/ (Linux/macOS) or ~/AppData/Roaming/ccr/ (Windows).
    CCR_CONFIG_DIR overrides both, which tests and CI use to isolate state.
    """
    override = os.environ.get("CCR_CONFIG_DIR")
    if override:
        return Path(override)

    if is_windows():
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME
        return home() / "AppData" / "Roaming" / APP_NAME

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME
    return home() / ".config" / APP_NAME


def clear_caches() -> None:
    """Clear all cached paths.

    Useful for testing when environment variables change.
    """
    home.cache_clear()
    user_config_dir.cache_clear()
