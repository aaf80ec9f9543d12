from __future__ import annotations

from .core import Settings, get_settings, load_user_settings
from .paths import get_user_settings_path, load_environment

__all__ = [
    "Settings",
    "get_settings",
    "get_user_settings_path",
    "load_environment",
    "load_user_settings",
]
