from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from castdeck.backend.common.constants import DEFAULT_SUBTITLE_PORT, SEEK_DEBOUNCE_SECONDS
from castdeck.backend.common.errors import ConfigError
from castdeck.backend.common.logging import get_logger

from .paths import expand_env, get_user_settings_path, load_environment, read_json

log = get_logger(__name__)

_SETTINGS_LOCK = threading.Lock()
_SETTINGS_SINGLETON: Optional["Settings"] = None

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass
class Settings:
    log_level: str
    subtitle_port: int
    myip: Optional[str]
    seek_window_sec: float
    http_timeout_sec: float
    user_settings_path: Path

    def as_dict(self) -> Dict[str, Any]:
        return {
            "log_level": self.log_level,
            "subtitle_port": self.subtitle_port,
            "myip": self.myip,
            "seek_window_sec": self.seek_window_sec,
            "http_timeout_sec": self.http_timeout_sec,
            "user_settings_path": str(self.user_settings_path),
        }


def load_user_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    target = path or get_user_settings_path()
    if not target.exists():
        return {}
    try:
        data = read_json(target)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Unable to read settings file {target}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {target} must contain a JSON object")

    return expand_env(data)


def _int_setting(raw: Any, default: int, name: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        log.warning("settings_invalid_value", extra={"setting": name, "value": raw, "default": default})
        return default


def _float_setting(raw: Any, default: float, name: str) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        log.warning("settings_invalid_value", extra={"setting": name, "value": raw, "default": default})
        return default


def _build_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    if environ is None:
        load_environment()
        environ = os.environ
    user_settings_path = get_user_settings_path()
    user_cfg = load_user_settings(user_settings_path)

    log_level = str(environ.get("CASTDECK_LOG_LEVEL", user_cfg.get("log_level", "WARNING"))).upper()
    if log_level not in _LOG_LEVELS:
        log_level = "WARNING"

    subtitle_port = _int_setting(
        environ.get("CASTDECK_SUBTITLE_PORT") or user_cfg.get("subtitle_port", DEFAULT_SUBTITLE_PORT),
        DEFAULT_SUBTITLE_PORT,
        "subtitle_port",
    )
    if not 0 <= subtitle_port <= 65535:
        raise ConfigError(f"Subtitle port out of range: {subtitle_port}")

    seek_window_ms = _int_setting(
        environ.get("CASTDECK_SEEK_WINDOW_MS") or user_cfg.get("seek_window_ms", int(SEEK_DEBOUNCE_SECONDS * 1000)),
        int(SEEK_DEBOUNCE_SECONDS * 1000),
        "seek_window_ms",
    )
    http_timeout = _float_setting(
        environ.get("CASTDECK_HTTP_TIMEOUT") or user_cfg.get("http_timeout", 20),
        20.0,
        "http_timeout",
    )

    return Settings(
        log_level=log_level,
        subtitle_port=subtitle_port,
        myip=environ.get("CASTDECK_MYIP") or user_cfg.get("myip") or None,
        seek_window_sec=max(0, seek_window_ms) / 1000.0,
        http_timeout_sec=max(1.0, http_timeout),
        user_settings_path=user_settings_path,
    )


def get_settings(*, reload: bool = False) -> Settings:
    global _SETTINGS_SINGLETON
    with _SETTINGS_LOCK:
        if _SETTINGS_SINGLETON is None or reload:
            _SETTINGS_SINGLETON = _build_settings()

        return _SETTINGS_SINGLETON


__all__ = [
    "Settings",
    "get_settings",
    "load_user_settings",
]
