from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

_CONFIG_DIR = Path(__file__).resolve().parent.parent
_PACKAGE_ROOT = _CONFIG_DIR.parent

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def load_environment(dotenv_path: Path | None = None) -> bool:
    """Load ``.env`` from the working directory (or ``dotenv_path``) without overriding the process env."""

    target = dotenv_path or Path.cwd() / ".env"
    if not target.exists():
        return False
    return bool(load_dotenv(target, override=False))


def expand_env_in_str(value: str) -> str:
    """Expand ``${VAR}`` tokens within a string."""

    def _repl(match: re.Match[str]) -> str:
        var = match.group(1)
        return os.getenv(var, "")

    return _ENV_PATTERN.sub(_repl, value)


def expand_env(obj: Any) -> Any:
    """Recursively expand environment variables in nested structures."""
    if isinstance(obj, str):
        return expand_env_in_str(obj)
    if isinstance(obj, list):
        return [expand_env(v) for v in obj]
    if isinstance(obj, dict):
        return {k: expand_env(v) for k, v in obj.items()}

    return obj


def read_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def default_config_dir() -> Path:
    base = os.getenv("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / "castdeck"


def get_user_settings_path() -> Path:
    override = os.getenv("CASTDECK_USER_SETTINGS")
    if override:
        return Path(expand_env_in_str(override)).expanduser()
    return default_config_dir() / "settings.json"


__all__ = [
    "default_config_dir",
    "expand_env",
    "expand_env_in_str",
    "get_user_settings_path",
    "load_environment",
    "read_json",
]
