from __future__ import annotations



class CastdeckError(Exception):
    """Base for all castdeck exceptions."""


class ConfigError(CastdeckError):
    """Configuration related issues."""


class NetworkError(CastdeckError):
    """Network/HTTP layer issues."""
