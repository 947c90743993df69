from __future__ import annotations


class MaliocUnavailableError(RuntimeError):
    """Raised when the Mali offline compiler cannot be started."""


class ShaderSourceError(RuntimeError):
    """Raised when a compiled-shader dump exists but cannot be read."""


class ConfigError(ValueError):
    """Raised when analyzer configuration is malformed or invalid."""
