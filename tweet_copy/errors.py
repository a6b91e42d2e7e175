from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class ExtractionError(RuntimeError):
    """Raised when no post record can be extracted from the requested node."""


class HostError(RuntimeError):
    """Raised when the host page (saved HTML or live browser) cannot be read or driven."""
