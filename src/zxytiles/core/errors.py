"""Exception hierarchy shared across zxytiles components."""

from __future__ import annotations


class TilerError(RuntimeError):
    """Base class for all errors raised by zxytiles."""


class ConfigurationError(TilerError):
    """Raised when a parameter or configuration value is invalid."""


class BackendUnavailableError(ConfigurationError):
    """Raised when no usable image backend can be found."""


class InputError(TilerError):
    """Raised when the source image is missing or unreadable."""


class GenerationError(TilerError):
    """Raised when the backend fails while rendering a zoom level."""

    def __init__(self, zoom: int, diagnostic: str) -> None:
        self.zoom = zoom
        self.diagnostic = diagnostic
        super().__init__(f"zoom level {zoom} failed: {diagnostic}")
