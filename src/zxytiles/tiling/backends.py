"""Backend discovery, resolved once per run and injected into the manager."""

from __future__ import annotations

from typing import Optional

from zxytiles.core.errors import BackendUnavailableError, ConfigurationError
from zxytiles.logging import get_logger

from .base import ImageBackend
from .magick import MagickBackend
from .runner import TileRunner
from .vips import VipsBackend

LOGGER = get_logger(__name__)

BACKEND_NAMES = ("auto", "magick", "vips")


def resolve_backend(
    name: str = "auto",
    *,
    magick_binary: Optional[str] = None,
    runner: Optional[TileRunner] = None,
    dry_run: bool = False,
) -> ImageBackend:
    """Return the requested backend or raise ``BackendUnavailableError``.

    ``auto`` prefers ImageMagick and falls back to libvips.
    """

    choice = (name or "auto").lower()
    if choice not in BACKEND_NAMES:
        raise ConfigurationError(
            f"Unknown backend: {name!r} (expected one of {', '.join(BACKEND_NAMES)})"
        )
    if choice == "magick":
        return MagickBackend.discover(magick_binary, runner=runner)
    if choice == "vips":
        return VipsBackend(dry_run=dry_run)

    try:
        return MagickBackend.discover(magick_binary, runner=runner)
    except BackendUnavailableError as magick_exc:
        LOGGER.debug("ImageMagick unavailable; trying libvips", extra={"error": str(magick_exc)})
        try:
            return VipsBackend(dry_run=dry_run)
        except BackendUnavailableError as vips_exc:
            raise BackendUnavailableError(
                f"No image backend available: {magick_exc}; {vips_exc}"
            ) from vips_exc
