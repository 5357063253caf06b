"""In-process libvips backend built on pyvips."""

from __future__ import annotations

from typing import Any, Dict

from zxytiles.core.errors import BackendUnavailableError
from zxytiles.core.models import EncodingOptions, TileFormat, TileInvocation
from zxytiles.logging import get_logger

from .runner import TileCommandError

LOGGER = get_logger(__name__)


def save_options(encoding: EncodingOptions) -> Dict[str, Any]:
    if encoding.format is TileFormat.PNG:
        return {"compression": encoding.png_compression_level}
    if encoding.format in (TileFormat.WEBP, TileFormat.AVIF):
        return {"lossless": True, "Q": encoding.quality}
    raise ValueError(f"Unsupported tile format for libvips: {encoding.format}")


def _load_pyvips() -> Any:
    try:
        import pyvips

        # Smallest possible round trip through libvips itself.
        img = pyvips.Image.black(1, 1)
        _ = (img.width, img.height)
    except Exception as exc:
        raise BackendUnavailableError(f"pyvips/libvips is not usable: {exc}") from exc
    return pyvips


class VipsBackend:
    """Resize with a forced thumbnail and crop tiles one by one."""

    name = "vips"

    def __init__(self, *, dry_run: bool = False) -> None:
        self._pyvips = _load_pyvips()
        self._dry_run = dry_run

    def render(self, invocation: TileInvocation) -> None:
        LOGGER.info("tiling step", extra={"description": invocation.describe(), "backend": self.name})
        if self._dry_run:
            return
        pyvips = self._pyvips
        size = invocation.canvas_size
        options = save_options(invocation.encoding)
        try:
            canvas = pyvips.Image.thumbnail(str(invocation.source), size, height=size, size="force")
            if not invocation.split:
                canvas.write_to_file(str(invocation.tile_path(0, 0)), **options)
                return
            # thumbnail() is sequential; repeated crops need random access.
            canvas = canvas.copy_memory()
            tile = invocation.tile_size
            for top in range(0, size, tile):
                for left in range(0, size, tile):
                    x, y = invocation.tile_for_offset(left, top)
                    canvas.crop(left, top, tile, tile).write_to_file(
                        str(invocation.tile_path(x, y)), **options
                    )
        except pyvips.Error as exc:
            raise TileCommandError(
                f"libvips failed on {invocation.describe()}: {exc.message}",
                diagnostic=f"{exc.message}\n{exc.detail}".strip(),
            ) from exc
