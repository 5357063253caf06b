"""ImageMagick backend: one ``magick`` process per zoom level."""

from __future__ import annotations

import shutil
from typing import List, Optional, Sequence

from zxytiles.core.errors import BackendUnavailableError
from zxytiles.core.models import EncodingOptions, TileFormat, TileInvocation
from zxytiles.logging import get_logger

from .runner import TileRunner

LOGGER = get_logger(__name__)

# ImageMagick 7 ships ``magick``; ImageMagick 6 only has ``convert``.
CANDIDATE_BINARIES = ("magick", "convert")


def encoding_arguments(encoding: EncodingOptions) -> List[str]:
    """Return lossless encoder flags for ``encoding.format``."""

    if encoding.format is TileFormat.PNG:
        # PNG is always lossless; the level only trades speed for size.
        return ["-define", f"png:compression-level={encoding.png_compression_level}"]
    if encoding.format is TileFormat.WEBP:
        return ["-quality", str(encoding.quality), "-define", "webp:lossless=true"]
    if encoding.format is TileFormat.AVIF:
        return ["-quality", str(encoding.quality), "-define", "heic:lossless=true"]
    raise ValueError(f"Unsupported tile format for ImageMagick: {encoding.format}")


class MagickBackend:
    """Drive the ImageMagick CLI through :class:`TileRunner`."""

    name = "magick"

    def __init__(self, binary: str, *, runner: Optional[TileRunner] = None) -> None:
        self._binary = binary
        self._runner = runner or TileRunner()

    @property
    def binary(self) -> str:
        return self._binary

    @classmethod
    def discover(
        cls,
        binary: Optional[str] = None,
        *,
        runner: Optional[TileRunner] = None,
    ) -> "MagickBackend":
        resolved = _resolve_binary(binary)
        if resolved is None:
            wanted = binary or " or ".join(CANDIDATE_BINARIES)
            raise BackendUnavailableError(f"ImageMagick not found on PATH (looked for {wanted})")
        LOGGER.debug("using ImageMagick", extra={"binary": resolved})
        return cls(resolved, runner=runner)

    def build_command(self, invocation: TileInvocation) -> List[str]:
        size = invocation.canvas_size
        command = [self._binary, str(invocation.source), "-resize", f"{size}x{size}!"]
        if invocation.split:
            tile = invocation.tile_size
            command.extend(
                [
                    "-crop",
                    f"{tile}x{tile}",
                    "-set",
                    "filename:tile",
                    f"%[fx:floor(page.x/{tile})]/%[fx:floor(page.y/{tile})]",
                    "+repage",
                    "+adjoin",
                ]
            )
            output = (
                f"{_escape_percent(str(invocation.level_dir))}/"
                f"%[filename:tile].{invocation.encoding.extension}"
            )
        else:
            output = _escape_percent(str(invocation.tile_path(0, 0)))
        command.extend(encoding_arguments(invocation.encoding))
        command.append(output)
        return command

    def render(self, invocation: TileInvocation) -> None:
        self._runner.run(self.build_command(invocation), description=invocation.describe())


def _resolve_binary(binary: Optional[str]) -> Optional[str]:
    candidates: Sequence[str] = (binary,) if binary else CANDIDATE_BINARIES
    for candidate in candidates:
        found = shutil.which(candidate)
        if found:
            return found
    return None


def _escape_percent(path: str) -> str:
    # ImageMagick expands ``%`` escapes in output filenames.
    return path.replace("%", "%%")
