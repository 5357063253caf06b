"""Dataclasses describing core zxytiles entities."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

from .errors import ConfigurationError, InputError

MAX_ZOOM_LIMIT = 12


class TileFormat(str, Enum):
    """Lossless tile encodings supported by every backend."""

    PNG = "PNG"
    WEBP = "WEBP"
    AVIF = "AVIF"

    @property
    def extension(self) -> str:
        return self.value.lower()

    @classmethod
    def parse(cls, value: "TileFormat | str") -> "TileFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            supported = ", ".join(member.extension for member in cls)
            raise ConfigurationError(
                f"Unsupported tile format: {value!r} (expected one of {supported})"
            ) from None


@dataclass(frozen=True)
class EncodingOptions:
    """Lossless encoder settings handed to a backend."""

    format: TileFormat
    lossless: bool = True
    quality: int = 100
    png_compression_level: int = 9

    @classmethod
    def for_format(cls, fmt: TileFormat | str, *, png_compression_level: int = 9) -> "EncodingOptions":
        if not 0 <= png_compression_level <= 9:
            raise ConfigurationError(
                f"png_compression_level must be between 0 and 9, got {png_compression_level}"
            )
        return cls(format=TileFormat.parse(fmt), png_compression_level=png_compression_level)

    @property
    def extension(self) -> str:
        return self.format.extension


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_max_zoom(max_zoom: Any) -> None:
    if not _is_int(max_zoom) or not 0 <= max_zoom <= MAX_ZOOM_LIMIT:
        raise ConfigurationError(
            f"max_zoom must be an integer between 0 and {MAX_ZOOM_LIMIT}, got {max_zoom!r}"
        )


def check_tile_size(tile_size: Any) -> None:
    if not _is_int(tile_size) or tile_size <= 0:
        raise ConfigurationError(f"tile_size must be a positive integer, got {tile_size!r}")


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable description of a single pyramid build."""

    source: Path
    target: Path
    max_zoom: int = 6
    tile_size: int = 256
    format: TileFormat = TileFormat.PNG
    timestamp: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "source", Path(self.source))
        object.__setattr__(self, "target", Path(self.target))
        object.__setattr__(self, "format", TileFormat.parse(self.format))

    def validate(self) -> None:
        """Check every precondition; performs no filesystem writes."""

        if not self.source.is_file():
            raise InputError(f"Source image not found: {self.source}")
        if not os.access(self.source, os.R_OK):
            raise InputError(f"Source image is not readable: {self.source}")
        check_max_zoom(self.max_zoom)
        check_tile_size(self.tile_size)


@dataclass(frozen=True)
class ZoomLevelPlan:
    """Geometry and layout of one pyramid level."""

    zoom: int
    tile_size: int
    directory: Path

    @property
    def tile_count(self) -> int:
        return 2 ** self.zoom

    @property
    def canvas_size(self) -> int:
        return self.tile_size * self.tile_count

    @property
    def file_count(self) -> int:
        return self.tile_count * self.tile_count

    def x_directories(self) -> Iterator[Path]:
        for x in range(self.tile_count):
            yield self.directory / str(x)


@dataclass(frozen=True)
class TileCoordinate:
    z: int
    x: int
    y: int

    def path(self, target: Path, fmt: TileFormat) -> Path:
        return target / str(self.z) / str(self.x) / f"{self.y}.{fmt.extension}"


@dataclass(frozen=True)
class TileInvocation:
    """Typed description of one backend call: resize, optional split, encode.

    Backends name every tile they write with :meth:`tile_path`, using grid
    coordinates derived from pixel offsets via :meth:`tile_for_offset`.
    """

    zoom: int
    source: Path
    canvas_size: int
    tile_size: int
    level_dir: Path
    encoding: EncodingOptions

    @property
    def split(self) -> bool:
        return self.canvas_size > self.tile_size

    def tile_for_offset(self, offset_x: int, offset_y: int) -> Tuple[int, int]:
        return offset_x // self.tile_size, offset_y // self.tile_size

    def tile_path(self, x: int, y: int) -> Path:
        return self.level_dir / str(x) / f"{y}.{self.encoding.extension}"

    def describe(self) -> str:
        if self.split:
            return (
                f"zoom {self.zoom}: resize to {self.canvas_size}x{self.canvas_size} "
                f"and split into {self.tile_size}px tiles"
            )
        return f"zoom {self.zoom}: resize to {self.canvas_size}x{self.canvas_size}"


@dataclass(frozen=True)
class LevelReport:
    """Outcome of a single zoom level, emitted before the next level starts."""

    zoom: int
    succeeded: bool
    duration_s: float
    message: str = ""


@dataclass(frozen=True)
class GenerationResult:
    """Summary returned after every level has been written."""

    target: Path
    max_zoom: int
    tile_size: int
    levels_created: int
    format: TileFormat
    lossless: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": str(self.target),
            "max_zoom": self.max_zoom,
            "tile_size": self.tile_size,
            "levels_created": self.levels_created,
            "format": self.format.extension,
            "lossless": self.lossless,
        }


@dataclass
class TilerConfig:
    """Defaults for command-line runs, optionally loaded from a config file."""

    max_zoom: int = 6
    tile_size: int = 256
    tile_format: str = "png"
    timestamp: bool = True
    backend: str = "auto"
    magick_binary: Optional[str] = None
    poll_interval: float = 0.2
    timeout_seconds: Optional[float] = None
    png_compression_level: int = 9
