"""Tile pyramid generation for zxytiles."""

from .backends import resolve_backend
from .base import ImageBackend
from .magick import MagickBackend
from .manager import TilingManager
from .planner import VerificationReport, expected_tiles, plan_levels, resolve_target, verify_tree
from .runner import TileCommandError, TileRunner
from .vips import VipsBackend

__all__ = [
    "ImageBackend",
    "MagickBackend",
    "TileCommandError",
    "TileRunner",
    "TilingManager",
    "VerificationReport",
    "VipsBackend",
    "expected_tiles",
    "plan_levels",
    "resolve_backend",
    "resolve_target",
    "verify_tree",
]
