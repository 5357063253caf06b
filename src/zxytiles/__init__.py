"""Build z/x/y tile pyramids from a single raster image."""

from __future__ import annotations

import importlib
from typing import Any

__version__ = "0.1.0"

__all__ = [
    "GenerationRequest",
    "GenerationResult",
    "ImageBackend",
    "MagickBackend",
    "TileFormat",
    "TilerConfig",
    "TilingManager",
    "VipsBackend",
    "load_config",
    "resolve_backend",
    "verify_tree",
]

_MODULE_MAP = {
    "GenerationRequest": ("zxytiles.core", "GenerationRequest"),
    "GenerationResult": ("zxytiles.core", "GenerationResult"),
    "ImageBackend": ("zxytiles.tiling", "ImageBackend"),
    "MagickBackend": ("zxytiles.tiling", "MagickBackend"),
    "TileFormat": ("zxytiles.core", "TileFormat"),
    "TilerConfig": ("zxytiles.core", "TilerConfig"),
    "TilingManager": ("zxytiles.tiling", "TilingManager"),
    "VipsBackend": ("zxytiles.tiling", "VipsBackend"),
    "load_config": ("zxytiles.config", "load_config"),
    "resolve_backend": ("zxytiles.tiling", "resolve_backend"),
    "verify_tree": ("zxytiles.tiling", "verify_tree"),
}


def __getattr__(name: str) -> Any:
    if name not in _MODULE_MAP:
        raise AttributeError(f"module 'zxytiles' has no attribute '{name}'")
    module_name, attr = _MODULE_MAP[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr)
