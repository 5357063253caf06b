"""Core data models for zxytiles."""

from .errors import (
    BackendUnavailableError,
    ConfigurationError,
    GenerationError,
    InputError,
    TilerError,
)
from .models import (
    MAX_ZOOM_LIMIT,
    EncodingOptions,
    GenerationRequest,
    GenerationResult,
    LevelReport,
    TileCoordinate,
    TileFormat,
    TileInvocation,
    TilerConfig,
    ZoomLevelPlan,
    check_max_zoom,
    check_tile_size,
)

__all__ = [
    "MAX_ZOOM_LIMIT",
    "BackendUnavailableError",
    "ConfigurationError",
    "EncodingOptions",
    "GenerationError",
    "GenerationRequest",
    "GenerationResult",
    "InputError",
    "LevelReport",
    "TileCoordinate",
    "TileFormat",
    "TileInvocation",
    "TilerConfig",
    "TilerError",
    "ZoomLevelPlan",
    "check_max_zoom",
    "check_tile_size",
]
