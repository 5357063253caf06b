"""Sequential z/x/y pyramid generation on top of an image backend."""

from __future__ import annotations

import time
from datetime import datetime
from typing import Callable, Optional

from zxytiles.core.errors import GenerationError
from zxytiles.core.models import (
    EncodingOptions,
    GenerationRequest,
    GenerationResult,
    LevelReport,
    TileInvocation,
    ZoomLevelPlan,
)
from zxytiles.logging import get_logger

from .base import ImageBackend
from .planner import plan_levels, resolve_target
from .runner import TileCommandError

LOGGER = get_logger(__name__)


class TilingManager:
    """Turn a single image into a ``<target>/<z>/<x>/<y>.<ext>`` pyramid.

    Levels are rendered strictly in increasing zoom order with exactly one
    backend call each. A failing level aborts the run; tiles already written
    for lower levels stay on disk.
    """

    def __init__(
        self,
        backend: ImageBackend,
        *,
        dry_run: bool = False,
        png_compression_level: int = 9,
        clock: Callable[[], datetime] = datetime.now,
        reporter: Optional[Callable[[LevelReport], None]] = None,
    ) -> None:
        self._backend = backend
        self._dry_run = dry_run
        self._png_compression_level = png_compression_level
        self._clock = clock
        self._reporter = reporter

    def generate(self, request: GenerationRequest) -> GenerationResult:
        request.validate()
        encoding = EncodingOptions.for_format(
            request.format, png_compression_level=self._png_compression_level
        )
        target = resolve_target(request.target, timestamp=request.timestamp, started_at=self._clock())
        LOGGER.info(
            "generating tile pyramid",
            extra={
                "source": str(request.source),
                "target": str(target),
                "max_zoom": request.max_zoom,
                "tile_size": request.tile_size,
                "format": encoding.extension,
                "backend": self._backend.name,
            },
        )
        if not self._dry_run:
            target.mkdir(parents=True, exist_ok=True)

        for level in plan_levels(target, max_zoom=request.max_zoom, tile_size=request.tile_size):
            self._render_level(request, level, encoding)

        return GenerationResult(
            target=target,
            max_zoom=request.max_zoom,
            tile_size=request.tile_size,
            levels_created=request.max_zoom + 1,
            format=encoding.format,
        )

    def _render_level(self, request: GenerationRequest, level: ZoomLevelPlan, encoding: EncodingOptions) -> None:
        if not self._dry_run:
            _prepare_directories(level)
        invocation = TileInvocation(
            zoom=level.zoom,
            source=request.source,
            canvas_size=level.canvas_size,
            tile_size=level.tile_size,
            level_dir=level.directory,
            encoding=encoding,
        )
        start = time.perf_counter()
        try:
            self._backend.render(invocation)
        except TileCommandError as exc:
            duration = time.perf_counter() - start
            LOGGER.error(
                "zoom level failed",
                extra={"zoom": level.zoom, "duration_s": f"{duration:.2f}"},
            )
            self._report(LevelReport(level.zoom, False, duration, exc.diagnostic))
            raise GenerationError(level.zoom, exc.diagnostic) from exc

        duration = time.perf_counter() - start
        LOGGER.info(
            "zoom level complete",
            extra={
                "zoom": level.zoom,
                "canvas": level.canvas_size,
                "tiles": level.file_count,
                "duration_s": f"{duration:.2f}",
            },
        )
        self._report(LevelReport(level.zoom, True, duration))

    def _report(self, report: LevelReport) -> None:
        if self._reporter is not None:
            self._reporter(report)


def _prepare_directories(level: ZoomLevelPlan) -> None:
    level.directory.mkdir(exist_ok=True)
    for x_dir in level.x_directories():
        x_dir.mkdir(exist_ok=True)
