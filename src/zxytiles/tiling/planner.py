"""Closed-form z/x/y pyramid geometry and output layout."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterator, List

from zxytiles.core.errors import ConfigurationError
from zxytiles.core.models import TileCoordinate, TileFormat, ZoomLevelPlan, check_max_zoom

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


def tile_count(zoom: int) -> int:
    """Tiles per axis at ``zoom``."""

    return 2 ** zoom


def plan_levels(target: Path, *, max_zoom: int, tile_size: int) -> Iterator[ZoomLevelPlan]:
    for zoom in range(max_zoom + 1):
        yield ZoomLevelPlan(zoom=zoom, tile_size=tile_size, directory=target / str(zoom))


def expected_tiles(max_zoom: int) -> Iterator[TileCoordinate]:
    for zoom in range(max_zoom + 1):
        count = tile_count(zoom)
        for x in range(count):
            for y in range(count):
                yield TileCoordinate(zoom, x, y)


def resolve_target(target: Path, *, timestamp: bool, started_at: datetime) -> Path:
    """Return the absolute output directory, suffixed with the start time if requested."""

    path = Path(target).resolve()
    if timestamp:
        if not path.name:
            raise ConfigurationError(f"Cannot append a timestamp to the filesystem root: {path}")
        path = path.with_name(f"{path.name}_{started_at.strftime(TIMESTAMP_FORMAT)}")
    return path


@dataclass
class VerificationReport:
    """Difference between an on-disk pyramid and the expected layout."""

    target: Path
    expected: int = 0
    missing: List[Path] = field(default_factory=list)
    unexpected: List[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.unexpected


def verify_tree(target: Path, *, max_zoom: int, fmt: TileFormat) -> VerificationReport:
    """Compare tile files under ``target`` against the layout for ``max_zoom``.

    Only ``<z>/<x>/<y>.<ext>`` files with integer components count as tiles;
    anything else in the directory is ignored.
    """

    check_max_zoom(max_zoom)
    report = VerificationReport(target=target)
    wanted = {coord.path(target, fmt) for coord in expected_tiles(max_zoom)}
    report.expected = len(wanted)
    report.missing = sorted(path for path in wanted if not path.is_file())

    for path in sorted(target.glob(f"*/*/*.{fmt.extension}")):
        if not path.is_file() or path in wanted:
            continue
        z_name, x_name = path.parent.parent.name, path.parent.name
        if z_name.isdigit() and x_name.isdigit() and path.stem.isdigit():
            report.unexpected.append(path)
    return report
