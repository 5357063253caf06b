from datetime import datetime
from pathlib import Path
from typing import List, Optional

import pytest

from zxytiles.core.errors import ConfigurationError, GenerationError, InputError
from zxytiles.core.models import GenerationRequest, LevelReport, TileFormat, TileInvocation
from zxytiles.tiling.manager import TilingManager
from zxytiles.tiling.runner import TileCommandError


class FakeBackend:
    """Write placeholder tiles the way a real backend names them."""

    name = "fake"

    def __init__(self, *, fail_at: Optional[int] = None, write: bool = True) -> None:
        self.calls: List[TileInvocation] = []
        self._fail_at = fail_at
        self._write = write

    def render(self, invocation: TileInvocation) -> None:
        self.calls.append(invocation)
        if invocation.zoom == self._fail_at:
            raise TileCommandError("magick failed", diagnostic="magick: no decode delegate for this image format")
        if not self._write:
            return
        assert invocation.level_dir.is_dir()
        if not invocation.split:
            invocation.tile_path(0, 0).write_text(f"{invocation.canvas_size}")
            return
        for top in range(0, invocation.canvas_size, invocation.tile_size):
            for left in range(0, invocation.canvas_size, invocation.tile_size):
                path = invocation.tile_path(*invocation.tile_for_offset(left, top))
                assert path.parent.is_dir()
                path.write_text(f"{invocation.canvas_size}")


@pytest.fixture()
def source(tmp_path: Path) -> Path:
    path = tmp_path / "map.png"
    path.write_bytes(b"\x89PNG")
    return path


def _files(root: Path) -> List[str]:
    return sorted(str(p.relative_to(root)).replace("\\", "/") for p in root.rglob("*") if p.is_file())


def test_generate_writes_full_pyramid(source: Path, tmp_path: Path) -> None:
    backend = FakeBackend()
    manager = TilingManager(backend)
    target = tmp_path / "out"

    result = manager.generate(
        GenerationRequest(source, target, max_zoom=2, tile_size=4, format=TileFormat.PNG, timestamp=False)
    )

    files = _files(target)
    assert len(files) == 21
    assert files[:5] == ["0/0/0.png", "1/0/0.png", "1/0/1.png", "1/1/0.png", "1/1/1.png"]
    assert {f"2/{x}/{y}.png" for x in range(4) for y in range(4)} <= set(files)
    assert result.levels_created == 3
    assert result.target == target.resolve()
    assert result.tile_size == 4
    assert result.max_zoom == 2
    assert result.format is TileFormat.PNG
    assert result.lossless is True
    assert [call.canvas_size for call in backend.calls] == [4, 8, 16]
    assert [call.split for call in backend.calls] == [False, True, True]


def test_zoom_zero_is_single_tile(source: Path, tmp_path: Path) -> None:
    backend = FakeBackend()
    result = TilingManager(backend).generate(
        GenerationRequest(source, tmp_path / "out", max_zoom=0, tile_size=256, timestamp=False)
    )

    assert _files(tmp_path / "out") == ["0/0/0.png"]
    assert (tmp_path / "out" / "0" / "0" / "0.png").read_text() == "256"
    assert result.levels_created == 1


def test_request_accepts_format_names(source: Path, tmp_path: Path) -> None:
    request = GenerationRequest(source, tmp_path / "out", format="webp")

    assert request.format is TileFormat.WEBP


def test_request_rejects_unknown_format(source: Path, tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        GenerationRequest(source, tmp_path / "out", format="gif")


@pytest.mark.parametrize("max_zoom", [-1, 13, True, 2.0])
def test_invalid_max_zoom_rejected_before_any_directory(source: Path, tmp_path: Path, max_zoom: object) -> None:
    backend = FakeBackend()
    target = tmp_path / "out"

    with pytest.raises(ConfigurationError):
        TilingManager(backend).generate(
            GenerationRequest(source, target, max_zoom=max_zoom, timestamp=False)  # type: ignore[arg-type]
        )

    assert not target.exists()
    assert backend.calls == []


@pytest.mark.parametrize("tile_size", [0, -256])
def test_invalid_tile_size_rejected(source: Path, tmp_path: Path, tile_size: int) -> None:
    with pytest.raises(ConfigurationError):
        TilingManager(FakeBackend()).generate(
            GenerationRequest(source, tmp_path / "out", tile_size=tile_size, timestamp=False)
        )
    assert not (tmp_path / "out").exists()


def test_missing_source_is_input_error(tmp_path: Path) -> None:
    with pytest.raises(InputError):
        TilingManager(FakeBackend()).generate(
            GenerationRequest(tmp_path / "missing.png", tmp_path / "out", timestamp=False)
        )
    assert not (tmp_path / "out").exists()


def test_backend_failure_aborts_remaining_levels(source: Path, tmp_path: Path) -> None:
    backend = FakeBackend(fail_at=1)
    reports: List[LevelReport] = []
    manager = TilingManager(backend, reporter=reports.append)
    target = tmp_path / "out"

    with pytest.raises(GenerationError) as excinfo:
        manager.generate(GenerationRequest(source, target, max_zoom=3, tile_size=4, timestamp=False))

    assert excinfo.value.zoom == 1
    assert excinfo.value.diagnostic == "magick: no decode delegate for this image format"
    assert "zoom level 1" in str(excinfo.value)
    assert [call.zoom for call in backend.calls] == [0, 1]
    assert (target / "0" / "0" / "0.png").exists()
    assert not (target / "2").exists()
    assert [(r.zoom, r.succeeded) for r in reports] == [(0, True), (1, False)]


def test_reports_every_level_in_order(source: Path, tmp_path: Path) -> None:
    reports: List[LevelReport] = []
    TilingManager(FakeBackend(), reporter=reports.append).generate(
        GenerationRequest(source, tmp_path / "out", max_zoom=3, tile_size=2, timestamp=False)
    )

    assert [r.zoom for r in reports] == [0, 1, 2, 3]
    assert all(r.succeeded for r in reports)


def test_timestamped_runs_do_not_collide(source: Path, tmp_path: Path) -> None:
    times = iter([datetime(2026, 10, 17, 10, 15, 0), datetime(2026, 10, 17, 10, 16, 30)])
    manager = TilingManager(FakeBackend(), clock=lambda: next(times))
    request = GenerationRequest(source, tmp_path / "out", max_zoom=1, tile_size=4)

    first = manager.generate(request)
    second = manager.generate(request)

    assert first.target.name == "out_20261017-101500"
    assert second.target.name == "out_20261017-101630"
    assert len(_files(first.target)) == 5
    assert len(_files(second.target)) == 5
    assert not (tmp_path / "out").exists()


def test_current_directory_target_gets_timestamp(
    source: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    manager = TilingManager(FakeBackend(), clock=lambda: datetime(2026, 10, 17, 8, 0, 0))

    result = manager.generate(GenerationRequest(source, Path("."), max_zoom=0, tile_size=4))

    assert result.target == tmp_path.resolve() / "work_20261017-080000"
    assert (result.target / "0" / "0" / "0.png").exists()


def test_rerun_without_timestamp_keeps_unrelated_files(source: Path, tmp_path: Path) -> None:
    target = tmp_path / "out"
    (target / "0" / "0").mkdir(parents=True)
    (target / "0" / "0" / "0.png").write_text("old")
    (target / "notes.txt").write_text("keep me")
    (target / "0" / "0" / "0.webp").write_text("other format")

    TilingManager(FakeBackend()).generate(
        GenerationRequest(source, target, max_zoom=1, tile_size=4, timestamp=False)
    )

    assert (target / "0" / "0" / "0.png").read_text() == "4"
    assert (target / "notes.txt").read_text() == "keep me"
    assert (target / "0" / "0" / "0.webp").read_text() == "other format"


def test_dry_run_creates_nothing(source: Path, tmp_path: Path) -> None:
    backend = FakeBackend(write=False)
    result = TilingManager(backend, dry_run=True).generate(
        GenerationRequest(source, tmp_path / "out", max_zoom=2, tile_size=4, timestamp=False)
    )

    assert not (tmp_path / "out").exists()
    assert [call.zoom for call in backend.calls] == [0, 1, 2]
    assert result.levels_created == 3


def test_png_compression_level_is_passed_to_backend(source: Path, tmp_path: Path) -> None:
    backend = FakeBackend()
    TilingManager(backend, png_compression_level=1).generate(
        GenerationRequest(source, tmp_path / "out", max_zoom=0, tile_size=4, timestamp=False)
    )

    assert backend.calls[0].encoding.png_compression_level == 1
    assert backend.calls[0].encoding.lossless
