"""CLI entry point for zxytiles."""

from __future__ import annotations

import argparse
import itertools
import json
import sys
from pathlib import Path
from typing import Callable, Iterable, Optional

from zxytiles.config import load_config
from zxytiles.core.errors import ConfigurationError, TilerError
from zxytiles.core.models import (
    GenerationRequest,
    LevelReport,
    TileFormat,
    TilerConfig,
    check_max_zoom,
    check_tile_size,
)
from zxytiles.logging import configure_logging, get_logger
from zxytiles.tiling import TileRunner, TilingManager, plan_levels, resolve_backend, verify_tree
from zxytiles.tiling.backends import BACKEND_NAMES

LOGGER = get_logger(__name__)

FORMAT_CHOICES = [fmt.extension for fmt in TileFormat]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zxytiles",
        description="Build a z/x/y tile pyramid from a single raster image",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs in JSON format")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    subcommands = parser.add_subparsers(dest="command", required=True)

    generate = subcommands.add_parser("generate", help="Render every zoom level of the pyramid")
    generate.add_argument("source", type=Path, help="Source image path")
    generate.add_argument("target", type=Path, help="Output directory for the z/x/y tree")
    _add_geometry_arguments(generate)
    generate.add_argument(
        "--no-timestamp",
        action="store_true",
        help="Write into TARGET as given instead of TARGET_<YYYYMMDD-HHMMSS>",
    )
    generate.add_argument(
        "--backend",
        choices=list(BACKEND_NAMES),
        default=None,
        help="Image backend (default: config or auto)",
    )
    generate.add_argument(
        "--magick-binary",
        default=None,
        help="ImageMagick executable (default: magick, then convert)",
    )
    generate.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Abort a zoom level after this many seconds (default: no timeout)",
    )
    generate.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to a configuration file (YAML or JSON)",
    )
    generate.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Also write the JSON summary to this file",
    )
    generate.add_argument(
        "--dry-run",
        action="store_true",
        help="Log backend work without creating directories or tiles",
    )

    plan = subcommands.add_parser("plan", help="Print per-level geometry without rendering")
    plan.add_argument("target", type=Path, help="Output directory the plan refers to")
    _add_geometry_arguments(plan)
    plan.add_argument("--config", type=Path, default=None, help="Configuration file (YAML or JSON)")

    verify = subcommands.add_parser("verify", help="Check an existing pyramid for missing or stray tiles")
    verify.add_argument("target", type=Path, help="Pyramid directory to inspect")
    verify.add_argument("--max-zoom", type=int, required=True, help="Highest zoom level expected")
    verify.add_argument(
        "--format",
        choices=FORMAT_CHOICES,
        default="png",
        help="Tile image format (default: png)",
    )
    return parser


def _add_geometry_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-zoom",
        type=int,
        default=None,
        help="Highest zoom level, 0-12 (default: config or 6)",
    )
    parser.add_argument(
        "--tile-size",
        type=int,
        default=None,
        help="Tile edge length in pixels (default: config or 256)",
    )
    parser.add_argument(
        "--format",
        choices=FORMAT_CHOICES,
        default=None,
        help="Lossless tile format (default: config or png)",
    )


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    configure_logging(level=args.log_level, json_logs=args.log_json, log_file=args.log_file)

    try:
        if args.command == "generate":
            return _handle_generate(args)
        if args.command == "plan":
            return _handle_plan(args)
        if args.command == "verify":
            return _handle_verify(args)
    except (SystemExit, KeyboardInterrupt):
        raise
    except TilerError as exc:
        LOGGER.error("%s", exc)
        return 1
    parser.error("Unknown command")
    return 1


def _load_settings(args: argparse.Namespace) -> TilerConfig:
    cfg = load_config(args.config) if args.config is not None else TilerConfig()
    if args.max_zoom is not None:
        cfg.max_zoom = args.max_zoom
    if args.tile_size is not None:
        cfg.tile_size = args.tile_size
    if args.format is not None:
        cfg.tile_format = args.format
    return cfg


def _handle_generate(args: argparse.Namespace) -> int:
    cfg = _load_settings(args)
    if args.no_timestamp:
        cfg.timestamp = False
    if args.backend is not None:
        cfg.backend = args.backend
    if args.magick_binary is not None:
        cfg.magick_binary = args.magick_binary
    if args.timeout is not None:
        if args.timeout <= 0:
            raise ConfigurationError(f"--timeout must be positive, got {args.timeout}")
        cfg.timeout_seconds = args.timeout

    request = GenerationRequest(
        source=args.source,
        target=args.target,
        max_zoom=cfg.max_zoom,
        tile_size=cfg.tile_size,
        format=TileFormat.parse(cfg.tile_format),
        timestamp=cfg.timestamp,
    )
    request.validate()

    runner = TileRunner(
        dry_run=args.dry_run,
        poll_interval=cfg.poll_interval,
        timeout_seconds=cfg.timeout_seconds,
        heartbeat=_spinner(),
    )
    backend = resolve_backend(
        cfg.backend,
        magick_binary=cfg.magick_binary,
        runner=runner,
        dry_run=args.dry_run,
    )
    manager = TilingManager(
        backend,
        dry_run=args.dry_run,
        png_compression_level=cfg.png_compression_level,
        reporter=_print_level,
    )
    result = manager.generate(request)

    summary = json.dumps(result.to_dict(), indent=2)
    print(summary)
    if args.summary is not None:
        args.summary.parent.mkdir(parents=True, exist_ok=True)
        args.summary.write_text(summary + "\n", encoding="utf-8")
    LOGGER.info("tile pyramid complete", extra=result.to_dict())
    return 0


def _handle_plan(args: argparse.Namespace) -> int:
    cfg = _load_settings(args)
    fmt = TileFormat.parse(cfg.tile_format)
    check_max_zoom(cfg.max_zoom)
    check_tile_size(cfg.tile_size)
    total = 0
    for level in plan_levels(args.target, max_zoom=cfg.max_zoom, tile_size=cfg.tile_size):
        total += level.file_count
        print(
            f"z={level.zoom:<2} canvas={level.canvas_size}x{level.canvas_size} "
            f"grid={level.tile_count}x{level.tile_count} files={level.file_count} "
            f"dir={level.directory}"
        )
    print(f"levels={cfg.max_zoom + 1} files={total} format={fmt.extension}")
    return 0


def _handle_verify(args: argparse.Namespace) -> int:
    check_max_zoom(args.max_zoom)
    target = args.target.resolve()
    if not target.is_dir():
        LOGGER.error("pyramid directory not found", extra={"target": str(target)})
        return 1
    report = verify_tree(target, max_zoom=args.max_zoom, fmt=TileFormat.parse(args.format))
    for path in report.missing:
        print(f"missing: {path}")
    for path in report.unexpected:
        print(f"unexpected: {path}")
    LOGGER.info(
        "verification finished",
        extra={
            "target": str(target),
            "expected": report.expected,
            "missing": len(report.missing),
            "unexpected": len(report.unexpected),
        },
    )
    return 0 if report.ok else 1


def _print_level(report: LevelReport) -> None:
    if sys.stderr.isatty():
        # Wipe the spinner frame left on the current line.
        sys.stderr.write("\r  \r")
    status = "ok" if report.succeeded else "FAILED"
    print(f"zoom {report.zoom}: {status} ({report.duration_s:.1f}s)", file=sys.stderr)


def _spinner() -> Optional[Callable[[], None]]:
    if not sys.stderr.isatty():
        return None
    frames = itertools.cycle("|/-\\")

    def tick() -> None:
        sys.stderr.write(f"\r{next(frames)} ")
        sys.stderr.flush()

    return tick


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
