#!/usr/bin/env python3
"""
spritegif: Turn an image sequence or a sprite-sheet grid into an animated GIF.

Two input modes:
- sequence: separate images played in the given order
- atlas: one image cut into a rows x cols grid, played row-major
"""

from __future__ import annotations

# Standard library imports
import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

# Third-party imports
from pydantic import ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

# Local application imports
from ..config import SUPPORTED_IMAGE_EXTS, app_config
from ..core.errors import SpriteGifError
from ..core.session import AnimationSession
from ..core.types import ExportOptions, Mode
from ..output.logger import SimpleLogger
from ..tools.check import check_tools

console = Console()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""
    p = argparse.ArgumentParser(
        prog="spritegif",
        description="Turn an image sequence or a sprite-sheet grid into an animated GIF.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--check-tools", action="store_true", help="Verify external tools and exit")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-o", "--output", type=Path, help="Output file. Defaults to animation.gif or sprite-sheet.png")
    common.add_argument(
        "--fps", type=int, default=app_config.playback.default_fps, help="Frames per second (1-60)"
    )
    common.add_argument(
        "-b", "--background", default=app_config.view.default_background, help="Background color behind every frame"
    )
    common.add_argument(
        "--encoder", choices=["pillow", "ffmpeg"], default=app_config.export.default_encoder, help="GIF encoder"
    )
    common.add_argument("--sheet", action="store_true", help="Write a PNG sprite sheet instead of a GIF")
    common.add_argument("--log-file", type=Path, help="Append log lines to this file")
    common.add_argument("--quiet", action="store_true", help="Only print errors")

    sub = p.add_subparsers(dest="mode", metavar="MODE")
    seq = sub.add_parser(
        Mode.ORDERED_SEQUENCE.value,
        parents=[common],
        help="Animate separate images in order",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    seq.add_argument("images", nargs="+", type=Path, help="Frame images, in playback order")

    atlas = sub.add_parser(
        Mode.GRID_ATLAS.value,
        parents=[common],
        help="Animate the cells of one sprite-sheet image",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    atlas.add_argument("image", type=Path, help="Sprite-sheet image")
    atlas.add_argument("-r", "--rows", type=int, default=1, help="Grid rows")
    atlas.add_argument("-c", "--cols", type=int, default=1, help="Grid columns")
    atlas.add_argument("-n", "--total", type=int, help="Frames to play. Defaults to rows x cols")

    args = p.parse_args(argv)
    if not args.check_tools and args.mode is None:
        p.error("a mode is required (sequence or atlas)")
    return args


def build_options(args: argparse.Namespace) -> ExportOptions:
    """Validate export-related arguments."""
    return ExportOptions(
        fps=args.fps, background=args.background, encoder=args.encoder, loop=app_config.export.loop
    )


def build_session(args: argparse.Namespace, options: ExportOptions, logger: SimpleLogger) -> AnimationSession:
    """Create a session loaded with the images named on the command line."""
    session = AnimationSession(encoder=options.encoder, logger=logger)
    session.set_fps(options.fps)
    session.set_background(options.background)
    session.set_mode(Mode(args.mode))
    if session.mode is Mode.ORDERED_SEQUENCE:
        session.add_frames(args.images)
    else:
        session.set_atlas_image(args.image)
        session.set_grid(args.rows, args.cols)
        session.set_total_frames(args.total if args.total is not None else session.atlas.capacity)
    return session


def default_output(args: argparse.Namespace) -> Path:
    if args.output is not None:
        return args.output
    return Path(app_config.export.sheet_name if args.sheet else app_config.export.output_name)


def unsupported_inputs(args: argparse.Namespace) -> list[Path]:
    paths = args.images if args.mode == Mode.ORDERED_SEQUENCE.value else [args.image]
    return [p for p in paths if p.suffix.lower() not in SUPPORTED_IMAGE_EXTS]


def save_output(data: bytes, path: Path) -> Path:
    """Write the finished bitstream to `path`, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def print_run_header(session: AnimationSession, options: ExportOptions, output: Path, sheet: bool) -> None:
    """Print the run configuration."""
    table = Table(title="Run Configuration", show_header=False, title_justify="left")
    table.add_column(style="cyan")
    table.add_column()
    geometry = session.geometry
    rows = [
        ("Mode:", session.mode.value),
        ("Frames:", str(session.total_playable())),
        ("Frame size:", f"{geometry.canvas_width}x{geometry.canvas_height}"),
        ("Output:", str(output.resolve())),
    ]
    if session.mode is Mode.GRID_ATLAS:
        rows.insert(2, ("Grid:", f"{session.atlas.rows} x {session.atlas.cols}"))
    if not sheet:
        rows += [("FPS:", str(options.fps)), ("Background:", options.background), ("Encoder:", options.encoder)]
    for label, value in rows:
        table.add_row(label, value)
    console.print(table)


def run_export(session: AnimationSession, quiet: bool) -> bytes | None:
    """Export with a live progress bar, or quarter-step log lines when quiet."""
    if quiet:
        logged = [0.0]

        def log_quarters(fraction: float) -> None:
            step = int(fraction * 4) / 4
            if step > logged[0]:
                logged[0] = step
                session.logger.progress(step, "encoding GIF")

        return session.export(log_quarters)

    with Progress(
        TextColumn("[cyan]Encoding GIF"),
        BarColumn(),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("encode", total=1.0)
        return session.export(lambda fraction: progress.update(task, completed=fraction))


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)

    if args.check_tools:
        ok, probs = check_tools("ffmpeg")
        if ok:
            print("Tools OK: ffmpeg")
            return 0
        for p in probs:
            print(f"Missing: {p}", file=sys.stderr)
        return 1

    logger = SimpleLogger(args.log_file, quiet=args.quiet)
    logger.section(f"spritegif {args.mode}")

    try:
        options = build_options(args)
    except ValidationError as ex:
        for err in ex.errors():
            logger.error(f"Invalid {'.'.join(str(x) for x in err['loc'])}: {err['msg']}")
        return 1

    bad = unsupported_inputs(args)
    if bad:
        for p in bad:
            logger.error(f"Unsupported image type: {p}")
        return 1

    if not args.sheet:
        tools_ok, probs = check_tools(options.encoder)
        if not tools_ok:
            for p in probs:
                logger.error(f"Missing: {p}")
            return 1

    output = default_output(args)
    session = None
    try:
        session = build_session(args, options, logger)
        if not args.quiet:
            print_run_header(session, options, output, args.sheet)

        data = session.export_sheet() if args.sheet else run_export(session, args.quiet)
        if data is None:
            logger.warning("Nothing to export. No files were written.")
            return 1
        save_output(data, output)
        logger.success(f"Wrote {output} ({len(data):,} bytes)")
        return 0
    except SpriteGifError as ex:
        logger.error(str(ex))
        logger.error("No files were written.")
        return 1
    finally:
        if session is not None:
            session.close()


if __name__ == "__main__":
    sys.exit(main())
