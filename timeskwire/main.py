from __future__ import annotations

import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Mapping, Sequence, TextIO

from dotenv import load_dotenv

from . import __version__
from .aggregator import aggregate
from .config import resolve_config
from .errors import ParseError, RenderError, TimeskwireError
from .install import current_executable, default_extension_dir, install_extension
from .kinds import get_kind
from .layout import PageLayout, layout_report
from .models import ReportConfig, ReportModel
from .parser import parse_intervals, split_extension_input
from .pdf_sink import PdfCanvasSink
from .renderer import render
from .timestamps import format_seconds, utc_now

LOG_LEVEL_ENV = "TIMESKWIRE_LOG_LEVEL"

logger = logging.getLogger("timeskwire")


def configure_logging() -> None:
    level = getattr(logging, os.getenv(LOG_LEVEL_ENV, "WARNING").strip().upper(), logging.WARNING)
    logging.basicConfig(
        level=level if isinstance(level, int) else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timeskwire",
        description=(
            "TimeSkwire - a PDF render extension for TimeWarrior. Without arguments it reads "
            "TimeWarrior's extension API input from stdin."
        ),
    )
    parser.add_argument("--version", action="version", version=__version__)

    subcommands = parser.add_subparsers(dest="command")
    init = subcommands.add_parser("init", help="Link timeskwire into TimeWarrior's extension directory")
    init.add_argument(
        "extension_dir",
        nargs="?",
        type=Path,
        help="Where to initialize timeskwire (~/.timewarrior/extensions/ by default)",
    )
    init.add_argument("-f", "--force", action="store_true", help="Replace an existing link")
    return parser


def read_input(stream: TextIO) -> str:
    """Read all of stdin, reporting undecodable bytes with their line number."""
    buffer = getattr(stream, "buffer", None)
    if buffer is None:
        return stream.read()

    data = buffer.read()
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        line = data[: exc.start].count(b"\n") + 1
        raise ParseError(line, f"input is not valid UTF-8 (byte {data[exc.start]:#04x})") from exc


def run_report(
    stream: TextIO,
    out: TextIO,
    environ: Mapping[str, str] | None = None,
    *,
    now: datetime | None = None,
) -> ReportModel:
    """Run the whole pipeline from extension input to a PDF on disk."""
    now = now or utc_now()
    extension_input = split_extension_input(read_input(stream))

    config = resolve_config(extension_input.header, environ, now=now)
    # Unknown kinds fail before any interval is parsed.
    get_kind(config.kind)

    intervals = parse_intervals(extension_input.body_lines, extension_input.body_first_line)
    model = aggregate(intervals, config, now=now)
    page_layout = layout_report(model, config.page_options)

    write_pdf(page_layout, config, model)
    print_summary(out, config, model)
    return model


def write_pdf(page_layout: PageLayout, config: ReportConfig, model: ReportModel) -> None:
    path = config.output_path
    previous_mtime = path.stat().st_mtime_ns if path.exists() else None

    try:
        render(page_layout, PdfCanvasSink(path, title=model.title))
    except RenderError:
        # A report written only halfway is worse than none.
        if path.exists() and path.stat().st_mtime_ns != previous_mtime:
            logger.warning("Removing partially written report %s", path)
            path.unlink()
        raise


def print_summary(out: TextIO, config: ReportConfig, model: ReportModel) -> None:
    lines = [
        f"TimeWarrior version {config.timewarrior_version or 'unknown'}",
        f"TimeSkwire version {__version__}",
        f"Report start:\t{model.range.start:%Y-%m-%d %H:%M:%S} UTC",
        f"Report end:\t{model.range.end:%Y-%m-%d %H:%M:%S} UTC",
        f"Total time logged: {format_seconds(model.grand_total_seconds)}",
        f"Group count: {len(model.groups)}",
    ]
    lines.extend(
        f"{group.label}: {format_seconds(group.total_seconds)} ({model.share(group):.2f}%)"
        for group in model.groups
    )
    lines.append(f"Report written to {config.output_path}")
    out.write("\n".join(lines) + "\n")


def run_init(extension_dir: Path | None, force: bool, out: TextIO) -> None:
    directory = (extension_dir or default_extension_dir()).expanduser()
    logger.debug("Using extension dir: %s", directory)
    install_extension(directory, current_executable(), force=force)
    out.write("Init OK. Check that your TimeWarrior sees timeskwire with `timew extensions`.\n")


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    configure_logging()

    args = build_arg_parser().parse_args(argv)

    try:
        if args.command == "init":
            run_init(args.extension_dir, args.force, sys.stdout)
        else:
            run_report(sys.stdin, sys.stdout)
    except TimeskwireError as exc:
        print(f"timeskwire: {exc.kind}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
