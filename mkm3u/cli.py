from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .builder import PlaylistBuilder
from .config import AutomationLevel, Settings, find_config
from .decisions import DecisionProvider, DefaultDecisions, InteractiveDecisions
from .models import ConfigError, Mkm3uError
from .probe import MetadataProbe, build_probe

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname).1s | %(message)s"

C_RESET = "\033[0m"
LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",  # Cyan
    logging.INFO: "\033[37m",  # Light gray
    logging.WARNING: "\033[33m",  # Yellow
    logging.ERROR: "\033[31m",  # Red
    logging.CRITICAL: "\033[35m",  # Magenta
}

# 0 is quiet, 4 is debug.
VERBOSITY_LEVELS = {
    0: logging.CRITICAL + 1,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
}

EXIT_INTERRUPTED = 130


class RelativePathFormatter(logging.Formatter):
    """Prints paths below the working directory relative to it."""

    def __init__(self, fmt: str, cwd: Path) -> None:
        super().__init__(fmt)
        self.prefix = f"{cwd}/"

    def format(self, record: logging.LogRecord) -> str:
        return super().format(record).replace(self.prefix, "")


class ColorFormatter(RelativePathFormatter):
    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{super().format(record)}{C_RESET if color else ''}"


class WarningBufferHandler(logging.Handler):
    """Keeps warnings and errors for the summary printed after the run."""

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.records: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(self.format(record))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mkm3u",
        description="Create M3U playlists ordered by disc and track number.",
        epilog=(
            "Directories get a playlist of their media files. A playlist given as input is "
            "checked for missing files and may be converted depending on -s/-S. Single media "
            "files are appended to the end of the current playlist; their track information "
            "is ignored."
        ),
    )
    parser.add_argument("inputs", nargs="*", type=Path, help="Directories, playlists or media files")
    parser.add_argument("--config", type=Path, help="Path to mkm3u.yaml")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "-s",
        dest="extended",
        action="store_const",
        const=False,
        help="Create simple playlists containing file names only",
    )
    mode.add_argument(
        "-S",
        dest="extended",
        action="store_const",
        const=True,
        help="Create extended playlists containing meta information (default)",
    )
    parser.add_argument(
        "-f",
        dest="playlist",
        type=Path,
        help="Playlist to write; all inputs are combined into it and paths are relative to it",
    )
    parser.add_argument(
        "-c",
        dest="check",
        type=int,
        choices=[level.value for level in AutomationLevel],
        help="Automation level: 0 never ask, 1 ask about removing files, 2 ask for everything",
    )
    parser.add_argument(
        "-v",
        dest="verbose",
        action="count",
        default=0,
        help="Increase verbosity; may be repeated",
    )
    parser.add_argument(
        "--verbosity",
        type=int,
        choices=sorted(VERBOSITY_LEVELS),
        help="Set verbosity: 0 quiet, 1 errors, 2 warnings, 3 info (default), 4 debug",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(verbosity: int, cwd: Path) -> WarningBufferHandler:
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(VERBOSITY_LEVELS.get(verbosity, logging.INFO))

    color_handler = logging.StreamHandler()
    color_handler.setFormatter(ColorFormatter(LOG_FORMAT, cwd))
    root_logger.addHandler(color_handler)

    warn_buffer = WarningBufferHandler()
    warn_buffer.setFormatter(RelativePathFormatter(LOG_FORMAT, cwd))
    root_logger.addHandler(warn_buffer)

    logging.getLogger("mutagen").setLevel(logging.WARNING)
    return warn_buffer


def select_decisions(automation: AutomationLevel, interactive: bool) -> DecisionProvider:
    if automation == AutomationLevel.NEVER or not interactive:
        return DefaultDecisions()
    return InteractiveDecisions()


def run(
    argv: Optional[Sequence[str]] = None,
    *,
    probe: Optional[MetadataProbe] = None,
    decisions: Optional[DecisionProvider] = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.inputs:
        parser.print_help()
        return 0
    try:
        settings = Settings.load(find_config(args.config))
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return exc.exit_code
    verbosity = args.verbosity if args.verbosity is not None else settings.verbosity + args.verbose
    settings = settings.with_overrides(
        extended=args.extended,
        automation=args.check,
        verbosity=verbosity,
    )
    warn_buffer = configure_logging(settings.verbosity, Path.cwd())
    logger.info("=== mkm3u %s ===", __version__)

    probe = probe or build_probe(settings.probe)
    if decisions is None:
        decisions = select_decisions(settings.playlist.automation, sys.stdin.isatty())
    output = args.playlist.absolute() if args.playlist else None
    status = 0
    try:
        probe.ensure_available()
        builder = PlaylistBuilder(settings, probe=probe, decisions=decisions, output=output)
        written = builder.process(args.inputs)
        for path in written:
            logger.info("Playlist written: %s", path)
        logger.info("Done.")
    except KeyboardInterrupt:
        logger.warning("SIGINT - Exiting")
        status = EXIT_INTERRUPTED
    except Mkm3uError as exc:
        logger.error("%s Exiting(%d).", exc, exc.exit_code)
        status = exc.exit_code
    finally:
        if warn_buffer.records and settings.verbosity > 0:
            print("\n\033[33mWarnings/Errors summary:\033[0m")
            for line in warn_buffer.records:
                print(f" - {line}")
    return status


def main(argv: Optional[Sequence[str]] = None) -> None:
    raise SystemExit(run(argv))
