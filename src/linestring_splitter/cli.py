"""Command-line interface for the linestring splitter."""

from __future__ import annotations

import argparse
import logging
import sys

from pydantic import ValidationError

from .errors import ConfigurationError, SplitterError
from .models import SplitterOptions
from .pipeline import split_file

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors as ConfigurationError instead of exiting with status 2."""

    def error(self, message):
        raise ConfigurationError(message)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def parse_creation_options(values: list[str] | None) -> list[tuple[str, str]]:
    """Turn ``["A=1,B=2", "C=3"]`` into ``[("A", "1"), ("B", "2"), ("C", "3")]``, keeping order."""
    options: list[tuple[str, str]] = []
    for value in values or []:
        for item in value.split(","):
            key, sep, val = item.partition("=")
            if not sep or not key:
                raise ConfigurationError(f"Creation option {item!r} is not of the form KEY=VALUE")
            options.append((key, val))
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="linestring-splitter",
        usage="%(prog)s [OPTIONS] INPUT_PATH OUTPUT_PATH",
        description="Split the lines of a vector dataset into segments no longer than a maximum length.",
        add_help=False,
    )
    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="INPUT_PATH (.shp, .kml or .kmz) and OUTPUT_PATH",
    )
    parser.add_argument("-h", "--help", action="store_true", help="This help message")
    parser.add_argument(
        "-f",
        "--format",
        default="ESRI Shapefile",
        help="Output format, any writable OGR driver such as GeoJSON or GPKG (default: %(default)s)",
    )
    parser.add_argument(
        "--geographic",
        action="store_true",
        help=(
            "Treat coordinates as geographic (lon/lat) and calculate distances on a sphere. "
            "Not required if the coordinate system is recognized correctly."
        ),
    )
    parser.add_argument(
        "--gt",
        type=int,
        default=1000,
        metavar="NUMBER",
        help="Group NUMBER features per transaction, 0 for a single transaction (default: %(default)s)",
    )
    parser.add_argument(
        "--dsco",
        action="append",
        metavar="KEY=VALUE",
        help="Dataset creation options for the output format, comma separated",
    )
    parser.add_argument(
        "--lco",
        action="append",
        metavar="KEY=VALUE",
        help="Layer creation options for the output format, comma separated",
    )
    parser.add_argument(
        "-m",
        "--min-length",
        type=float,
        default=200,
        metavar="NUM",
        help="Minimum length of short lines and rings with up to 5 points (default: %(default)s)",
    )
    parser.add_argument(
        "-M",
        "--max-length",
        type=float,
        default=2000,
        metavar="NUM",
        help="Maximum length of a line before it is split (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def options_from_args(args: argparse.Namespace) -> SplitterOptions:
    try:
        return SplitterOptions(
            output_format=args.format,
            transaction_size=args.gt,
            geographic=args.geographic,
            min_length=args.min_length,
            max_length=args.max_length,
            dataset_creation_options=parse_creation_options(args.dsco),
            layer_creation_options=parse_creation_options(args.lco),
        )
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc


def main(argv: list[str] | None = None) -> int:
    """Run the splitter; returns the process exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(sys.argv[1:] if argv is None else argv)
        if args.help:
            parser.print_help(sys.stderr)
            return 1
        if len(args.paths) != 2:
            raise ConfigurationError("two positional arguments required: INPUT_PATH OUTPUT_PATH")
    except ConfigurationError as exc:
        setup_logging()
        logger.error("%s", exc)
        parser.print_usage(sys.stderr)
        return 1

    setup_logging(args.verbose)
    try:
        options = options_from_args(args)
        split_file(args.paths[0], args.paths[1], options)
    except SplitterError as exc:
        logger.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
