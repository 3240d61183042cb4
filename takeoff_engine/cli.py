"""Command-line interface for the takeoff engine."""

from __future__ import annotations

import argparse
import logging
import pathlib

from .exporters import EXPORT_FORMATS
from .project import TakeoffConfig, TakeoffProject


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cost and export plan takeoff measurements")
    parser.add_argument("--input", required=True, help="Path to a takeoff JSON export, a directory of them, or a zip")
    parser.add_argument("--output", required=True, help="Directory to write the export into")
    parser.add_argument(
        "--format",
        default="csv",
        choices=sorted(EXPORT_FORMATS),
        help="Export format (default: csv)",
    )
    parser.add_argument("--project-name", help="Project name used in the export filename")
    parser.add_argument("--division", help="Only export measurements in this division code")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = TakeoffConfig(
        input_path=pathlib.Path(args.input).expanduser().resolve(),
        output_dir=pathlib.Path(args.output).expanduser().resolve(),
        export_format=args.format,
        project_name=args.project_name,
        division=args.division,
    )

    try:
        TakeoffProject(config).run()
    except ValueError as exc:
        parser.error(str(exc))


if __name__ == "__main__":  # pragma: no cover
    main()
