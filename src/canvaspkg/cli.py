"""
Command line interface.

    canvaspkg unpack SOURCE OUTPUT [--clobber] [--only-extract] [--name NAME]
                     [--rename-old OLD --rename-new NEW] [--config FILE] [-v | -q]
    canvaspkg compose CODE_DIR OUTPUT_DIR [-v | -q]
"""

import argparse
import logging
import sys
from typing import List, Optional

from canvaspkg.composer import compose_to_directory
from canvaspkg.config import UnpackOptions, load_options
from canvaspkg.errors import UnpackError
from canvaspkg.unpacker import unpack

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="canvaspkg",
        description="Decompose canvas app packages into source-control friendly directories",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log per-control detail")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    commands = parser.add_subparsers(dest="command", required=True)

    unpack_cmd = commands.add_parser("unpack", help="Unpack a .zip package or an .msapp document")
    unpack_cmd.add_argument("source", help="Path of the .zip or .msapp file")
    unpack_cmd.add_argument("output", help="Output directory")
    unpack_cmd.add_argument("--config", help="YAML options file")
    unpack_cmd.add_argument("--clobber", action="store_true", default=None,
                            help="Delete the output directory before unpacking")
    unpack_cmd.add_argument("--only-extract", action="store_true", default=None,
                            help="Extract the container without decomposing controls")
    unpack_cmd.add_argument("--name", dest="application_name", help="Output name overriding the app display name")
    unpack_cmd.add_argument("--rename-old", dest="rename_old_postfix",
                            help="Text to replace in control files before parsing")
    unpack_cmd.add_argument("--rename-new", dest="rename_new_postfix",
                            help="Replacement for --rename-old")

    compose_cmd = commands.add_parser("compose", help="Rebuild control files from a Code directory")
    compose_cmd.add_argument("code_dir", help="Code or ComponentCode directory")
    compose_cmd.add_argument("output", help="Directory for the rebuilt control files")
    return parser


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose, args.quiet)

    try:
        if args.command == "unpack":
            options = load_options(args.config) if args.config else UnpackOptions()
            options = options.merged(
                clobber=args.clobber,
                only_extract=args.only_extract,
                application_name=args.application_name,
                rename_old_postfix=args.rename_old_postfix,
                rename_new_postfix=args.rename_new_postfix,
            )
            unpack(args.source, args.output, options)
        else:
            compose_to_directory(args.code_dir, args.output)
    except UnpackError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
