"""
Entry point for the bootstrap installer.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .application.exceptions import BootstrapError
from .infrastructure.containers import Container

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Applies basic logging configuration."""
    logging.basicConfig(level=level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="installer-bootstrap",
        description="Detects this OS, downloads the matching installer and runs it.",
        epilog="Arguments after '--' are passed to the installer.",
    )

    parser.add_argument(
        "--source",
        help="Mirror to try before the public download source.",
    )

    parser.add_argument(
        "--up-to-date-only",
        action="store_true",
        help="Only accept the up-to-date installer tier.",
    )

    parser.add_argument(
        "--update-prerequisites",
        action="store_true",
        help="Install missing OS packages the installer depends on.",
    )

    parser.add_argument(
        "--no-reporter",
        action="store_true",
        help="Do not download the update reporter.",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Download the installer without starting it.",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show details of failed download attempts.",
    )

    parser.add_argument(
        "installer_args",
        nargs=argparse.REMAINDER,
        help=argparse.SUPPRESS,
    )

    return parser


def run_application(args: argparse.Namespace, container: Optional[Container] = None) -> int:
    """Wires and runs the application using the DI container."""

    container = container or Container()
    container.cli_args.from_dict(vars(args))
    setup_logging(
        level="DEBUG" if args.verbose else container.config().logging.level
    )

    passthrough = list(args.installer_args)
    if passthrough[:1] == ["--"]:
        passthrough = passthrough[1:]

    reporter = container.error_reporter()
    try:
        service = container.bootstrap_service()
        return service.run(
            passthrough=passthrough,
            update_prerequisites=args.update_prerequisites,
            dry_run=args.dry_run,
        )
    except BootstrapError as e:
        logger.error(f"{type(e).__name__}: {e}")
        for diagnostic in getattr(e, "diagnostics", []):
            logger.debug(f"Failed attempt: {diagnostic}")
        reporter.report(e)
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    return run_application(build_parser().parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
