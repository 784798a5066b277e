"""
CLI entry point for the SimpleFin bridge exporter.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from simplefin_exporter.core.exceptions import ConfigurationError, SimplefinExporterError
from simplefin_exporter.models.config import (
    DEFAULT_BIND_ADDRESS,
    DEFAULT_PORT,
    ExporterConfig,
)
from simplefin_exporter.server import run_server

SECRET_OPTIONS = ("--setup-token", "--access-url")


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Options left off the command line are not set on the namespace, so the
    matching SIMPLEFIN_* environment variable or the default applies.
    """
    parser = argparse.ArgumentParser(
        description="SimpleFin Bridge Exporter - Expose account balances as Prometheus metrics",
        argument_default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--setup-token",
        help="SimpleFin setup token, claimed once for an access URL",
    )
    parser.add_argument(
        "--access-url",
        help="SimpleFin access URL",
    )
    parser.add_argument(
        "--access-url-file",
        help="File to read the access URL from; the file is deleted after reading",
    )
    parser.add_argument(
        "--secret-name",
        help="Kubernetes secret name to store/read the access URL",
    )
    parser.add_argument(
        "--secret-namespace",
        help="Kubernetes secret namespace",
    )
    parser.add_argument(
        "--account-mappings-file",
        help="JSON file with account ID to custom name mappings and ignored accounts",
    )
    parser.add_argument(
        "--bind-address",
        help=f"Metrics server bind address (default: {DEFAULT_BIND_ADDRESS})",
    )
    parser.add_argument(
        "--port",
        type=int,
        help=f"Metrics server port (default: {DEFAULT_PORT})",
    )
    parser.add_argument(
        "--update-interval",
        help="Update interval as a duration string, e.g. 30m or 1h (default: 1h)",
    )
    parser.add_argument(
        "--debug",
        "-v",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def build_config(args: argparse.Namespace) -> ExporterConfig:
    """
    Build the exporter configuration from parsed arguments and the environment.

    Raises:
        ConfigurationError: If any flag or SIMPLEFIN_* variable is invalid
    """
    try:
        return ExporterConfig(**vars(args))
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e


def redact_argv(argv: List[str]) -> List[str]:
    """Replace the values of secret-bearing options for logging."""
    redacted = []
    hide_next = False
    for arg in argv:
        if hide_next:
            redacted.append("***")
            hide_next = False
        elif arg in SECRET_OPTIONS:
            redacted.append(arg)
            hide_next = True
        elif arg.split("=", 1)[0] in SECRET_OPTIONS and "=" in arg:
            redacted.append(f"{arg.split('=', 1)[0]}=***")
        else:
            redacted.append(arg)
    return redacted


def configure_logging(debug: bool) -> None:
    """Configure root logging on stderr."""
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        configure_logging(debug=False)
        logging.error(f"Fatal: {e}")
        sys.exit(1)

    configure_logging(config.debug)
    if config.debug:
        arguments = argv if argv is not None else sys.argv[1:]
        logging.debug(f"Starting, args: `{' '.join(redact_argv(arguments))}`")

    # Run the exporter
    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logging.info("Exporter stopped by user")
        sys.exit(0)
    except SimplefinExporterError as e:
        logging.error(f"Fatal: {e}")
        sys.exit(1)
    except Exception as e:
        logging.exception(f"Exporter error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
