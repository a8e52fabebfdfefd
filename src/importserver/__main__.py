"""
=============================================================================
IMPORT SERVER CLI ENTRY POINT
=============================================================================

    # CSV payload on the default port (1709)
    python -m importserver

    # SQL payload on a custom port
    python -m importserver --port 8000 --sql

    # Explicit boolean, shell-script friendly
    python -m importserver --sql=false

Every option falls back to its IMPORT_SERVER_* environment variable (see
ServerConfig.from_env) and then to the built-in default.

=============================================================================
EXIT STATUS
=============================================================================

    0   shut down cleanly after SIGINT/SIGTERM
    1   --port 0, invalid configuration, or the port could not be bound

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig, parse_bool
from .server import create_server


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Build the argument parser, with defaults taken from ``defaults``."""
    parser = argparse.ArgumentParser(
        prog="import-server",
        description="Serve a fixed CSV or SQL import payload to every POST request",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m importserver                    # CSV payload on :1709
  python -m importserver --port 8000 --sql  # SQL payload on :8000
  python -m importserver --sql=false        # Explicit CSV
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--sql",
        nargs="?",
        const=True,
        default=defaults.sql,
        type=parse_bool,
        metavar="BOOL",
        help="Serve the SQL script instead of the CSV sample "
             "(bare --sql means true)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE / LOGGING ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--shutdown-timeout",
        type=float,
        default=defaults.shutdown_timeout,
        help=f"Seconds in-flight requests get after SIGINT/SIGTERM "
             f"(default: {defaults.shutdown_timeout:g})"
    )

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level.upper()})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"import-server {__version__}"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None):
    """
    Main CLI entry point.

    Args:
        argv: Arguments without the program name. Defaults to sys.argv[1:].
    """
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid IMPORT_SERVER_* environment: {e}", file=sys.stderr)
        sys.exit(1)

    parser = build_parser(defaults)
    args = parser.parse_args(argv)

    if args.port == 0:
        parser.print_usage(sys.stderr)
        print("must supply --port", file=sys.stderr)
        sys.exit(1)

    try:
        config = ServerConfig(
            host=args.host,
            port=args.port,
            sql=args.sql,
            shutdown_timeout=args.shutdown_timeout,
            log_level=args.log_level,
        )
        server = create_server(config)
        server.run()
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
