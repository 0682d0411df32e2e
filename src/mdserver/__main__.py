"""
Command-line entry point.

    python -m mdserver settings.yaml
    python -m mdserver settings.yaml --port 8080 --log-level DEBUG

Startup failures print a message to stderr and exit with the code carried
by ConfigError (see mdserver.config).
"""

import argparse
import dataclasses
import sys

from . import __version__
from .config import ConfigError, load_settings
from .server import Server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mdserver",
        description="Serve a directory of Markdown, pug and static files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mdserver site.yaml                    # Settings from site.yaml
  mdserver site.yaml --port 8080        # Override the HTTP port
  mdserver site.yaml -l DEBUG           # Verbose logging
  kill -USR1 <pid>                      # Flush the response cache
        """,
    )

    parser.add_argument(
        "settings",
        nargs="?",
        help="Path to the YAML settings file",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=None,
        help="HTTP port (overrides 'port' in the settings file)",
    )

    parser.add_argument(
        "--bind", "-b",
        default=None,
        help="Interface to listen on (default: 0.0.0.0)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"mdserver {__version__}",
    )

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if not args.settings:
        print("usage: mdserver SETTINGS_FILE", file=sys.stderr)
        return 1

    try:
        config = load_settings(args.settings)

        overrides = {}
        if args.port is not None and config.port is not None:
            overrides["port"] = args.port
        if args.bind:
            overrides["bind"] = args.bind
        if args.log_level:
            overrides["log_level"] = args.log_level
        if overrides:
            config = dataclasses.replace(config, **overrides)

        server = Server(config)
        server.run()
    except ConfigError as e:
        print(f"mdserver: {e}", file=sys.stderr)
        return e.exit_code
    except OSError as e:
        print(f"mdserver: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
