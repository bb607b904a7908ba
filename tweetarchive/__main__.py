"""
Tweet Archive - Command Line

    python -m tweetarchive [--dbname NAME] [--dbhost HOST] [--dbport PORT]
                           [--host HOST] [--port PORT] [--log-level LEVEL]

Flags override the environment settings of the same meaning.
"""

from __future__ import annotations

import argparse
from typing import Any, Optional, Sequence

import uvicorn

from .config import Settings, get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tweetarchive",
        description="Serve full-text search over an uploaded tweet archive.",
    )
    parser.add_argument("--dbname", help="database name")
    parser.add_argument("--dbhost", help="database host")
    parser.add_argument("--dbport", type=int, help="database port")
    parser.add_argument("--host", help="web server bind address")
    parser.add_argument("--port", type=int, help="web server port")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="log level",
    )
    return parser


def settings_from_args(args: argparse.Namespace, base: Optional[Settings] = None) -> Settings:
    """Apply command-line overrides on top of the environment settings."""
    base = base or get_settings()
    overrides: dict[str, Any] = {
        "DB_NAME": args.dbname,
        "DB_HOST": args.dbhost,
        "DB_PORT": args.dbport,
        "HOST": args.host,
        "PORT": args.port,
        "LOG_LEVEL": args.log_level,
    }
    update = {key: value for key, value in overrides.items() if value is not None}
    if any(key.startswith("DB_") for key in update):
        # explicit database flags win over a DATABASE_URL from the environment
        update["DATABASE_URL"] = ""
    return base.model_copy(update=update)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)

    from .main import create_app

    app = create_app(settings)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
