from __future__ import annotations

import argparse
import logging
import sys

import uvicorn
from pydantic import ValidationError

from .core.config import Settings
from .core.errors import ConfigurationError
from .main import create_app

logger = logging.getLogger("blissmixer")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    defaults = Settings.model_fields
    parser = argparse.ArgumentParser(prog="blissmixer", description="Bliss Mixer")
    parser.add_argument("-d", "--db", help=f"Database location (default: {defaults['db_path'].default})")
    parser.add_argument("-p", "--port", type=int, help=f"Port number (default: {defaults['port'].default})")
    parser.add_argument("-a", "--address", help=f"Address to use (default: {defaults['host'].default})")
    parser.add_argument("-l", "--logging", help="Log level (trace, debug, info, warn, error)")
    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "db_path": args.db,
        "port": args.port,
        "host": args.address,
        "log_level": args.logging,
    }
    try:
        settings = Settings(**{key: value for key, value in overrides.items() if value is not None})
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
    if not settings.db_path.exists():
        raise ConfigurationError(f"DB path ({settings.db_path}) does not exist")
    if not settings.db_path.is_file():
        raise ConfigurationError(f"DB path ({settings.db_path}) is not a file")
    return settings


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(args)
    except ConfigurationError as exc:
        logging.basicConfig(level=logging.ERROR)
        logger.error("%s", exc)
        return 1
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
