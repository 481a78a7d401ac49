"""``resolvarr`` console script: load config once, then serve with uvicorn."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from resolvarr.infrastructure.config import load_config
from resolvarr.infrastructure.logging.setup import configure_logging
from resolvarr.interfaces.app import create_app

log = structlog.get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

# argparse dest -> flat key understood by load_config()
_OVERRIDE_FLAGS: dict[str, str] = {
    "gateway_url": "gateway_url",
    "log_level": "log_level",
    "log_format": "log_format",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resolvarr",
        description="Provider fallback and result cache for streaming sources.",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", help=f"Bind host (env HOST, default {DEFAULT_HOST}).")
    server.add_argument(
        "--port", type=int, help=f"Bind port (env PORT, default {DEFAULT_PORT})."
    )

    config = parser.add_argument_group("configuration")
    config.add_argument("--config", type=Path, help="YAML config file.")
    config.add_argument("--dotenv", type=Path, help=".env file loaded before env vars.")
    config.add_argument("--gateway-url", help="Provider gateway base URL.")

    logging_group = parser.add_argument_group("logging")
    logging_group.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    logging_group.add_argument("--log-format", choices=["json", "console"])

    return parser


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    return _build_parser().parse_args(list(argv) if argv is not None else None)


def cli_overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Highest-precedence config layer: only flags that were given."""
    return {
        key: getattr(args, dest)
        for dest, key in _OVERRIDE_FLAGS.items()
        if getattr(args, dest)
    }


def start(argv: Iterable[str] | None = None) -> None:
    args = _parse_args(sys.argv[1:] if argv is None else argv)

    host = args.host or os.getenv("HOST", DEFAULT_HOST)
    port = args.port or int(os.getenv("PORT", str(DEFAULT_PORT)))

    config = load_config(
        config_path=args.config,
        dotenv_path=args.dotenv,
        cli_overrides=cli_overrides_from_args(args),
    )
    log_config = configure_logging(config)
    log.info(
        "server_starting",
        host=host,
        port=port,
        environment=config.environment,
        gateway_url=config.gateway_url,
        cache_backend=config.cache.backend,
    )

    uvicorn.run(create_app(config), host=host, port=port, log_config=log_config)


if __name__ == "__main__":
    raise SystemExit(start())
