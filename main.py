#!/usr/bin/env python3
"""Command line entry point for the debate rooms service."""

import argparse
import logging
import os
import sys
from pathlib import Path

from config.settings import AppConfig, get_default_config, get_template_config

DEFAULT_CONFIG_PATH = Path("debate_config.json")


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Suppress noisy third-party loggers
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def is_production() -> bool:
    """Hosted platforms (Railway, Heroku, Docker setups) signal themselves through env vars."""
    return any([
        "RAILWAY_ENVIRONMENT" in os.environ,
        "PORT" in os.environ,
        "DYNO" in os.environ,
        os.environ.get("ENVIRONMENT") == "production",
    ])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="debate-rooms",
        description="Live Asian Parliamentary debate rooms with AI motions and feedback",
    )
    parser.add_argument("--web", action="store_true", help="start the API and WebSocket server")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="JSON or YAML config file (created from the example on first run)",
    )
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.environ.get("PORT", 8000)))
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="overrides system.log_level from the config file",
    )
    parser.add_argument(
        "--init-config",
        type=Path,
        metavar="PATH",
        help="write the default configuration to PATH and exit",
    )
    return parser


def start_web_server(config: AppConfig, host: str, port: int):
    import uvicorn

    from web.api import create_app
    from web.room_manager import RoomManager

    app = create_app(RoomManager(config))

    print("Starting Debate Rooms Web Server...")
    print(f"API Documentation: http://localhost:{port}/docs")
    print(f"WebSocket: ws://localhost:{port}/v1/ws/rooms/{{id}}")

    uvicorn.run(app, host=host, port=port, log_level="info", access_log=True)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.init_config:
        if args.init_config.exists():
            parser.error(f"{args.init_config} already exists")
        get_template_config().save_to_file(args.init_config)
        print(f"Wrote default configuration to {args.init_config}")
        return 0

    if not (args.web or is_production()):
        parser.print_help()
        return 0

    config = get_default_config(args.config)
    setup_logging(args.log_level or config.system.log_level)
    start_web_server(config, args.host, args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
