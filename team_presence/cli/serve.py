from __future__ import annotations

import argparse
from typing import Sequence

import uvicorn

from team_presence.config.settings import settings
from team_presence.infrastructure.ports import get_available_port
from team_presence.logging_config import get_logger


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Run the team presence HTTP API")
    p.add_argument("--host", default=settings.host, help="Interface to bind")
    p.add_argument("--port", type=int, default=settings.port, help="Preferred port")
    p.add_argument(
        "--strict-port",
        action="store_true",
        help="Fail instead of scanning for a free port when --port is busy",
    )
    return p


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logger = get_logger()
    port = args.port if args.strict_port else get_available_port(args.port, args.host)

    from team_presence.api.app import create_app

    app = create_app(settings)
    logger.info("Starting server", extra={"host": args.host, "port": port})
    print(f"Team presence API listening on http://{args.host}:{port}")
    uvicorn.run(app, host=args.host, port=port, log_level="info")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
