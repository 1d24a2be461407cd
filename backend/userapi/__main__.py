"""Run the User Directory API with uvicorn: ``python -m userapi``."""

import argparse
import logging
from typing import Optional, Sequence

from userapi.config import Settings

logger = logging.getLogger("userapi")


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="userapi", description="User Directory API server")
    parser.add_argument("--host", default=defaults.backend_host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=defaults.backend_port, help="Port to listen on")
    parser.add_argument("--database-url", default=defaults.database_url, help="Async SQLAlchemy URL")
    parser.add_argument("--log-level", default=defaults.log_level, help="Logging level")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    import uvicorn

    from userapi.main import create_app

    defaults = Settings()
    args = build_parser(defaults).parse_args(argv)

    app_settings = Settings(
        backend_host=args.host,
        backend_port=args.port,
        database_url=args.database_url,
        log_level=args.log_level,
    )

    logger.info("Starting User Directory API on http://%s:%s", args.host, args.port)
    uvicorn.run(
        create_app(app_settings),
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )


if __name__ == "__main__":
    main()
