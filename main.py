#!/usr/bin/env python3
"""
Taskboard -- user accounts and personal to-do tasks behind server-side sessions.

Usage:
  python main.py
  python main.py --reload
  APP_PORT=9000 python main.py

Environment variables (see core/config.py for the full list):
  APP_HOST / APP_PORT   Bind address. Default 0.0.0.0:8080.
  DATABASE_URL          SQLAlchemy URL. Default sqlite:///taskboard.db beside this file.
  SESSION_TTL           Session lifetime, e.g. "24h" or "90m". JWT_EXPIRES_IN is accepted too.
  LOG_LEVEL             debug, info, warn or error.
"""

import argparse

import uvicorn

from core.config import get_settings


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="Run the Taskboard API server.",
    )
    parser.add_argument("--host", default=settings.app_host, help=f"Bind host (default: {settings.app_host})")
    parser.add_argument("--port", type=int, default=settings.app_port, help=f"Bind port (default: {settings.app_port})")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    args = parser.parse_args()

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
