#!/usr/bin/env python3
"""
Movie Catalog -- server entry point.

Usage:
  python main.py
  python main.py --port 8080
  python main.py --host 127.0.0.1 --reload

Environment variables (see core/config.py for the full list):
  PORT            Listening port (default 3000).
  DATABASE_URL    SQLAlchemy URL (default: SQLite file next to the project).
  SECRET_KEY      Session HMAC key, >= 32 chars. SESSION_SECRET is accepted too.
  DEBUG           true to auto-generate SECRET_KEY for local development.
"""

import argparse

import uvicorn

from core.config import get_settings


def _parse_args(argv=None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the movie catalog web server.")
    parser.add_argument("--host", default=settings.host, help=f"bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"listening port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="restart on code changes (development only)")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)
    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
