#!/usr/bin/env python3
"""
Loopwatch Entry Point
Live monitor for the automated trading loop

Usage:
  python run_monitor.py                                  # Defaults from settings / .env
  python run_monitor.py --port 9000                      # Dashboard on another port
  python run_monitor.py --api-base http://10.0.0.5:8080  # Poll a remote trading backend
"""
import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add project root to path (works with absolute paths)
PROJECT_ROOT = Path(__file__).parent.resolve()
sys.path.insert(0, str(PROJECT_ROOT))
os.chdir(PROJECT_ROOT)

import structlog

from config import settings
from loopwatch.runner import run_monitor

logger = structlog.get_logger(__name__)


def parse_args():
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Loopwatch Trading Monitor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--host",
        default=None,
        help=f"Dashboard bind address (default: {settings.DASHBOARD_HOST})"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help=f"Dashboard port (default: {settings.DASHBOARD_PORT})"
    )
    parser.add_argument(
        "--api-base",
        default=None,
        help=f"Trading backend base URL (default: {settings.API_BASE_URL})"
    )
    return parser.parse_args()


def configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(level))


def main():
    """Main entry point"""
    args = parse_args()
    configure_logging(settings.LOG_LEVEL)

    if args.api_base:
        settings.API_BASE_URL = args.api_base

    print("=" * 60)
    print(f"LOOPWATCH - polling {settings.API_BASE_URL}{settings.API_BASE_PATH}")
    print(f"Dashboard: http://{args.host or settings.DASHBOARD_HOST}:{args.port or settings.DASHBOARD_PORT}")
    print("=" * 60)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    # Global exception handler
    def global_exception_handler(loop, context):
        exception = context.get("exception")
        message = context.get("message", "Unknown error")
        logger.error(
            "uncaught_async_exception",
            message=message,
            exception=str(exception) if exception else "None",
        )

    loop.set_exception_handler(global_exception_handler)

    try:
        loop.run_until_complete(run_monitor(host=args.host, port=args.port))
    except KeyboardInterrupt:
        pass
    finally:
        loop.close()


if __name__ == "__main__":
    main()
