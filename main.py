#!/usr/bin/env python3
"""
main.py
=======
Command-line entry point: configure logging and serve :mod:`api.server`
under uvicorn.

Usage::

    python main.py --port 3001 --log-level DEBUG
"""

import argparse
import logging

import uvicorn

import config
from logging_setup import setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Real-time route simulation server")
    ap.add_argument("--host", default=config.HOST, help="bind address")
    ap.add_argument("--port", type=int, default=config.PORT, help="listen port")
    ap.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    ap.add_argument("--log-file", default=config.LOG_FILE, help="rotating log file ('' disables)")
    return ap.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_level, log_file=args.log_file)
    log = logging.getLogger("main")
    log.info("Starting route simulator on %s:%d", args.host, args.port)

    from api.server import app

    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
