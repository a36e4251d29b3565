#!/usr/bin/env python3
"""Serve the challenge portal with uvicorn.

    python run.py --reload
    python run.py --host 0.0.0.0 --port 8080 --workers 4
"""

import argparse

import uvicorn

LOG_LEVELS = ["critical", "error", "warning", "info", "debug"]


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Serve the challenge review portal")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="restart on code changes")
    parser.add_argument("--workers", type=int, default=1, help="ignored with --reload")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="info")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    uvicorn.run(
        "portal.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        workers=1 if args.reload else args.workers,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
