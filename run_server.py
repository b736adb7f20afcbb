"""Start the jobrelay API server.

Usage:
    python run_server.py
    python run_server.py --host 127.0.0.1 --port 9000 --reload
"""
import argparse
import os
import sys

import uvicorn

from jobrelay.config import Settings


def main():
    settings = Settings()
    parser = argparse.ArgumentParser(description="jobrelay API server")
    parser.add_argument("--host", default=settings.HOST, help=f"Bind address (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Port (default: {settings.PORT})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    args = parser.parse_args()

    # The app builds its own Settings on import; keep them in line with the bind address
    os.environ["HOST"] = args.host
    os.environ["PORT"] = str(args.port)

    uvicorn.run(
        "jobrelay.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0

if __name__ == "__main__":
    sys.exit(main())
