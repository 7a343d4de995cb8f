import argparse
import os

import uvicorn
from dotenv import load_dotenv

from booruhub.config import settings

load_dotenv()

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the BooruHub API server")
    parser.add_argument("--debug", action="store_true", help="Debug logging and auto-reload")
    parser.add_argument("--host", help=f"Bind address (default {settings.HOST})")
    parser.add_argument("--port", type=int, help=f"Port (default {settings.PORT})")
    return parser

def server_options(argv=None) -> dict:
    """uvicorn keyword arguments from the command line, falling back to Settings"""
    args = build_parser().parse_args(argv)
    if args.debug:
        os.environ["BOORUHUB_DEBUG"] = "true"
    return {
        "host": args.host or settings.HOST,
        "port": args.port or settings.PORT,
        "reload": args.debug,
        "log_level": "debug" if settings.DEBUG else "info",
    }

if __name__ == "__main__":
    options = server_options()
    print(f"Starting {settings.APP_NAME} on {options['host']}:{options['port']}")
    uvicorn.run("booruhub.main:app", **options)
