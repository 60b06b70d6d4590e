"""
Civic intake line entry point.

Serves the turn-processing API for the transport layer, or runs the
offline console demo for development.

Usage:
    API server:   python main.py serve
    Console mode: python main.py console [--scenario blue_badge]
"""

import logging
import sys

from civic_intake.config import settings

logger = logging.getLogger(__name__)


def _run_server() -> None:
    """Start the FastAPI app under uvicorn (database and keys from the environment)."""
    import uvicorn

    from civic_intake.api.app import build_default_app

    app = build_default_app()
    logger.info("Serving intake API on %s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


def _run_console_mode(argv: list[str]) -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import main as console_main

    console_main(argv)


def main() -> None:
    if len(sys.argv) > 1 and sys.argv[1] == "serve":
        _run_server()
    else:
        _run_console_mode(sys.argv[2:] if len(sys.argv) > 1 else [])


if __name__ == "__main__":
    main()
