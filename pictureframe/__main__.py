from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from .config import FrameConfig, setup_logging
from .controller import DisplayController
from .errors import ConfigError
from .render import create_renderer
from .store import load_store

logger = logging.getLogger(__name__)


async def _run(controller: DisplayController) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, controller.request_shutdown)
    await controller.run()
    logger.info("shutdown complete")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="pictureframe")
    sub = parser.add_subparsers(dest="command")

    display = sub.add_parser("display", help="run the slideshow only (default)")
    display.add_argument("--once", action="store_true", help="show one frame and exit")

    serve = sub.add_parser("serve", help="run the HTTP API with the slideshow embedded")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    try:
        config = FrameConfig.from_env()
    except ConfigError as exc:
        print(f"pictureframe: {exc}", file=sys.stderr)
        return 2
    setup_logging(config.log_level)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("pictureframe.main:app", host=args.host, port=args.port)
        return 0

    config.ensure_dirs()
    try:
        store = load_store(config.settings_file)
    except ConfigError as exc:
        print(f"pictureframe: {exc}", file=sys.stderr)
        return 2

    controller = DisplayController.from_config(config, store, create_renderer(config))
    if getattr(args, "once", False):
        controller.run_once()
        return 0
    asyncio.run(_run(controller))
    return 0


if __name__ == "__main__":
    sys.exit(main())
