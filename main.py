"""
main.py — Single entry point.

Loads settings, wires the OpenAI analyzer into the aiohttp server and runs
until SIGINT/SIGTERM.

Architecture:
  asyncio event loop
    └── aiohttp web server  (POST /api/analyze → OpenAI vision → OpenSpool JSON)
"""
import asyncio
import logging
import signal
import sys

import config
from analyzers.openai_analyzer import OpenAIAnalyzer
from server import start_server

logger = logging.getLogger(__name__)


def setup_logging(level: str = config.DEFAULT_LOG_LEVEL) -> None:
    logging.basicConfig(
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        level=getattr(logging, level, logging.INFO),
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


async def run(settings: config.Settings) -> None:
    analyzer = OpenAIAnalyzer(settings.api_key, settings.model, base_url=settings.base_url)
    logger.info("Using analyzer %s at %s", analyzer.full_name, analyzer.base_url)

    web_runner = await start_server(analyzer, settings.host, settings.port)

    stop_event = asyncio.Event()

    def _stop(*_):
        logger.info("Shutdown signal received.")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _stop)
        except (NotImplementedError, RuntimeError):
            # Windows doesn't support add_signal_handler for all signals
            pass

    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down…")
        await web_runner.cleanup()

    logger.info("Goodbye.")


def main() -> None:
    try:
        settings = config.load_settings()
    except config.ConfigError as exc:
        setup_logging()
        logger.critical("FATAL: %s", exc)
        raise SystemExit(1) from exc

    setup_logging(settings.log_level)
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
