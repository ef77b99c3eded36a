"""Command line entry point: ``python -m cmswatch.main``.

Options are read from ``CMSWATCH_*`` environment variables (see
``load_watch_options_from_env``); API and logging settings come from
``AppSettings``.
"""

import asyncio
import signal
import sys
from typing import Optional

from .api_clients import FileMapperClient
from .config import ConfigurationError, WatchOptions, get_settings, load_watch_options_from_env
from .core import WatchSession
from .utils.logging import setup_logging, get_logger


class WatchApp:
    """Runs one watch session until a stop is requested."""

    def __init__(self, options: WatchOptions):
        self.settings = get_settings()
        self.options = options
        self.logger = get_logger("WatchApp")
        self.stop_requested = asyncio.Event()
        self.client: Optional[FileMapperClient] = None
        self.session: Optional[WatchSession] = None

    def request_stop(self) -> None:
        self.stop_requested.set()

    async def run(self) -> None:
        self.logger.info(
            f"Watching {self.options.src} for account {self.options.account_id}",
            version=self.settings.version,
            environment=self.settings.environment,
            dest=self.options.dest,
            mode=self.options.mode.value
        )

        self.client = FileMapperClient.from_settings(self.settings.api)
        try:
            self.session = WatchSession.from_options(self.options, self.client)
            await self.session.start()
            await self.stop_requested.wait()
        finally:
            if self.session is not None:
                await self.session.close()
            await self.client.close()


def install_signal_handlers(app: WatchApp) -> None:
    """Stop the app cleanly on SIGINT/SIGTERM."""
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, app.request_stop)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(signum, lambda *_: loop.call_soon_threadsafe(app.request_stop))


async def main() -> int:
    setup_logging()
    logger = get_logger("main")

    try:
        options = load_watch_options_from_env()
    except ConfigurationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 2

    app = WatchApp(options)
    install_signal_handlers(app)
    await app.run()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
