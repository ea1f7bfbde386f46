"""Base service class that handles boilerplate setup.

Every service can inherit from this to get config, logging and graceful
shutdown handling set up automatically.

Usage:
    import asyncio
    from shared.service import BaseService

    class MyService(BaseService):
        name = "my-service"

        async def run(self) -> None:
            # self.settings and self.logger are ready to use
            self.logger.info("hello")
            await self.wait_for_shutdown()

    if __name__ == "__main__":
        service = MyService()
        asyncio.run(service.start())
"""

from __future__ import annotations

import asyncio
import signal
import time
from pathlib import Path

from shared.config import Settings
from shared.log import get_logger


class BaseService:
    """Base class for homelab automation services."""

    name: str = "unnamed-service"

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.logger = get_logger(self.name)
        self._shutdown_event = asyncio.Event()

    async def run(self) -> None:
        """Override this method with your service logic."""
        raise NotImplementedError("Subclasses must implement run()")

    async def start(self) -> None:
        """Start the service with graceful shutdown handling."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown)

        self.logger.info("service_starting", service=self.name)

        try:
            await self.run()
        except asyncio.CancelledError:
            self.logger.info("service_cancelled")
        finally:
            await self.shutdown()

    def _handle_shutdown(self) -> None:
        self.logger.info("shutdown_signal_received")
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Clean up resources. Override to release service-specific ones."""
        self.logger.info("service_stopped")

    async def wait_for_shutdown(self) -> None:
        """Await this in your run() to block until shutdown signal."""
        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def touch_healthcheck(self, path: Path) -> None:
        """Write the current time to the Docker HEALTHCHECK file."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(str(time.time()))
        except OSError:
            self.logger.debug("healthcheck_write_failed", path=str(path))
