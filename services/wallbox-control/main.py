"""Wallbox Control Service — composition root for the control core.

Builds the persistent stores and the E3DC executor once, and keeps the
executor's configuration in sync with ``settings.json``.  The API layer
and the night-charging scheduler get these objects handed in; nothing
here decides *when* to charge.
"""

from __future__ import annotations

import asyncio

from shared.service import BaseService

from config import WallboxControlSettings
from demo_mode import is_mocked
from e3dc import CommandRunner, E3dcClient
from models import Settings
from storage import Storage


class WallboxControlService(BaseService):
    name = "wallbox-control"

    def __init__(
        self,
        settings: WallboxControlSettings | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        super().__init__(settings=settings or WallboxControlSettings())
        self.settings: WallboxControlSettings  # narrow type for IDE

        self.storage = Storage(self.settings.data_dir)
        self.e3dc = E3dcClient(
            runner,
            production=self.settings.is_production,
            min_interval_seconds=self.settings.e3dc_min_command_interval_seconds,
            timeout_seconds=self.settings.e3dc_command_timeout_seconds,
        )
        self._sync_e3dc(self.storage.settings.get())

    def apply_settings(self, settings: Settings) -> Settings:
        """Save user settings and reconfigure the E3DC executor to match."""
        stored = self.storage.settings.save(settings)
        self._sync_e3dc(stored)
        return stored

    async def run(self) -> None:
        current = self.storage.settings.get()
        if not current.demo_mode and is_mocked(current):
            self.logger.warning("mock_endpoint_outside_demo_mode")

        self.logger.info(
            "service_ready",
            data_dir=str(self.settings.data_dir),
            demo_mode=current.demo_mode,
            e3dc_configured=self.e3dc.is_configured(),
            environment=self.settings.environment,
        )
        self.touch_healthcheck(self.settings.healthcheck_file)

        await self.wait_for_shutdown()

    async def shutdown(self) -> None:
        self.e3dc.disconnect()
        await super().shutdown()

    def _sync_e3dc(self, settings: Settings) -> None:
        config = settings.e3dc
        if config is not None and config.enabled:
            self.e3dc.configure(config)
        elif self.e3dc.is_configured():
            self.e3dc.disconnect()


if __name__ == "__main__":
    service = WallboxControlService()
    asyncio.run(service.start())
