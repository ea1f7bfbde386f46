"""Service-specific settings for wallbox-control."""

from pathlib import Path

from shared.config import Settings as BaseSettings


class WallboxControlSettings(BaseSettings):
    """Process configuration for the wallbox-control service.

    Inherits shared settings (logging, timezone) and adds storage and
    E3DC executor parameters.  Every field can be overridden via an
    environment variable with the same (upper-case) name.

    Note: user-editable settings (wallbox IP, FHEM URLs, demo mode, ...)
    are *not* here; they live in ``settings.json`` and are managed by
    ``storage.SettingsStore``.
    """

    # --- Storage ---
    data_dir: Path = Path("/app/data")
    healthcheck_file: Path = Path("/app/data/healthcheck")

    # --- Build flavour ---
    # "production" strips command output and error details from logs
    environment: str = "development"

    # --- E3DC executor ---
    e3dc_min_command_interval_seconds: float = 5.0
    e3dc_command_timeout_seconds: float | None = None  # None = wait forever

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"
