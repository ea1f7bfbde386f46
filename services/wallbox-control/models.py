"""Pydantic models for the persisted JSON documents.

Python code uses snake_case attributes; the files on disk keep the
camelCase keys the web UI reads and writes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_WALLBOX_IP = "192.168.40.16"
DEFAULT_PV_SURPLUS_ON_URL = (
    "http://192.168.40.11:8083/fhem?detail=autoWallboxPV"
    "&cmd.autoWallboxPV=set%20autoWallboxPV%20on"
)
DEFAULT_PV_SURPLUS_OFF_URL = (
    "http://192.168.40.11:8083/fhem?detail=autoWallboxPV"
    "&cmd.autoWallboxPV=set%20autoWallboxPV%20off"
)


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


class _Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys; unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Settings ---


class NightChargingSchedule(_Document):
    enabled: bool = False
    start_time: str = Field(default="00:00", pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(default="05:00", pattern=r"^\d{2}:\d{2}$")


class E3dcConfig(_Document):
    """Opaque shell commands for the E3DC battery tool.

    A missing or blank command means "nothing to do" for that action.
    """

    enabled: bool = False
    discharge_lock_enable_command: str | None = None
    discharge_lock_disable_command: str | None = None
    grid_charge_enable_command: str | None = None
    grid_charge_disable_command: str | None = None
    grid_charge_during_night_charging: bool = False

    def commands(self) -> list[str]:
        """All configured, non-blank command strings."""
        values = [
            self.discharge_lock_enable_command,
            self.discharge_lock_disable_command,
            self.grid_charge_enable_command,
            self.grid_charge_disable_command,
        ]
        return [v for v in values if v and v.strip()]


class Settings(_Document):
    """User-editable configuration (``settings.json``).

    ``*_backup`` fields only exist while the live field holds a demo-mode
    mock value.  Unknown keys are kept so newer UIs don't lose data when
    talking to an older service.
    """

    model_config = ConfigDict(extra="allow")

    wallbox_ip: str = DEFAULT_WALLBOX_IP
    wallbox_ip_backup: str | None = None
    e3dc_ip: str | None = None
    e3dc_ip_backup: str | None = None
    pv_surplus_on_url: str | None = None
    pv_surplus_on_url_backup: str | None = None
    pv_surplus_off_url: str | None = None
    pv_surplus_off_url_backup: str | None = None
    battery_lock_on_url: str | None = None
    battery_lock_off_url: str | None = None
    demo_mode: bool = False
    night_charging_schedule: NightChargingSchedule = Field(
        default_factory=NightChargingSchedule
    )
    timezone: str | None = None
    e3dc: E3dcConfig | None = None


def default_settings() -> Settings:
    """Settings written on first start."""
    return Settings(
        wallbox_ip=DEFAULT_WALLBOX_IP,
        pv_surplus_on_url=DEFAULT_PV_SURPLUS_ON_URL,
        pv_surplus_off_url=DEFAULT_PV_SURPLUS_OFF_URL,
    )


# --- Runtime state ---


class ControlState(_Document):
    """Which automated charging strategies are switched on.

    ``night_charging`` is owned by the night scheduler; API handlers must
    not write it.
    """

    pv_surplus: bool = False
    night_charging: bool = False
    battery_lock: bool = False
    grid_charging: bool = False


class ChargingStrategy(str, Enum):
    OFF = "off"
    PV_SURPLUS = "pv-surplus"
    NIGHT = "night"
    MAX_POWER = "max-power"


class ChargingContext(_Document):
    """Bookkeeping of the active strategy and its ampere adjustments."""

    strategy: ChargingStrategy = ChargingStrategy.OFF
    is_active: bool = False
    current_ampere: float = 0
    target_ampere: float = 0
    current_phases: int = 3
    adjustment_count: int = 0
    last_adjustment_times: list[datetime] = Field(default_factory=list)


class PlugStatusTracking(_Document):
    last_plug_status: int | None = None
    last_plug_change: datetime | None = None
