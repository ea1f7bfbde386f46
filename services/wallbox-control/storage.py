"""Persistent stores for settings, control flags and charging bookkeeping.

Data is stored as JSON files in one data directory::

    <data_dir>/
      settings.json          — user configuration (demo-mode aware)
      control-state.json     — active strategy flags
      charging-context.json  — strategy + ampere/phase history
      plug-tracking.json     — last observed cable plug status

Each store is hydrated once on construction and writes through on every
mutation.  A per-store lock serializes read-merge-write sequences, so
concurrent partial updates from worker threads can't lose each other.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Generic, TypeVar

from shared.log import LogEntry, LogSettings, LogSink, get_logger, log_sink

from demo_mode import apply_demo_mode
from json_store import JsonFileStore
from models import (
    ChargingContext,
    ControlState,
    PlugStatusTracking,
    Settings,
    default_settings,
)

logger = get_logger("storage")

SETTINGS_FILE = "settings.json"
CONTROL_STATE_FILE = "control-state.json"
CHARGING_CONTEXT_FILE = "charging-context.json"
PLUG_TRACKING_FILE = "plug-tracking.json"

StateT = TypeVar("StateT", ControlState, ChargingContext)


class SettingsStore:
    """Owns ``Settings``; runs the demo-mode transition on every save."""

    def __init__(self, path: Path) -> None:
        self._file = JsonFileStore(path, Settings, default_settings)
        self._lock = threading.RLock()
        self._settings = self._file.load()

    def get(self) -> Settings:
        with self._lock:
            return self._settings.model_copy(deep=True)

    def save(self, settings: Settings) -> Settings:
        """Apply the demo-mode transition, persist, and return what was stored."""
        with self._lock:
            stored = apply_demo_mode(self._settings, settings)
            self._settings = stored
            self._file.save(stored)
            logger.debug("settings_saved", demo_mode=stored.demo_mode)
            return stored.model_copy(deep=True)


class _MergeableStore(Generic[StateT]):
    """Whole-replace and partial-merge updates for a flat state document."""

    _name = "state"

    def __init__(self, path: Path, model: type[StateT]) -> None:
        self._model = model
        self._file = JsonFileStore(path, model)
        self._lock = threading.RLock()
        self._value = self._file.load()

    def get(self) -> StateT:
        # Default overlaid with the stored value: always structurally complete
        with self._lock:
            return self._model.model_validate(
                {**self._model().model_dump(), **self._value.model_dump()}
            )

    def save(self, value: StateT) -> None:
        with self._lock:
            self._value = value.model_copy(deep=True)
            self._file.save(self._value)

    def update(self, **changes: Any) -> StateT:
        """Merge ``changes`` (snake_case field names) into the current value."""
        unknown = set(changes) - set(self._model.model_fields)
        if unknown:
            raise TypeError(f"unknown {self._name} field(s): {', '.join(sorted(unknown))}")

        with self._lock:
            merged = self._model.model_validate(
                {**self._value.model_dump(), **changes}
            )
            self._value = merged
            self._file.save(merged)
            logger.debug(f"{self._name}_updated", fields=sorted(changes))
            return merged.model_copy(deep=True)


class ControlStateStore(_MergeableStore[ControlState]):
    """Strategy flags; ``night_charging`` belongs to the night scheduler."""

    _name = "control_state"

    def __init__(self, path: Path) -> None:
        super().__init__(path, ControlState)


class ChargingContextStore(_MergeableStore[ChargingContext]):
    _name = "charging_context"

    def __init__(self, path: Path) -> None:
        super().__init__(path, ChargingContext)


class PlugTrackingStore:
    """Last plug status seen on the wallbox.

    Callers must only pass validated, non-corrupt status values.
    """

    def __init__(self, path: Path) -> None:
        self._file = JsonFileStore(path, PlugStatusTracking)
        self._lock = threading.RLock()
        self._tracking = self._file.load()

    def get(self) -> PlugStatusTracking:
        with self._lock:
            return self._tracking.model_copy(deep=True)

    def save(self, tracking: PlugStatusTracking) -> None:
        with self._lock:
            self._tracking = tracking.model_copy(deep=True)
            self._file.save(self._tracking)


class Storage:
    """All persistent state of the service, rooted in one data directory.

    Construct once at startup and pass it to everything that needs it.
    """

    def __init__(self, data_dir: Path, sink: LogSink | None = None) -> None:
        self.data_dir = Path(data_dir)
        self._sink = sink or log_sink
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            # Stores fall back to in-memory defaults; keep serving
            logger.warning("data_dir_unavailable", path=str(self.data_dir), details=str(exc))

        self.settings = SettingsStore(self.data_dir / SETTINGS_FILE)
        self.control_state = ControlStateStore(self.data_dir / CONTROL_STATE_FILE)
        self.charging_context = ChargingContextStore(self.data_dir / CHARGING_CONTEXT_FILE)
        self.plug_tracking = PlugTrackingStore(self.data_dir / PLUG_TRACKING_FILE)
        logger.info("storage_ready", data_dir=str(self.data_dir))

    # ---- Logs ----------------------------------------------------------

    def get_logs(self) -> list[LogEntry]:
        return self._sink.entries()

    def add_log(
        self, level: str, category: str, message: str, details: str | None = None
    ) -> LogEntry | None:
        return self._sink.add(level, category, message, details)

    def clear_logs(self) -> None:
        self._sink.clear()

    def get_log_settings(self) -> LogSettings:
        return self._sink.get_settings()

    def save_log_settings(self, settings: LogSettings) -> None:
        self._sink.save_settings(settings)
