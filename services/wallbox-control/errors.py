"""Error types raised by the wallbox-control core."""

from __future__ import annotations


class WallboxControlError(Exception):
    """Base class for all wallbox-control errors."""


class ConfigurationError(WallboxControlError):
    """The E3DC executor was used without an enabled configuration."""


class ExecutionError(WallboxControlError):
    """An external E3DC command failed.

    The message is already sanitized; in production builds it only names
    the logical command.
    """

    def __init__(self, command_name: str, message: str | None = None) -> None:
        self.command_name = command_name
        super().__init__(message or f"Failed to execute {command_name}")


class PersistenceIOError(WallboxControlError):
    """Reading, parsing or writing a JSON document failed.

    Never escapes a store: ``JsonFileStore`` logs it and falls back.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")
