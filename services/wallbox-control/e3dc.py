"""E3DC battery control via configured shell commands.

The commands (discharge lock on/off, grid charge on/off) are opaque strings
assembled by the user, typically an ``e3dcset`` invocation with credentials
baked in.  This module only runs them:

  - at most one command at a time, with a minimum gap between starts so
    the storage controller never sees overlapping operations
  - output and errors are sanitized before they reach the log; production
    builds log lengths only
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable

from shared.log import get_logger

from errors import ConfigurationError, ExecutionError
from models import E3dcConfig
from sanitize import preview, sanitize_output

logger = get_logger("e3dc")

MIN_COMMAND_INTERVAL_SECONDS = 5.0


@dataclass
class CommandResult:
    stdout: str
    stderr: str
    returncode: int

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(ABC):
    """Runs one shell command string and captures its output."""

    @abstractmethod
    async def run(self, command: str, timeout: float | None = None) -> CommandResult:
        """Run ``command`` to completion.

        Raises:
            OSError: the process could not be spawned.
            asyncio.TimeoutError: ``timeout`` elapsed (process is killed).
        """


class ShellCommandRunner(CommandRunner):
    """Runs commands through ``/bin/sh`` via asyncio subprocesses."""

    async def run(self, command: str, timeout: float | None = None) -> CommandResult:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise
        return CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            returncode=proc.returncode if proc.returncode is not None else -1,
        )


class E3dcClient:
    """Rate-limited executor for the configured E3DC commands.

    Args:
        runner: Where commands actually run.  Tests pass a fake.
        production: Strip output and error details from logs/exceptions.
        min_interval_seconds: Minimum gap between two command starts.
        timeout_seconds: Per-command process timeout (None = no timeout).
        clock: Monotonic time source.
        sleep: Awaitable delay used for rate limiting.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        production: bool = False,
        min_interval_seconds: float = MIN_COMMAND_INTERVAL_SECONDS,
        timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._runner = runner or ShellCommandRunner()
        self._production = production
        self._min_interval = min_interval_seconds
        self._timeout = timeout_seconds
        self._clock = clock
        self._sleep = sleep

        self._config: E3dcConfig | None = None
        self._last_command_time: float | None = None
        # Serializes the check-wait-run-record sequence
        self._command_lock = asyncio.Lock()

    # ---- Configuration -------------------------------------------------

    def configure(self, config: E3dcConfig) -> None:
        if not config.enabled:
            raise ConfigurationError("E3DC not enabled")
        self._config = config.model_copy(deep=True)
        logger.info("e3dc_configured", commands=len(self._config.commands()))

    def disconnect(self) -> None:
        self._config = None
        logger.info("e3dc_disconnected")

    def is_configured(self) -> bool:
        return self._config is not None and self._config.enabled

    def is_grid_charge_during_night_charging_enabled(self) -> bool:
        return self._config is not None and self._config.grid_charge_during_night_charging

    @property
    def last_command_time(self) -> float | None:
        """Monotonic time the last command attempt finished (None = never)."""
        return self._last_command_time

    # ---- Commands ------------------------------------------------------

    async def lock_discharge(self) -> None:
        config = self._require_config()
        await self._execute(config.discharge_lock_enable_command, "lock_discharge")

    async def unlock_discharge(self) -> None:
        config = self._require_config()
        await self._execute(config.discharge_lock_disable_command, "unlock_discharge")

    async def enable_grid_charge(self) -> None:
        config = self._require_config()
        await self._execute(config.grid_charge_enable_command, "enable_grid_charge")

    async def disable_grid_charge(self) -> None:
        config = self._require_config()
        await self._execute(config.grid_charge_disable_command, "disable_grid_charge")

    # ---- Internal ------------------------------------------------------

    def _require_config(self) -> E3dcConfig:
        if self._config is None:
            raise ConfigurationError("E3DC not configured")
        return self._config

    def _sensitive_values(self) -> list[str]:
        return self._config.commands() if self._config else []

    async def _execute(self, command: str | None, name: str) -> None:
        if not command or not command.strip():
            logger.info("e3dc_command_skipped", command=name, reason="not configured")
            return

        async with self._command_lock:
            if self._last_command_time is not None:
                elapsed = self._clock() - self._last_command_time
                if elapsed < self._min_interval:
                    wait = self._min_interval - elapsed
                    logger.info("e3dc_rate_limited", command=name, wait_seconds=round(wait, 1))
                    await self._sleep(wait)

            secrets = self._sensitive_values()
            logger.info("e3dc_command_started", command=name)
            try:
                result = await self._runner.run(command, timeout=self._timeout)
            except Exception as exc:
                # from None: the original exception may quote the command
                raise self._failure(
                    name, command, str(exc) or type(exc).__name__, secrets
                ) from None
            finally:
                self._last_command_time = self._clock()

            if not result.ok:
                detail = result.stderr or result.stdout or f"exit status {result.returncode}"
                raise self._failure(name, command, detail, secrets)

            self._log_output(name, "stdout", result.stdout, command, secrets)
            self._log_output(name, "stderr", result.stderr, command, secrets)
            logger.info("e3dc_command_succeeded", command=name)

    def _log_output(
        self, name: str, stream: str, text: str, command: str, secrets: list[str]
    ) -> None:
        if not text:
            return
        log = logger.info if stream == "stdout" else logger.warning
        if self._production:
            log("e3dc_command_output", command=name, stream=stream, chars=len(text))
            return
        sanitized = sanitize_output(text, command, secrets)
        log(
            "e3dc_command_output",
            command=name,
            stream=stream,
            chars=len(text),
            preview=preview(sanitized),
        )

    def _failure(
        self, name: str, command: str, detail: str, secrets: list[str]
    ) -> ExecutionError:
        """Log a failed command and build the error to raise."""
        if self._production:
            logger.error("e3dc_command_failed", command=name, chars=len(detail))
            return ExecutionError(name)
        sanitized = preview(sanitize_output(detail, command, secrets))
        logger.error("e3dc_command_failed", command=name, details=sanitized)
        return ExecutionError(name, f"Failed to execute {name}: {sanitized}")
