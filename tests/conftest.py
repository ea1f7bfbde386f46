"""Shared fixtures: isolated data dirs, a clean log sink, fake clock/runner."""

from __future__ import annotations

import asyncio

import pytest

from shared.log import LogSettings, log_sink

from e3dc import CommandResult, CommandRunner


class FakeClock:
    """Monotonic clock + sleep that only move when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeRunner(CommandRunner):
    """Records commands instead of spawning processes."""

    def __init__(self, clock: FakeClock, duration: float = 0.5) -> None:
        self.clock = clock
        self.duration = duration
        self.calls: list[tuple[str, float]] = []  # (command, start time)
        self.result = CommandResult(stdout="", stderr="", returncode=0)
        self.error: Exception | None = None

    async def run(self, command: str, timeout: float | None = None) -> CommandResult:
        self.calls.append((command, self.clock()))
        await asyncio.sleep(0)
        self.clock.advance(self.duration)
        if self.error is not None:
            raise self.error
        return self.result

    @property
    def start_times(self) -> list[float]:
        return [start for _command, start in self.calls]


@pytest.fixture(autouse=True)
def clean_log_sink():
    log_sink.clear()
    log_sink.save_settings(LogSettings(level="debug"))
    yield log_sink
    log_sink.clear()


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_runner(fake_clock: FakeClock) -> FakeRunner:
    return FakeRunner(fake_clock)


@pytest.fixture
def log_messages():
    """Messages currently in the log sink, optionally filtered by level."""

    def _messages(level: str | None = None) -> list[str]:
        return [e.message for e in log_sink.entries() if level is None or e.level == level]

    return _messages
