"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

# Project root
PROJECT_ROOT = Path(__file__).parent.parent

# Add src to the Python path (development without install)
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from archive_runner.config import Config  # noqa: E402
from archive_runner.runtime.process_runner import ProcessRunner  # noqa: E402

FAKE_ARCHIVER = PROJECT_ROOT / "tests" / "fixtures" / "fake_archiver.py"


@dataclass
class SpyRunner(ProcessRunner):
    """ProcessRunner that records started processes and termination requests."""

    processes: list = field(default_factory=list)
    termination_requests: int = 0

    async def start(self, spec):
        process = await super().start(spec)
        self.processes.append(process)
        return process

    def request_termination(self, process) -> None:
        self.termination_requests += 1
        super().request_termination(process)


def archiver_args(*args: str) -> list[str]:
    """Positional args that run the fake archiver under the current interpreter."""
    return [str(FAKE_ARCHIVER), *args]


@pytest.fixture
def python_exe() -> str:
    """Interpreter used as the archiver command."""
    return sys.executable


@pytest.fixture
def config() -> Config:
    """Default configuration, independent of ARUN_* variables."""
    return Config(term_timeout=0.5, kill_timeout=0.3)


@pytest.fixture
def spy_runner() -> SpyRunner:
    """SpyRunner with short timeouts for testing."""
    return SpyRunner(term_timeout=0.5, kill_timeout=0.3)
