"""Shared test fixtures for memviz."""

import logging

import pytest
import structlog

from memviz.models import (
    CounterSnapshot,
    CpuTimes,
    MemoryCounters,
    ProcessCounters,
    SystemCounters,
)
from memviz.source import SourceError

USERS = {0: "root", 1000: "alice", 1001: "bob"}


def resolve_user(uid: int) -> str:
    """Username lookup over USERS; unknown uids raise KeyError like pwd."""
    return USERS[uid]


def make_system(
    busy: float = 0.0,
    idle: float = 0.0,
    total: int = 8_000_000,
    free: int = 4_000_000,
    buffers: int = 0,
    cached: int = 0,
) -> SystemCounters:
    """Create SystemCounters; busy CPU seconds are all counted as user time."""
    return SystemCounters(
        cpu=CpuTimes(user=busy, system=0.0, idle=idle),
        memory=MemoryCounters(total=total, free=free, buffers=buffers, cached=cached),
    )


def make_proc(
    pid: int,
    name: str = "proc",
    cpu_time: float = 0.0,
    resident: int = 0,
    shared: int = 0,
    uid: int = 1000,
) -> ProcessCounters:
    """Create ProcessCounters with sensible defaults for testing."""
    return ProcessCounters(
        pid=pid,
        name=name,
        cpu_time=cpu_time,
        resident_pages=resident,
        shared_pages=shared,
        uid=uid,
    )


def make_snapshot(system: SystemCounters, *procs: ProcessCounters) -> CounterSnapshot:
    """Create a CounterSnapshot from a list of processes."""
    return CounterSnapshot(system=system, processes={p.pid: p for p in procs})


class FakeSource:
    """
    In-memory snapshot source.

    Each capture returns the next scripted value; the last one repeats once
    the script runs out. Every call is recorded in `calls`.
    """

    page_size = 4096

    def __init__(
        self,
        systems: list[SystemCounters] | None = None,
        process_tables: list[dict[int, ProcessCounters]] | None = None,
    ) -> None:
        self.systems = list(systems or [make_system()])
        self.process_tables = list(process_tables or [{}])
        self.calls: list[str] = []
        self.fail = False

    def capture_system_totals(self) -> SystemCounters:
        self.calls.append("system")
        if self.fail:
            raise SourceError("counters unavailable")
        return self.systems.pop(0) if len(self.systems) > 1 else self.systems[0]

    def capture_all_processes(self) -> dict[int, ProcessCounters]:
        self.calls.append("processes")
        if self.fail:
            raise SourceError("counters unavailable")
        if len(self.process_tables) > 1:
            return self.process_tables.pop(0)
        return self.process_tables[0]


@pytest.fixture
def busy_source() -> FakeSource:
    """
    A source scripted for one process pass.

    The system spends 1000 CPU seconds between the two system reads; firefox
    (two processes) and sshd (one, owned by root) accumulate CPU time and
    hold private memory.
    """
    before = {
        1: make_proc(1, "sshd", cpu_time=10.0, resident=500, shared=100, uid=0),
        2: make_proc(2, "firefox", cpu_time=100.0, resident=1000, shared=400),
        3: make_proc(3, "firefox", cpu_time=50.0, resident=2000, shared=0),
    }
    after = {
        1: make_proc(1, "sshd", cpu_time=20.0, resident=500, shared=100, uid=0),
        2: make_proc(2, "firefox", cpu_time=350.0, resident=1000, shared=400),
        3: make_proc(3, "firefox", cpu_time=100.0, resident=2000, shared=0),
    }
    return FakeSource(
        systems=[make_system(busy=0.0, idle=0.0), make_system(busy=400.0, idle=600.0)],
        process_tables=[before, after],
    )


@pytest.fixture
def restore_logging():
    """Put structlog and the stdlib root logger back after the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


@pytest.fixture
def isolated_home(tmp_path, monkeypatch, restore_logging):
    """Point the home directory, and so config and log paths, at tmp_path."""
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path
