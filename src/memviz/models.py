"""Data models for memviz."""

from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CpuTimes:
    """Cumulative system-wide CPU time, in seconds."""

    user: float
    system: float
    idle: float
    iowait: float = 0.0
    nice: float = 0.0
    steal: float = 0.0


@dataclass(slots=True, frozen=True)
class MemoryCounters:
    """System-wide memory counters, in kilobytes."""

    total: int
    free: int
    buffers: int = 0
    cached: int = 0


@dataclass(slots=True, frozen=True)
class SystemCounters:
    """System totals captured at one instant."""

    cpu: CpuTimes
    memory: MemoryCounters


@dataclass(slots=True, frozen=True)
class ProcessCounters:
    """Immutable per-process counters captured at one instant."""

    pid: int
    name: str
    cpu_time: float  # Cumulative user + system seconds
    resident_pages: int
    shared_pages: int
    uid: int  # Effective uid


@dataclass(slots=True, frozen=True)
class CounterSnapshot:
    """System totals plus the process table read alongside them."""

    system: SystemCounters
    processes: Mapping[int, ProcessCounters]


@dataclass(slots=True)
class ProcessAggregate:
    """Running totals for every process sharing one command name."""

    name: str
    user: str
    cpu_percent: float = 0.0
    memory_mib: float = 0.0
    count: int = 0

    def add(self, cpu_percent: float, memory_mib: float) -> None:
        """Fold one process sample into the aggregate."""
        self.cpu_percent += cpu_percent
        self.memory_mib += memory_mib
        self.count += 1


@dataclass(slots=True, frozen=True)
class DisplayRow:
    """Formatted fields for one aggregate, ready for a table."""

    user: str
    name: str
    count: str
    cpu: str
    memory: str


@dataclass(slots=True, frozen=True)
class TimePoint:
    """A single value on a time series."""

    timestamp: float  # Epoch seconds
    value: float
