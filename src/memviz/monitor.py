"""Sampling passes over a snapshot source."""

from collections.abc import Callable
from types import MappingProxyType
from typing import Protocol

import structlog

from memviz.aggregate import aggregate_processes, rank_aggregates
from memviz.deltas import total_cpu_delta, used_memory_percent
from memviz.formatting import format_row
from memviz.models import CounterSnapshot, DisplayRow, ProcessCounters, SystemCounters

log = structlog.get_logger()


class SnapshotSource(Protocol):
    """What a sampling pass needs from a counter source."""

    page_size: int

    def capture_system_totals(self) -> SystemCounters: ...

    def capture_all_processes(self) -> dict[int, ProcessCounters]: ...


def capture_pass(source: SnapshotSource) -> tuple[CounterSnapshot, CounterSnapshot]:
    """
    Take the two snapshots a CPU rate is derived from.

    Order: system totals, process table, process table again, system totals.
    The second enumeration picks up processes spawned since the first one.
    Captures run back-to-back; their own cost is the measured interval.
    """
    system_before = source.capture_system_totals()
    procs_before = source.capture_all_processes()

    procs_after = source.capture_all_processes()
    system_after = source.capture_system_totals()

    before = CounterSnapshot(system=system_before, processes=MappingProxyType(procs_before))
    after = CounterSnapshot(system=system_after, processes=MappingProxyType(procs_after))
    return before, after


def sample_process_rows(
    source: SnapshotSource,
    resolve_user: Callable[[int], str],
) -> list[DisplayRow]:
    """Run one full process pass and return ranked, formatted rows."""
    before, after = capture_pass(source)
    total_delta = total_cpu_delta(before.system.cpu, after.system.cpu)

    aggregates = aggregate_processes(
        before,
        after,
        total_delta,
        resolve_user,
        page_size=source.page_size,
    )
    log.debug(
        "process_pass",
        processes=len(after.processes),
        aggregates=len(aggregates),
        total_delta=total_delta,
    )
    return [format_row(agg) for agg in rank_aggregates(aggregates.values())]


def sample_used_memory(source: SnapshotSource) -> float:
    """Read memory counters once and return the used percentage."""
    return used_memory_percent(source.capture_system_totals().memory)
