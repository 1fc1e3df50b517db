"""Group per-process samples by command name and rank the groups."""

from collections.abc import Callable, Iterable

import structlog

from memviz.deltas import cpu_percent, private_memory_mib
from memviz.models import CounterSnapshot, ProcessAggregate

log = structlog.get_logger()


def aggregate_processes(
    before: CounterSnapshot,
    after: CounterSnapshot,
    total_delta: float,
    resolve_user: Callable[[int], str],
    page_size: int = 4096,
) -> dict[str, ProcessAggregate]:
    """
    Build one aggregate per command name from a pair of snapshots.

    Every process in the later snapshot is folded in. A process whose owner
    cannot be resolved is dropped. A fresh mapping is built on every call, so
    processes that have exited never linger.

    Args:
        before: Snapshot supplying each pid's starting CPU time.
        after: Snapshot supplying the processes to aggregate.
        total_delta: System-wide CPU seconds elapsed between the snapshots.
        resolve_user: Maps a uid to a username, raising KeyError if unknown.
        page_size: Bytes per memory page.
    """
    aggregates: dict[str, ProcessAggregate] = {}

    for proc in after.processes.values():
        try:
            user = resolve_user(proc.uid)
        except KeyError:
            log.debug("process_skipped", pid=proc.pid, reason="unknown_uid", uid=proc.uid)
            continue

        # A pid that changed command name in between is a different process
        prev = before.processes.get(proc.pid)
        prev_time = prev.cpu_time if prev is not None and prev.name == proc.name else None

        agg = aggregates.get(proc.name)
        if agg is None:
            agg = aggregates[proc.name] = ProcessAggregate(name=proc.name, user=user)
        agg.add(
            cpu_percent(prev_time, proc.cpu_time, total_delta),
            private_memory_mib(proc.resident_pages, proc.shared_pages, page_size),
        )

    return aggregates


def rank_aggregates(aggregates: Iterable[ProcessAggregate]) -> list[ProcessAggregate]:
    """Order aggregates by private memory, largest first."""
    return sorted(aggregates, key=lambda agg: agg.memory_mib, reverse=True)
