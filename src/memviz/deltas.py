"""Rate calculations over pairs of cumulative counter snapshots.

Every function here degrades to 0.0 on degenerate input (zero-length
intervals, counters that went backwards, empty totals) instead of raising,
so a single odd sample never aborts a sampling pass.
"""

from memviz.models import CpuTimes, MemoryCounters

MIB = 1024 * 1024


def total_cpu_delta(before: CpuTimes, after: CpuTimes) -> float:
    """Total CPU seconds elapsed across all states between two captures."""
    return (
        (after.user - before.user)
        + (after.system - before.system)
        + (after.idle - before.idle)
        + (after.iowait - before.iowait)
        + (after.nice - before.nice)
        + (after.steal - before.steal)
    )


def cpu_percent(before_time: float | None, after_time: float, total_delta: float) -> float:
    """
    Share of total CPU time a process used over the interval.

    Args:
        before_time: Process cumulative CPU seconds at the first capture, or None
            if the process was not seen then.
        after_time: Process cumulative CPU seconds at the second capture.
        total_delta: System-wide CPU seconds elapsed, from total_cpu_delta().

    Returns:
        Percentage in [0.0, 100.0]. Exactly 0.0 when there is no prior value,
        when total_delta <= 0, or when the process delta is negative.
    """
    if before_time is None or total_delta <= 0:
        return 0.0

    percent = (after_time - before_time) / total_delta * 100.0
    if percent <= 0:
        return 0.0
    return min(percent, 100.0)


def private_memory_mib(resident_pages: int, shared_pages: int, page_size: int = 4096) -> float:
    """Resident minus shared pages, in MiB. Never negative."""
    private_pages = max(resident_pages - shared_pages, 0)
    return private_pages * page_size / MIB


def used_memory_percent(memory: MemoryCounters) -> float:
    """Percent of RAM not free, buffered or cached."""
    if memory.total <= 0:
        return 0.0
    used = memory.total - memory.free - memory.buffers - memory.cached
    return min(max(used / memory.total * 100.0, 0.0), 100.0)
