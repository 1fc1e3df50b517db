"""Snapshot source reading OS accounting counters through psutil."""

import os
import pwd

import psutil
import structlog

from memviz.models import CpuTimes, MemoryCounters, ProcessCounters, SystemCounters

log = structlog.get_logger()

_PROCESS_ATTRS = ["pid", "name", "cpu_times", "memory_info", "uids"]


class SourceError(Exception):
    """System-wide counters could not be read."""


class SourceUnavailableError(SourceError):
    """The accounting interface is missing entirely."""


def lookup_username(uid: int) -> str:
    """
    Resolve a numeric uid to an account name.

    Raises:
        KeyError: The uid has no matching account.
    """
    return pwd.getpwuid(uid).pw_name


def use_procfs(procfs_path: str) -> None:
    """
    Point psutil at a proc filesystem mount.

    psutil keeps this path process-wide, so it is set once at startup and
    applies to every source. Ignored outside Linux.
    """
    if psutil.LINUX:
        psutil.PROCFS_PATH = procfs_path


class ProcfsSource:
    """
    Reads system totals and the process table via psutil.

    Processes that exit mid-read, deny access, or are zombies are skipped
    rather than failing the whole capture.
    """

    def __init__(self, procfs_path: str = "/proc") -> None:
        """
        Initialize the ProcfsSource.

        Args:
            procfs_path: Mount point of the proc filesystem, used in diagnostics.
                See use_procfs() for pointing psutil at it.
        """
        self.procfs_path = procfs_path
        self.page_size: int = os.sysconf("SC_PAGE_SIZE")

    def probe(self) -> None:
        """
        Check once that system counters can be read at all.

        Raises:
            SourceUnavailableError: The accounting interface is unavailable.
        """
        try:
            self.capture_system_totals()
        except SourceError as e:
            log.error("source_unavailable", procfs_path=self.procfs_path, error=str(e))
            raise SourceUnavailableError(
                f"cannot read system counters from {self.procfs_path}: {e}"
            ) from e

    def capture_system_totals(self) -> SystemCounters:
        """Read system-wide CPU times and memory counters."""
        try:
            times = psutil.cpu_times()
            mem = psutil.virtual_memory()
        except OSError as e:
            raise SourceError(str(e)) from e

        # Fields not reported on every platform default to zero
        cpu = CpuTimes(
            user=times.user,
            system=times.system,
            idle=times.idle,
            iowait=getattr(times, "iowait", 0.0),
            nice=getattr(times, "nice", 0.0),
            steal=getattr(times, "steal", 0.0),
        )
        memory = MemoryCounters(
            total=mem.total // 1024,
            free=mem.free // 1024,
            buffers=getattr(mem, "buffers", 0) // 1024,
            cached=getattr(mem, "cached", 0) // 1024,
        )
        return SystemCounters(cpu=cpu, memory=memory)

    def capture_all_processes(self) -> dict[int, ProcessCounters]:
        """
        Read counters for every process that can be inspected.

        Uses psutil.process_iter() with a fixed attribute list; any process
        missing one of those attributes is skipped.
        """
        processes: dict[int, ProcessCounters] = {}

        try:
            procs = psutil.process_iter(attrs=_PROCESS_ATTRS, ad_value=None)
            for proc in procs:
                counters = self._read_process(proc)
                if counters is not None:
                    processes[counters.pid] = counters
        except OSError as e:
            raise SourceError(str(e)) from e

        return processes

    def _read_process(self, proc: psutil.Process) -> ProcessCounters | None:
        """Build counters for one process, or None if it cannot be read."""
        # process_iter has already read the attributes, with None for denied ones
        info = proc.info
        cpu_times = info.get("cpu_times")
        mem_info = info.get("memory_info")
        uids = info.get("uids")
        name = info.get("name")
        if cpu_times is None or mem_info is None or uids is None or not name:
            log.debug("process_skipped", pid=info.get("pid"), reason="incomplete")
            return None

        return ProcessCounters(
            pid=info["pid"],
            name=name,
            cpu_time=cpu_times.user + cpu_times.system,
            resident_pages=mem_info.rss // self.page_size,
            shared_pages=getattr(mem_info, "shared", 0) // self.page_size,
            uid=uids.effective,
        )
