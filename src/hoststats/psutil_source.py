"""Counter source backed by psutil."""

import logging
import platform
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager

import psutil

from hoststats.errors import CounterSourceError, FieldUnavailable, ProcessGone
from hoststats.models import CPUCounters, SwapMemory, VirtualMemory
from hoststats.procfs import ProcfsSource
from hoststats.source import CounterSource, ProcessHandle

logger = logging.getLogger(__name__)

# psutil reports CPU times in seconds; counters are kept in 1/100 s ticks
# so they line up with USER_HZ on Linux.
TICKS_PER_SECOND = 100

# psutil status names -> ps(1) style state letters
STATUS_LETTERS = {
    psutil.STATUS_RUNNING: "R",
    psutil.STATUS_SLEEPING: "S",
    psutil.STATUS_DISK_SLEEP: "D",
    psutil.STATUS_STOPPED: "T",
    psutil.STATUS_TRACING_STOP: "t",
    psutil.STATUS_ZOMBIE: "Z",
    psutil.STATUS_DEAD: "X",
    psutil.STATUS_WAKING: "W",
    psutil.STATUS_IDLE: "I",
    psutil.STATUS_LOCKED: "L",
    psutil.STATUS_WAITING: "W",
    psutil.STATUS_PARKED: "P",
}


@contextmanager
def _translate_errors(pid: int) -> Iterator[None]:
    """Map psutil per-process exceptions onto hoststats ones."""
    try:
        yield
    except psutil.ZombieProcess as exc:
        # Still in the process table, just not fully readable.
        raise FieldUnavailable(f"pid {pid} is a zombie") from exc
    except psutil.NoSuchProcess as exc:
        raise ProcessGone(pid) from exc
    except psutil.AccessDenied as exc:
        raise FieldUnavailable(f"access denied for pid {pid}") from exc


class PsutilProcess(ProcessHandle):
    """Process handle wrapping a (cached) ``psutil.Process``."""

    def __init__(self, proc: psutil.Process) -> None:
        super().__init__(proc.pid)
        self._proc = proc

    def name(self) -> str:
        with _translate_errors(self.pid):
            return self._proc.name()

    def exe(self) -> str:
        with _translate_errors(self.pid):
            return self._proc.exe()

    def state(self) -> str:
        with _translate_errors(self.pid):
            status = self._proc.status()
        return STATUS_LETTERS.get(status, status)

    def cpu_percent(self) -> float:
        # Non-blocking; compares against the previous call on the same object
        with _translate_errors(self.pid):
            return self._proc.cpu_percent(interval=None)

    def memory_rss(self) -> int:
        with _translate_errors(self.pid):
            return self._proc.memory_info().rss

    def num_threads(self) -> int:
        with _translate_errors(self.pid):
            return self._proc.num_threads()


class PsutilSource(CounterSource):
    """
    Counter source that collects data using psutil.

    ``psutil.Process`` objects are cached between calls so per-process
    CPU percentages have a baseline to compare against, the same way
    ``psutil.process_iter()`` does it.
    """

    def __init__(self) -> None:
        self._procs: dict[int, psutil.Process] = {}
        self._lock = threading.Lock()

    def cpu_times(self) -> CPUCounters:
        try:
            times = psutil.cpu_times()
        except (OSError, psutil.Error) as exc:
            raise CounterSourceError(f"cannot read cpu times: {exc}") from exc
        return CPUCounters(
            user=int(times.user * TICKS_PER_SECOND),
            system=int(times.system * TICKS_PER_SECOND),
            idle=int(times.idle * TICKS_PER_SECOND),
        )

    def cpu_count(self) -> int:
        return psutil.cpu_count(logical=True) or 0

    def cpu_model(self) -> str:
        # psutil has no model API; Linux reports it in /proc/cpuinfo
        if psutil.LINUX:
            try:
                model = ProcfsSource().cpu_model()
            except CounterSourceError as exc:
                logger.debug("cannot read cpuinfo: %s", exc)
            else:
                if model:
                    return model
        return platform.processor() or ""

    def virtual_memory(self) -> VirtualMemory:
        try:
            mem = psutil.virtual_memory()
        except (OSError, psutil.Error) as exc:
            raise CounterSourceError(f"cannot read virtual memory: {exc}") from exc
        return VirtualMemory(
            total=mem.total,
            available=mem.available,
            free=mem.free,
            buffers=getattr(mem, "buffers", 0),
            cached=getattr(mem, "cached", 0),
        )

    def swap_memory(self) -> SwapMemory | None:
        try:
            swap = psutil.swap_memory()
        except (OSError, RuntimeError, psutil.Error) as exc:
            logger.debug("swap counters unavailable: %s", exc)
            return None
        return SwapMemory(total=swap.total, free=swap.free)

    def pids(self) -> list[int]:
        try:
            pids = psutil.pids()
        except (OSError, psutil.Error) as exc:
            raise CounterSourceError(f"cannot list processes: {exc}") from exc

        # Drop cached handles for processes that are gone
        live = set(pids)
        with self._lock:
            for pid in [pid for pid in self._procs if pid not in live]:
                del self._procs[pid]
        return pids

    def process(self, pid: int) -> PsutilProcess:
        with self._lock:
            proc = self._procs.get(pid)
        # is_running() also guards against the pid having been reused
        if proc is None or not proc.is_running():
            with _translate_errors(pid):
                proc = psutil.Process(pid)
            with self._lock:
                self._procs[pid] = proc
        return PsutilProcess(proc)

    def uptime(self) -> float:
        try:
            boot_time = psutil.boot_time()
        except (OSError, psutil.Error) as exc:
            raise CounterSourceError(f"cannot read boot time: {exc}") from exc
        return time.time() - boot_time
