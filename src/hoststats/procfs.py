"""Counter source reading the Linux ``/proc`` filesystem directly."""

import os
from pathlib import Path

from hoststats.errors import CounterSourceError, FieldUnavailable, ProcessGone
from hoststats.models import CPUCounters, SwapMemory, VirtualMemory
from hoststats.source import CounterSource, ProcessHandle

try:
    CLOCK_TICKS = os.sysconf("SC_CLK_TCK")
except (AttributeError, ValueError, OSError):
    CLOCK_TICKS = 100


def _parse_kv(text: str) -> dict[str, list[str]]:
    """Parse ``Key: value [unit]`` lines into a dict keyed without the colon."""
    values: dict[str, list[str]] = {}
    for line in text.splitlines():
        fields = line.split()
        if len(fields) < 2 or not fields[0].endswith(":"):
            continue
        values[fields[0][:-1]] = fields[1:]
    return values


class ProcfsProcess(ProcessHandle):
    """Process handle backed by ``/proc/<pid>``."""

    def __init__(self, source: "ProcfsSource", pid: int) -> None:
        super().__init__(pid)
        self._source = source
        self._dir = source.root / str(pid)
        self._status: dict[str, list[str]] | None = None

    def _error(self, exc: OSError) -> Exception:
        # A vanished /proc/<pid> directory means the process exited.
        if not self._dir.is_dir():
            return ProcessGone(self.pid)
        return FieldUnavailable(f"pid {self.pid}: {exc}")

    def _read(self, name: str) -> str:
        try:
            return (self._dir / name).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise self._error(exc) from exc

    def _status_field(self, key: str) -> list[str] | None:
        if self._status is None:
            self._status = _parse_kv(self._read("status"))
        return self._status.get(key)

    def name(self) -> str:
        return self._read("comm").strip()

    def exe(self) -> str:
        try:
            return os.readlink(self._dir / "exe")
        except OSError as exc:
            raise self._error(exc) from exc

    def state(self) -> str:
        value = self._status_field("State")
        if not value:
            raise FieldUnavailable(f"pid {self.pid}: no State in status")
        return value[0]

    def num_threads(self) -> int:
        value = self._status_field("Threads")
        if not value:
            raise FieldUnavailable(f"pid {self.pid}: no Threads in status")
        try:
            return int(value[0])
        except ValueError as exc:
            raise FieldUnavailable(f"pid {self.pid}: bad Threads value") from exc

    def memory_rss(self) -> int:
        value = self._status_field("VmRSS")
        if not value:
            # Kernel threads have no resident memory of their own.
            return 0
        try:
            return int(value[0]) * 1024
        except ValueError as exc:
            raise FieldUnavailable(f"pid {self.pid}: bad VmRSS value") from exc

    def cpu_percent(self) -> float:
        """
        Average CPU utilisation over the lifetime of the process.

        This is the same figure ``ps`` reports: total user and system time
        divided by the time elapsed since the process started.
        """
        stat = self._read("stat")
        # comm is wrapped in parentheses and may itself contain spaces
        _, _, rest = stat.rpartition(")")
        fields = rest.split()
        try:
            utime = int(fields[11])
            stime = int(fields[12])
            start_ticks = int(fields[19])
        except (IndexError, ValueError) as exc:
            raise FieldUnavailable(f"pid {self.pid}: malformed stat") from exc

        try:
            uptime = self._source.uptime()
        except CounterSourceError as exc:
            raise FieldUnavailable(f"pid {self.pid}: uptime unavailable") from exc

        elapsed = uptime - start_ticks / CLOCK_TICKS
        if elapsed <= 0:
            return 0.0
        return 100.0 * (utime + stime) / CLOCK_TICKS / elapsed


class ProcfsSource(CounterSource):
    """
    Counter source that parses ``/proc`` text files.

    The root directory is configurable so the parser can be pointed at a
    captured or fabricated tree.
    """

    def __init__(self, root: str | os.PathLike[str] = "/proc") -> None:
        self.root = Path(root)

    def _read(self, name: str) -> str:
        try:
            return (self.root / name).read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise CounterSourceError(f"cannot read {self.root / name}: {exc}") from exc

    def cpu_times(self) -> CPUCounters:
        lines = self._read("stat").splitlines()
        fields = lines[0].split() if lines else []
        if len(fields) < 5 or fields[0] != "cpu":
            raise CounterSourceError("malformed aggregate cpu line in stat")
        try:
            # cpu user nice system idle ...
            return CPUCounters(
                user=int(fields[1]),
                system=int(fields[3]),
                idle=int(fields[4]),
            )
        except ValueError as exc:
            raise CounterSourceError("non-numeric cpu counters in stat") from exc

    def _cpuinfo_lines(self) -> list[str]:
        return self._read("cpuinfo").splitlines()

    def cpu_count(self) -> int:
        return sum(1 for line in self._cpuinfo_lines() if line.startswith("processor"))

    def cpu_model(self) -> str:
        for line in self._cpuinfo_lines():
            if line.startswith("model name"):
                _, _, value = line.partition(":")
                return value.strip()
        return ""

    def _meminfo(self) -> dict[str, int]:
        values: dict[str, int] = {}
        for key, fields in _parse_kv(self._read("meminfo")).items():
            try:
                values[key] = int(fields[0]) * 1024  # kB -> bytes
            except ValueError:
                continue
        return values

    def virtual_memory(self) -> VirtualMemory:
        info = self._meminfo()
        return VirtualMemory(
            total=info.get("MemTotal", 0),
            available=info.get("MemAvailable"),
            free=info.get("MemFree", 0),
            buffers=info.get("Buffers", 0),
            cached=info.get("Cached", 0),
        )

    def swap_memory(self) -> SwapMemory | None:
        info = self._meminfo()
        if "SwapTotal" not in info or "SwapFree" not in info:
            return None
        return SwapMemory(total=info["SwapTotal"], free=info["SwapFree"])

    def pids(self) -> list[int]:
        try:
            with os.scandir(self.root) as entries:
                return [
                    int(entry.name)
                    for entry in entries
                    if entry.name.isdigit() and entry.is_dir()
                ]
        except OSError as exc:
            raise CounterSourceError(f"cannot list {self.root}: {exc}") from exc

    def process(self, pid: int) -> ProcfsProcess:
        if not (self.root / str(pid)).is_dir():
            raise ProcessGone(pid)
        return ProcfsProcess(self, pid)

    def uptime(self) -> float:
        fields = self._read("uptime").split()
        if not fields:
            raise CounterSourceError("invalid uptime format")
        try:
            return float(fields[0])
        except ValueError as exc:
            raise CounterSourceError(f"invalid uptime value {fields[0]!r}") from exc
