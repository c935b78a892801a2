"""Shared fixtures: a scripted, in-memory counter source."""

import os

import pytest

from hoststats.config import get_config
from hoststats.errors import CounterSourceError, FieldUnavailable, ProcessGone
from hoststats.models import CPUCounters, SwapMemory, VirtualMemory
from hoststats.source import CounterSource, ProcessHandle

GiB = 1024**3


class FakeProcess(ProcessHandle):
    """Process handle returning fixed values, with per-field failures."""

    def __init__(
        self,
        pid: int,
        name: str = "proc",
        exe: str = "",
        state: str = "S",
        cpu: float = 0.0,
        rss: int = 0,
        threads: int = 1,
        broken: tuple[str, ...] = (),
        gone: bool = False,
    ) -> None:
        super().__init__(pid)
        self._values = {
            "name": name,
            "exe": exe,
            "state": state,
            "cpu_percent": cpu,
            "memory_rss": rss,
            "num_threads": threads,
        }
        self.broken = set(broken)
        self.gone = gone
        self.reads: list[str] = []

    def _get(self, field: str):
        self.reads.append(field)
        if self.gone:
            raise ProcessGone(self.pid)
        if field in self.broken:
            raise FieldUnavailable(f"{field} unavailable for {self.pid}")
        return self._values[field]

    def name(self) -> str:
        return self._get("name")

    def exe(self) -> str:
        return self._get("exe")

    def state(self) -> str:
        return self._get("state")

    def cpu_percent(self) -> float:
        return self._get("cpu_percent")

    def memory_rss(self) -> int:
        return self._get("memory_rss")

    def num_threads(self) -> int:
        return self._get("num_threads")


class FakeSource(CounterSource):
    """
    Counter source driven by a script.

    ``cpu_script`` is consumed one reading per ``cpu_times()`` call; the
    last reading repeats once the script runs out. Names in ``failing``
    make the matching capability raise ``CounterSourceError``.
    """

    def __init__(
        self,
        cpu_script: list[CPUCounters] | None = None,
        cores: int = 4,
        model: str = "Test CPU @ 3.00GHz",
        vm: VirtualMemory | None = None,
        swap: SwapMemory | None = SwapMemory(total=2 * GiB, free=GiB),
        processes: list[FakeProcess] | None = None,
        uptime: float = 3600.0,
        failing: tuple[str, ...] = (),
    ) -> None:
        self.cpu_script = list(cpu_script or [CPUCounters(100, 50, 850)])
        self.cores = cores
        self.model = model
        self.vm = vm or VirtualMemory(
            total=16 * GiB, available=12 * GiB, free=8 * GiB, buffers=GiB, cached=2 * GiB
        )
        self.swap = swap
        self.procs = {proc.pid: proc for proc in processes or []}
        self.boot_uptime = uptime
        self.failing = set(failing)
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise CounterSourceError(f"{name} unavailable")

    def cpu_times(self) -> CPUCounters:
        self._check("cpu_times")
        if len(self.cpu_script) > 1:
            return self.cpu_script.pop(0)
        return self.cpu_script[0]

    def cpu_count(self) -> int:
        self._check("cpu_count")
        return self.cores

    def cpu_model(self) -> str:
        self._check("cpu_model")
        return self.model

    def virtual_memory(self) -> VirtualMemory:
        self._check("virtual_memory")
        return self.vm

    def swap_memory(self) -> SwapMemory | None:
        self._check("swap_memory")
        return self.swap

    def pids(self) -> list[int]:
        self._check("pids")
        return list(self.procs)

    def process(self, pid: int) -> FakeProcess:
        if pid not in self.procs:
            raise ProcessGone(pid)
        return self.procs[pid]

    def uptime(self) -> float:
        self._check("uptime")
        return self.boot_uptime


@pytest.fixture
def source() -> FakeSource:
    """A fake source with a handful of healthy processes."""
    return FakeSource(
        processes=[
            FakeProcess(1, name="init", state="S", rss=10_000, threads=1),
            FakeProcess(42, name="python", state="R", cpu=12.5, rss=50_000, threads=4),
            FakeProcess(99, name="bash", state="S", rss=20_000, threads=1),
        ]
    )


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    """Keep HOSTSTATS_* settings from the outer environment out of tests."""
    for name in list(os.environ):
        if name.startswith("HOSTSTATS_"):
            monkeypatch.delenv(name)
    get_config.cache_clear()
    yield
    get_config.cache_clear()
