"""Counter source interface for hoststats.

A counter source is where raw, mostly cumulative, OS counters come from.
The sampler core only talks to this interface, so reading ``/proc``
directly and going through psutil are interchangeable.
"""

import abc

from hoststats.models import CPUCounters, SwapMemory, VirtualMemory


class ProcessHandle(abc.ABC):
    """
    Access to one process's counters.

    Every method may raise ``ProcessGone`` if the process has exited, or
    ``FieldUnavailable`` if only that particular field cannot be read.
    """

    def __init__(self, pid: int) -> None:
        self.pid = pid

    @abc.abstractmethod
    def name(self) -> str:
        """Short process name."""

    @abc.abstractmethod
    def exe(self) -> str:
        """Absolute path of the process executable."""

    @abc.abstractmethod
    def state(self) -> str:
        """Single-letter (or short token) scheduler state."""

    @abc.abstractmethod
    def cpu_percent(self) -> float:
        """CPU utilisation of the process in percent."""

    @abc.abstractmethod
    def memory_rss(self) -> int:
        """Resident set size in bytes."""

    @abc.abstractmethod
    def num_threads(self) -> int:
        """Number of threads."""


class CounterSource(abc.ABC):
    """Abstract provider of raw CPU, memory, process and uptime counters."""

    @abc.abstractmethod
    def cpu_times(self) -> CPUCounters:
        """Cumulative user/system/idle ticks for all CPUs combined."""

    @abc.abstractmethod
    def cpu_count(self) -> int:
        """Number of logical CPUs."""

    @abc.abstractmethod
    def cpu_model(self) -> str:
        """CPU model identifier, empty if unknown."""

    @abc.abstractmethod
    def virtual_memory(self) -> VirtualMemory:
        """Virtual memory counters."""

    @abc.abstractmethod
    def swap_memory(self) -> SwapMemory | None:
        """Swap counters, or None if the host does not report them."""

    @abc.abstractmethod
    def pids(self) -> list[int]:
        """Identities of all currently known processes."""

    @abc.abstractmethod
    def process(self, pid: int) -> ProcessHandle:
        """Return a handle for ``pid``; raises ``ProcessGone`` if absent."""

    @abc.abstractmethod
    def uptime(self) -> float:
        """Seconds since boot."""
