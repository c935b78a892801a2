"""Data models for hoststats."""

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class CPUCounters:
    """Cumulative CPU time-in-state counters, in source-defined ticks."""

    user: int
    system: int
    idle: int

    @property
    def total(self) -> int:
        return self.user + self.system + self.idle


@dataclass(slots=True, frozen=True)
class VirtualMemory:
    """Raw virtual memory counters in bytes."""

    total: int
    available: int | None  # None when the source cannot report it
    free: int = 0
    buffers: int = 0
    cached: int = 0


@dataclass(slots=True, frozen=True)
class SwapMemory:
    """Raw swap counters in bytes."""

    total: int
    free: int


@dataclass(slots=True, frozen=True)
class CPUStats:
    """Immutable CPU sample."""

    usage: float  # 0.0 - 100.0, 0.0 on the first sample
    cores: int
    model_name: str
    user: int
    system: int
    idle: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "usage": self.usage,
            "cores": self.cores,
            "modelName": self.model_name,
            "user": self.user,
            "system": self.system,
            "idle": self.idle,
        }


@dataclass(slots=True, frozen=True)
class MemoryStats:
    """Immutable memory sample. All sizes in bytes."""

    total: int
    available: int
    used: int
    used_percent: float
    free: int
    buffers: int
    cached: int
    swap_total: int
    swap_free: int
    swap_used: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "available": self.available,
            "used": self.used,
            "usedPercent": self.used_percent,
            "free": self.free,
            "buffers": self.buffers,
            "cached": self.cached,
            "swapTotal": self.swap_total,
            "swapFree": self.swap_free,
            "swapUsed": self.swap_used,
        }


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    """Immutable snapshot of a process state."""

    pid: int
    name: str
    state: str  # 'R', 'S', 'Z', 'D', etc.
    cpu: float
    memory: int  # RSS bytes
    threads: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "name": self.name,
            "state": self.state,
            "cpu": self.cpu,
            "memory": self.memory,
            "threads": self.threads,
        }


@dataclass(slots=True, frozen=True)
class SystemStats:
    """Point-in-time snapshot of overall system state."""

    cpu: CPUStats
    memory: MemoryStats
    processes: tuple[ProcessInfo, ...]
    uptime: float  # Seconds since boot

    def to_dict(self) -> dict[str, Any]:
        """Render the snapshot as a JSON-ready mapping."""
        return {
            "cpu": self.cpu.to_dict(),
            "memory": self.memory.to_dict(),
            "processes": [proc.to_dict() for proc in self.processes],
            "uptime": self.uptime,
        }
