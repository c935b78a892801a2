"""Exceptions raised by hoststats."""


class HostStatsError(Exception):
    """Base class for all hoststats errors."""


class CounterSourceError(HostStatsError):
    """A counter could not be read from the source at all."""


class ProcessGone(HostStatsError):
    """The process exited (or was never there) while it was being read."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"process {pid} no longer exists")
        self.pid = pid


class FieldUnavailable(HostStatsError):
    """A single per-process field could not be read."""


class SamplingError(HostStatsError):
    """A sub-sample of a system snapshot failed."""

    component = ""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or f"failed to get {self.component} stats")


class CPUSampleError(SamplingError):
    component = "cpu"


class MemorySampleError(SamplingError):
    component = "memory"


class ProcessListError(SamplingError):
    component = "processes"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "failed to get process list")


class UptimeSampleError(SamplingError):
    component = "uptime"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "failed to get uptime")
