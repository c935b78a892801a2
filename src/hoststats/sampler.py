"""Snapshot assembly for hoststats."""

import logging
import threading
from collections.abc import Callable
from typing import TypeVar

from hoststats.config import SamplerConfig, create_source, get_config
from hoststats.cpu import CPUDeltaEngine
from hoststats.errors import (
    CPUSampleError,
    HostStatsError,
    MemorySampleError,
    ProcessListError,
    SamplingError,
    UptimeSampleError,
)
from hoststats.memory import sample_memory
from hoststats.models import SystemStats
from hoststats.processes import ProcessEnumerator
from hoststats.source import CounterSource

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run(error_cls: type[SamplingError], read: Callable[[], T]) -> T:
    """Run one sub-sample, wrapping hard failures in ``error_cls``."""
    try:
        return read()
    except (HostStatsError, OSError, ValueError) as exc:
        error = error_cls()
        logger.warning("%s: %s", error, exc)
        raise error from exc


class SystemSampler:
    """
    Samples CPU, memory, processes and uptime into one ``SystemStats``.

    The sampler owns the CPU delta engine, so the usage reported by
    ``get_system_stats()`` is measured since the previous call on the
    same sampler. Sub-samples always run in the order CPU, memory,
    processes, uptime; the first one that fails aborts the snapshot with
    a ``SamplingError`` subclass naming it.
    """

    def __init__(
        self,
        source: CounterSource | None = None,
        config: SamplerConfig | None = None,
    ) -> None:
        self.config = config if config is not None else SamplerConfig()
        self.source = source if source is not None else create_source(self.config)
        self.cpu = CPUDeltaEngine(self.source)
        self.processes = ProcessEnumerator(
            self.source,
            limit=self.config.process_limit,
            ranking=self.config.ranking,
            workers=self.config.workers,
        )

    def get_system_stats(self, cancel: threading.Event | None = None) -> SystemStats:
        """
        Take one snapshot of the system.

        Args:
            cancel: Optional event that aborts the remaining per-process
                reads; processes already read are still reported.

        Raises:
            CPUSampleError, MemorySampleError, ProcessListError,
            UptimeSampleError: if the corresponding counters cannot be read.
        """
        cpu = _run(CPUSampleError, self.cpu.sample)
        memory = _run(MemorySampleError, lambda: sample_memory(self.source))
        processes = _run(ProcessListError, lambda: self.processes.sample(cancel))
        uptime = _run(UptimeSampleError, self.source.uptime)

        return SystemStats(cpu=cpu, memory=memory, processes=processes, uptime=uptime)


_default_sampler: SystemSampler | None = None
_default_lock = threading.Lock()


def get_system_stats() -> SystemStats:
    """Snapshot the local host using a process-wide default sampler."""
    global _default_sampler
    with _default_lock:
        if _default_sampler is None:
            _default_sampler = SystemSampler(config=get_config())
        sampler = _default_sampler
    return sampler.get_system_stats()
