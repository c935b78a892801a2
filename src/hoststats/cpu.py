"""CPU usage derived from cumulative CPU time counters."""

import logging
import threading
import time

from hoststats.errors import HostStatsError
from hoststats.models import CPUCounters, CPUStats
from hoststats.source import CounterSource

logger = logging.getLogger(__name__)


def usage_percent(previous: CPUCounters | None, current: CPUCounters) -> float:
    """
    Busy percentage between two cumulative readings.

    Returns 0.0 when there is no previous reading, when no time elapsed,
    or when the counters went backwards (source restarted or wrapped).
    """
    if previous is None:
        return 0.0

    total_delta = current.total - previous.total
    idle_delta = current.idle - previous.idle
    if total_delta <= 0 or idle_delta < 0 or idle_delta > total_delta:
        return 0.0

    return 100.0 * (total_delta - idle_delta) / total_delta


class CPUDeltaEngine:
    """
    Turns successive CPU counter readings into a usage percentage.

    The engine keeps exactly one previous reading and the wall-clock time
    it was taken. Every call to ``sample()`` reads fresh counters, computes
    usage against the retained reading and then replaces it, all while
    holding a lock so overlapping callers never see a half-updated pair.
    """

    def __init__(self, source: CounterSource) -> None:
        self._source = source
        self._lock = threading.Lock()
        self._previous: CPUCounters | None = None
        self._previous_time: float | None = None

    @property
    def previous(self) -> CPUCounters | None:
        """The counters retained from the last sample."""
        return self._previous

    @property
    def previous_sampled_at(self) -> float | None:
        """Wall-clock time of the last sample."""
        return self._previous_time

    def reset(self) -> None:
        """Forget the retained reading; the next sample reports 0% usage."""
        with self._lock:
            self._previous = None
            self._previous_time = None

    def sample(self) -> CPUStats:
        """
        Take one CPU sample.

        Raises whatever the source raises if the tick counters cannot be
        read; the retained reading is left untouched in that case. Core
        count and model name are best effort.
        """
        with self._lock:
            current = self._source.cpu_times()
            if self._previous is None:
                logger.debug("first CPU sample, usage reported as 0")
            elif current.total < self._previous.total:
                logger.debug(
                    "CPU counters went backwards (%d -> %d)",
                    self._previous.total,
                    current.total,
                )
            usage = usage_percent(self._previous, current)
            self._previous = current
            self._previous_time = time.time()

        return CPUStats(
            usage=usage,
            cores=self._cores(),
            model_name=self._model_name(),
            user=current.user,
            system=current.system,
            idle=current.idle,
        )

    def _cores(self) -> int:
        try:
            return max(self._source.cpu_count(), 0)
        except (HostStatsError, OSError) as exc:
            logger.debug("cannot read core count: %s", exc)
            return 0

    def _model_name(self) -> str:
        try:
            return self._source.cpu_model() or ""
        except (HostStatsError, OSError) as exc:
            logger.debug("cannot read CPU model: %s", exc)
            return ""
