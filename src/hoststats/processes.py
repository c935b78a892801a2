"""Best-effort enumeration of the process table."""

import logging
import os
import threading
from collections.abc import Callable, Iterable, Iterator
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from itertools import islice
from typing import TypeVar

from hoststats.errors import FieldUnavailable, ProcessGone
from hoststats.models import ProcessInfo
from hoststats.source import CounterSource

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROCESS_LIMIT = 50

# Per-process reads submitted to the thread pool per worker at a time
BATCH_PER_WORKER = 4


class ProcessRanking(Enum):
    """How the enumerator chooses which processes to keep."""

    MEMORY = "memory"  # largest resident memory first
    ENUMERATION = "enumeration"  # first found, in listing order


def _field(getter: Callable[[], T]) -> T | None:
    """Read one optional field; ``None`` if it cannot be read."""
    try:
        return getter()
    except (FieldUnavailable, OSError):
        return None


class ProcessEnumerator:
    """
    Lists live processes and reads their metrics.

    The process table changes while it is being read, so every process is
    read independently and any process that vanishes or cannot be read is
    dropped from the result instead of failing the whole sample. Only a
    failure to list the process identities themselves propagates.
    """

    def __init__(
        self,
        source: CounterSource,
        limit: int = DEFAULT_PROCESS_LIMIT,
        ranking: ProcessRanking = ProcessRanking.MEMORY,
        workers: int = 1,
    ) -> None:
        """
        Initialize the ProcessEnumerator.

        Args:
            source: Counter source to read processes from.
            limit: Maximum number of processes returned. Default 50.
            ranking: Policy used to pick the processes that are kept.
            workers: Threads used for per-process reads. Default 1.
        """
        self._source = source
        self.limit = limit
        self.ranking = ranking
        self.workers = workers

    @property
    def limit(self) -> int:
        return self._limit

    @limit.setter
    def limit(self, value: int) -> None:
        self._limit = max(0, value)

    @property
    def workers(self) -> int:
        return self._workers

    @workers.setter
    def workers(self, value: int) -> None:
        self._workers = max(1, value)

    def read_process(self, pid: int) -> ProcessInfo | None:
        """
        Read a single process, or return None if it is unreadable.

        Name, state, CPU percent, memory and thread count are read one by
        one; a field that fails falls back to its zero value. The process
        is dropped only if it has exited or nothing identifying it (name,
        executable or state) can be read.
        """
        try:
            handle = self._source.process(pid)
            name = _field(handle.name)
            if not name:
                exe = _field(handle.exe)
                if exe:
                    name = os.path.basename(exe)
            state = _field(handle.state)
            if name is None and state is None:
                logger.debug("skipping unreadable process %d", pid)
                return None

            return ProcessInfo(
                pid=pid,
                name=name or "",
                state=state or "",
                cpu=_field(handle.cpu_percent) or 0.0,
                memory=_field(handle.memory_rss) or 0,
                threads=_field(handle.num_threads) or 0,
            )
        except (ProcessGone, FieldUnavailable) as exc:
            logger.debug("skipping process %d: %s", pid, exc)
            return None

    def _read_all(
        self, pids: Iterable[int], cancel: threading.Event | None
    ) -> Iterator[ProcessInfo | None]:
        def read(pid: int) -> ProcessInfo | None:
            if cancel is not None and cancel.is_set():
                return None
            return self.read_process(pid)

        if self._workers == 1:
            yield from map(read, pids)
            return

        remaining = iter(pids)
        with ThreadPoolExecutor(
            max_workers=self._workers, thread_name_prefix="ProcessEnumerator"
        ) as pool:
            # At most one batch of reads is in flight at a time
            while True:
                batch = list(islice(remaining, self._workers * BATCH_PER_WORKER))
                if not batch:
                    return
                # map() yields in submission order, i.e. listing order
                yield from pool.map(read, batch)

    def sample(self, cancel: threading.Event | None = None) -> tuple[ProcessInfo, ...]:
        """
        Collect at most ``limit`` processes according to ``ranking``.

        Args:
            cancel: Optional event; once set, remaining per-process reads
                are skipped and the processes read so far are returned.
        """
        pids = self._source.pids()
        if self._limit == 0:
            return ()

        found = (info for info in self._read_all(pids, cancel) if info is not None)

        if self.ranking is ProcessRanking.ENUMERATION:
            return tuple(islice(found, self._limit))

        ranked = sorted(found, key=lambda info: (-info.memory, info.pid))
        return tuple(ranked[: self._limit])
