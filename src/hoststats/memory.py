"""Memory snapshot built from raw memory counters."""

import logging

from hoststats.errors import HostStatsError
from hoststats.models import MemoryStats, SwapMemory, VirtualMemory
from hoststats.source import CounterSource

logger = logging.getLogger(__name__)


def build_memory_stats(vm: VirtualMemory, swap: SwapMemory | None) -> MemoryStats:
    """Derive used, used-percent and swap-used from raw counters."""
    if vm.available is None or vm.available > vm.total:
        # Counters are incomplete or inconsistent; report nothing as used.
        available = 0
        used = 0
    else:
        available = vm.available
        used = vm.total - vm.available

    used_percent = 100.0 * used / vm.total if vm.total > 0 else 0.0

    if swap is None:
        swap_total = swap_free = swap_used = 0
    else:
        swap_total = swap.total
        swap_free = swap.free
        swap_used = max(swap.total - swap.free, 0)

    return MemoryStats(
        total=vm.total,
        available=available,
        used=used,
        used_percent=used_percent,
        free=vm.free,
        buffers=vm.buffers,
        cached=vm.cached,
        swap_total=swap_total,
        swap_free=swap_free,
        swap_used=swap_used,
    )


def sample_memory(source: CounterSource) -> MemoryStats:
    """
    Read memory counters from ``source`` and build a ``MemoryStats``.

    Only a failure to read virtual memory propagates. Missing or
    unreadable swap counters zero the swap fields.
    """
    vm = source.virtual_memory()
    try:
        swap = source.swap_memory()
    except (HostStatsError, OSError) as exc:
        logger.debug("swap counters unavailable: %s", exc)
        swap = None
    return build_memory_stats(vm, swap)
