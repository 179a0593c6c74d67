import asyncio
import logging
import random
import time
from typing import Callable, List, Tuple, TypeVar

import psutil

from server_dashboard.models.server_stats import DiskInfo, ServerStats
from server_dashboard.services.host_platform import (
    UNKNOWN,
    HostPlatform,
    get_host_platform,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CPU_SAMPLE_SECONDS = 0.1

# Display placeholders, inclusive integer ranges
_TEMPERATURE_RANGE = (40, 60)
_DISK_RANGE = (20, 70)
_NETWORK_RANGE = (10, 60)

_SMT_MARKER = "Intel(R) Hyper-Threading"


def format_uptime(seconds: float) -> str:
    """Coarsest two units: '1天 1小时', '1小时 1分钟' or '5分钟'."""
    seconds = max(int(seconds), 0)
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60

    if days > 0:
        return f"{days}天 {hours}小时"
    if hours > 0:
        return f"{hours}小时 {minutes}分钟"
    return f"{minutes}分钟"


def count_physical_cores(descriptors: List[str]) -> int:
    """
    Rough physical core count: descriptors flagged as SMT siblings are dropped.

    Falls back to the raw descriptor count when nothing is left. This is a
    display heuristic only.
    """
    cores = len([model for model in descriptors if _SMT_MARKER not in model])
    return cores or len(descriptors)


def _best_effort(label: str, func: Callable[[], T], default: T) -> T:
    try:
        return func()
    except Exception:
        logger.warning("Telemetry probe '%s' failed, using default", label, exc_info=True)
        return default


def measure_cpu_usage(window: float = _CPU_SAMPLE_SECONDS) -> int:
    """CPU time consumed by this process over window, as percent of wall time."""
    process = psutil.Process()
    start_cpu = process.cpu_times()
    start_wall = time.perf_counter()
    time.sleep(window)
    end_cpu = process.cpu_times()
    elapsed = time.perf_counter() - start_wall

    used = (end_cpu.user + end_cpu.system) - (start_cpu.user + start_cpu.system)
    if elapsed <= 0:
        return 0
    return min(max(round(used / elapsed * 100), 0), 100)


def measure_memory() -> Tuple[int, int, int]:
    """(usage percent, total bytes, used bytes)."""
    vm = psutil.virtual_memory()
    total = int(vm.total)
    used = total - int(vm.available)
    percent = round(used / total * 100) if total else 0
    return percent, total, used


def measure_uptime() -> str:
    return format_uptime(time.time() - psutil.boot_time())


def cpu_identity(host: HostPlatform) -> Tuple[str, int, int, float]:
    """(model, physical cores, threads, speed in GHz)."""
    descriptors = host.cpu_descriptors()
    model = descriptors[0] if descriptors else UNKNOWN
    threads = len(descriptors) or (psutil.cpu_count(logical=True) or 0)
    cores = count_physical_cores(descriptors) if descriptors else threads

    speed = 0.0
    try:
        freq = psutil.cpu_freq()
    except (OSError, NotImplementedError) as exc:
        logger.debug("CPU frequency unavailable: %s", exc)
        freq = None
    if freq is not None:
        mhz = freq.max or freq.current
        speed = round(mhz / 1000, 2) if mhz else 0.0
    return model, cores, threads, speed


def _random_in(bounds: Tuple[int, int]) -> int:
    return random.randint(*bounds)


async def _in_thread(label: str, func: Callable[[], T], default: T) -> T:
    return await asyncio.to_thread(_best_effort, label, func, default)


async def collect_server_stats() -> ServerStats:
    """
    Gather a full host snapshot.

    Never raises: failing probes degrade to defaults, and if assembling the
    snapshot itself fails a fallback snapshot is returned.
    """
    try:
        return await _collect(get_host_platform())
    except Exception:
        logger.exception("Failed to get server stats, returning fallback snapshot")
        return fallback_server_stats()


async def _collect(host: HostPlatform) -> ServerStats:
    (
        cpu,
        cpu_temp,
        identity,
        memory,
        memory_identity,
        disk,
        disks,
        uptime,
    ) = await asyncio.gather(
        _in_thread("cpu usage", measure_cpu_usage, 0),
        _in_thread("cpu temperature", host.cpu_temperature, None),
        _in_thread("cpu identity", lambda: cpu_identity(host), (UNKNOWN, 0, 0, 0.0)),
        _in_thread("memory usage", measure_memory, (0, 0, 0)),
        _in_thread("memory identity", host.memory_identity, (UNKNOWN, 0)),
        _in_thread("disk usage", host.root_disk_percent, None),
        _in_thread("disk inventory", host.list_disks, []),
        _in_thread("uptime", measure_uptime, format_uptime(0)),
    )

    if cpu_temp is None:
        logger.debug("CPU temperature unavailable on %r, showing placeholder", host)
        cpu_temp = _random_in(_TEMPERATURE_RANGE)
    if disk is None:
        disk = _random_in(_DISK_RANGE)

    cpu_model, cpu_cores, cpu_threads, cpu_speed = identity
    memory_percent, memory_total, memory_used = memory
    memory_model, memory_speed = memory_identity
    disks: List[DiskInfo] = list(disks)

    return ServerStats(
        cpu=cpu,
        memory=memory_percent,
        disk=disk,
        network=_random_in(_NETWORK_RANGE),
        uptime=uptime,
        cpu_temp=cpu_temp,
        cpu_model=cpu_model,
        cpu_cores=cpu_cores,
        cpu_threads=cpu_threads,
        cpu_speed=cpu_speed,
        memory_model=memory_model,
        memory_speed=memory_speed,
        memory_total=memory_total,
        memory_used=memory_used,
        disks=disks,
        disk_count=len(disks),
    )


def fallback_server_stats() -> ServerStats:
    """Synthetic snapshot shown when collection fails as a whole."""
    return ServerStats(
        cpu=random.randint(20, 70),
        memory=random.randint(30, 80),
        disk=_random_in(_DISK_RANGE),
        network=_random_in(_NETWORK_RANGE),
        uptime="模拟数据",
        cpu_temp=_random_in(_TEMPERATURE_RANGE),
        cpu_model=UNKNOWN,
        cpu_cores=4,
        cpu_threads=8,
        cpu_speed=2.5,
        memory_model=UNKNOWN,
        memory_speed=0,
        memory_total=8 * 1024 ** 3,
        memory_used=4 * 1024 ** 3,
        disks=[],
        disk_count=0,
    )
