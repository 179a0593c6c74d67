"""
Platform specific probes used by the telemetry collector.

Each supported operating system gets one HostPlatform variant; the variant is
picked once per process by get_host_platform(). All probes are best effort:
they return None / empty values when the underlying command or file is not
available, and only raise for unexpected errors.
"""

import glob
import logging
import platform
import re
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import psutil

from server_dashboard.models.server_stats import DiskInfo

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

_COMMAND_TIMEOUT_SECONDS = 10

_LINUX_DISK_TYPES = re.compile(r"ext|xfs|btrfs|ntfs|fat")

_SIZE_UNITS = {
    "K": 1024,
    "M": 1024 ** 2,
    "G": 1024 ** 3,
    "T": 1024 ** 4,
}


def run_command(args: Sequence[str]) -> str:
    """
    Run an external command and return its stdout.

    Raises RuntimeError if the binary is missing, exits non-zero or times out.
    """
    try:
        result = subprocess.run(
            list(args),
            check=True,
            capture_output=True,
            text=True,
            timeout=_COMMAND_TIMEOUT_SECONDS,
        )
    except FileNotFoundError as exc:
        raise RuntimeError(f"{args[0]} binary not found on host system") from exc
    except subprocess.CalledProcessError as exc:
        raise RuntimeError(
            f"{args[0]} failed with return code {exc.returncode}: {(exc.stderr or '').strip()}"
        ) from exc
    except subprocess.TimeoutExpired as exc:
        raise RuntimeError(f"{args[0]} timed out after {_COMMAND_TIMEOUT_SECONDS}s") from exc
    except OSError as exc:
        raise RuntimeError(f"{args[0]} could not be executed: {exc}") from exc
    return result.stdout


# --------------------------------------------------------------------------
# Output parsers
# --------------------------------------------------------------------------


def parse_size(text: str) -> float:
    """
    Parse a df -H style size such as '10G', '512M' or '1.5T' into bytes.

    Units are 1024 based. A value without a known unit is taken as bytes,
    unparsable input yields 0.
    """
    text = (text or "").strip()
    if not text:
        return 0
    unit = text[-1].upper()
    number = text[:-1] if unit in _SIZE_UNITS or unit == "B" else text
    try:
        value = float(number)
    except ValueError:
        return 0
    return value * _SIZE_UNITS.get(unit, 1)


def _percent(used: float, total: float) -> int:
    if not total:
        return 0
    return min(max(round(used / total * 100), 0), 100)


def parse_millidegrees(text: str) -> Optional[int]:
    """Parse a sysfs temperature file (millidegrees Celsius)."""
    try:
        value = int(text.strip()) / 1000
    except ValueError:
        return None
    return round(value) if value > 0 else None


def parse_sensors_core0(output: str) -> Optional[int]:
    """Extract the 'Core 0' reading from lm-sensors output, e.g. 'Core 0:  +45.0°C'."""
    for line in output.splitlines():
        if "Core 0" not in line:
            continue
        match = re.search(r"\+?(-?\d+(?:\.\d+)?)\s*°?C", line.split(":", 1)[-1])
        if match:
            value = float(match.group(1))
            return round(value) if value > 0 else None
    return None


def parse_wmi_thermal_zone(output: str) -> Optional[int]:
    """MSAcpi_ThermalZoneTemperature reports tenths of Kelvin."""
    match = re.search(r"CurrentTemperature=(\d+)", output)
    if not match:
        return None
    tenths_kelvin = int(match.group(1))
    if tenths_kelvin <= 2732:
        return None
    return round(tenths_kelvin / 10 - 273.15)


def parse_powermetrics_temperature(output: str) -> Optional[int]:
    for line in output.splitlines():
        if "CPU die temperature" in line:
            match = re.search(r"(\d+\.\d+)", line)
            if match:
                return round(float(match.group(1)))
    return None


def parse_df_percent(output: str) -> Optional[int]:
    """Use% column of the last line of 'df -h /'."""
    lines = [line for line in output.splitlines() if line.strip()]
    if len(lines) < 2:
        return None
    fields = lines[-1].split()
    if len(fields) < 5:
        return None
    try:
        return int(fields[4].rstrip("%"))
    except ValueError:
        return None


def parse_df_linux(output: str) -> List[DiskInfo]:
    """
    Parse 'df -T -B1' output.

    Columns: Filesystem Type 1B-blocks Used Available Use% Mounted-on.
    Only rows matching common local filesystem types are kept.
    """
    disks: List[DiskInfo] = []
    for line in output.splitlines()[1:]:
        if not _LINUX_DISK_TYPES.search(line):
            continue
        fields = line.split()
        if len(fields) < 7:
            continue
        device, fs_type, total, used, free = fields[:5]
        mount = " ".join(fields[6:])
        try:
            total_b, used_b, free_b = int(total), int(used), int(free)
        except ValueError:
            continue
        disks.append(
            DiskInfo(
                name=mount or device,
                type=fs_type,
                total=total_b,
                used=used_b,
                free=free_b,
                percent=_percent(used_b, total_b),
            )
        )
    return disks


def parse_df_darwin(output: str) -> List[DiskInfo]:
    """Parse 'df -H' output, keeping /dev/* rows only."""
    disks: List[DiskInfo] = []
    for line in output.splitlines():
        if not line.startswith("/dev/"):
            continue
        fields = line.split()
        if len(fields) < 6:
            continue
        device, total, used, free, capacity = fields[:5]
        mount = fields[-1]
        try:
            percent = min(float(capacity.rstrip("%")), 100)
        except ValueError:
            percent = _percent(parse_size(used), parse_size(total))
        disks.append(
            DiskInfo(
                name=mount or device,
                type="disk",
                total=int(parse_size(total)),
                used=int(parse_size(used)),
                free=int(parse_size(free)),
                percent=percent,
            )
        )
    return disks


def _csv_rows(output: str, header_marker: str) -> List[List[str]]:
    rows = []
    for line in output.splitlines():
        if not line.strip() or header_marker in line:
            continue
        rows.append([part.strip() for part in line.split(",")])
    return rows


def parse_wmic_disk_models(output: str) -> Dict[str, str]:
    """Map DeviceID -> Model from 'wmic diskdrive get Model,DeviceID /format:csv'."""
    models: Dict[str, str] = {}
    for parts in _csv_rows(output, "Node,DeviceID,Model"):
        if len(parts) >= 3 and parts[1] and parts[2]:
            models[parts[1]] = parts[2]
    return models


def parse_wmic_logical_disks(output: str) -> List[DiskInfo]:
    """Parse 'wmic logicaldisk get Name,Size,FreeSpace,Description /format:csv'."""
    disks: List[DiskInfo] = []
    for parts in _csv_rows(output, "Node,Description,FreeSpace,Name,Size"):
        if len(parts) < 5:
            continue
        _node, description, free, name, size = parts[:5]
        if not name or not size:
            continue
        try:
            total = int(size)
            free_b = int(free or 0)
        except ValueError:
            continue
        used = total - free_b
        disks.append(
            DiskInfo(
                name=name,
                type=description,
                total=total,
                used=max(used, 0),
                free=free_b,
                percent=_percent(used, total),
            )
        )
    return disks


def parse_dmidecode_memory(output: str) -> Tuple[str, int]:
    """First module part number and speed from 'dmidecode -t memory'."""
    model = UNKNOWN
    speed = 0
    for line in output.splitlines():
        if model == UNKNOWN:
            match = re.search(r"Part Number: (.*)", line)
            if match and match.group(1).strip():
                model = match.group(1).strip()
        if speed == 0 and "Speed" in line and "Configured" not in line:
            match = re.search(r"Speed: (\d+)", line)
            if match:
                speed = int(match.group(1))
    return model, speed


# --------------------------------------------------------------------------
# Platform variants
# --------------------------------------------------------------------------


class HostPlatform:
    """
    Generic variant for operating systems without dedicated probes.

    Subclasses override the probes their OS can answer.
    """

    name = "generic"

    def cpu_temperature(self) -> Optional[int]:
        """Temperature in °C, or None if it cannot be determined."""
        return None

    def memory_identity(self) -> Tuple[str, int]:
        """(part number, speed in MHz) of the first memory module."""
        return UNKNOWN, 0

    def root_disk_percent(self) -> Optional[int]:
        """Usage of the primary volume in percent."""
        return None

    def list_disks(self) -> List[DiskInfo]:
        return []

    def cpu_model(self) -> str:
        return platform.processor() or UNKNOWN

    def cpu_descriptors(self) -> List[str]:
        """One model string per logical processor."""
        threads = psutil.cpu_count(logical=True) or 0
        model = self.cpu_model()
        return [model] * threads

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class _UnixDfMixin:
    def root_disk_percent(self) -> Optional[int]:
        return parse_df_percent(run_command(["df", "-h", "/"]))


class LinuxPlatform(_UnixDfMixin, HostPlatform):
    name = "linux"

    hwmon_glob = "/sys/class/hwmon/hwmon*/temp*_input"
    thermal_zone_path = "/sys/class/thermal/thermal_zone0/temp"
    cpuinfo_path = "/proc/cpuinfo"

    def cpu_temperature(self) -> Optional[int]:
        # 1. hwmon sensors (newer kernels)
        for path in sorted(glob.glob(self.hwmon_glob))[:1]:
            try:
                temp = parse_millidegrees(Path(path).read_text())
            except OSError as exc:
                logger.debug("Reading %s failed: %s", path, exc)
                temp = None
            if temp is not None:
                return temp

        # 2. legacy thermal zone
        try:
            temp = parse_millidegrees(Path(self.thermal_zone_path).read_text())
        except OSError as exc:
            logger.debug("Reading %s failed: %s", self.thermal_zone_path, exc)
            temp = None
        if temp is not None:
            return temp

        # 3. lm-sensors
        try:
            return parse_sensors_core0(run_command(["sensors"]))
        except RuntimeError as exc:
            logger.debug("sensors unavailable: %s", exc)
            return None

    def memory_identity(self) -> Tuple[str, int]:
        return parse_dmidecode_memory(run_command(["sudo", "-n", "dmidecode", "-t", "memory"]))

    def list_disks(self) -> List[DiskInfo]:
        return parse_df_linux(run_command(["df", "-T", "-B1"]))

    def _cpuinfo_models(self) -> List[str]:
        try:
            text = Path(self.cpuinfo_path).read_text()
        except OSError as exc:
            logger.debug("Reading %s failed: %s", self.cpuinfo_path, exc)
            return []
        return [
            line.split(":", 1)[1].strip()
            for line in text.splitlines()
            if line.startswith("model name")
        ]

    def cpu_descriptors(self) -> List[str]:
        return self._cpuinfo_models() or super().cpu_descriptors()

    def cpu_model(self) -> str:
        models = self._cpuinfo_models()
        return models[0] if models else super().cpu_model()


class DarwinPlatform(_UnixDfMixin, HostPlatform):
    name = "darwin"

    def cpu_temperature(self) -> Optional[int]:
        try:
            return parse_powermetrics_temperature(
                run_command(["sudo", "-n", "powermetrics", "--samplers", "smc", "-n", "1"])
            )
        except RuntimeError as exc:
            logger.debug("powermetrics unavailable: %s", exc)
            return None

    def memory_identity(self) -> Tuple[str, int]:
        # system_profiler does not expose a part number
        output = run_command(["system_profiler", "SPMemoryDataType"])
        match = re.search(r"Speed: (\d+) MHz", output)
        return UNKNOWN, int(match.group(1)) if match else 0

    def list_disks(self) -> List[DiskInfo]:
        return parse_df_darwin(run_command(["df", "-H"]))

    def cpu_model(self) -> str:
        try:
            return run_command(["sysctl", "-n", "machdep.cpu.brand_string"]).strip() or UNKNOWN
        except RuntimeError as exc:
            logger.debug("sysctl unavailable: %s", exc)
            return super().cpu_model()


class WindowsPlatform(HostPlatform):
    name = "windows"

    def cpu_temperature(self) -> Optional[int]:
        try:
            return parse_wmi_thermal_zone(
                run_command(
                    [
                        "wmic",
                        "/namespace:\\\\root\\wmi",
                        "PATH",
                        "MSAcpi_ThermalZoneTemperature",
                        "get",
                        "CurrentTemperature",
                        "/value",
                    ]
                )
            )
        except RuntimeError as exc:
            logger.debug("wmic thermal zone unavailable: %s", exc)
            return None

    def memory_identity(self) -> Tuple[str, int]:
        model_out = run_command(["wmic", "memorychip", "get", "Manufacturer,PartNumber", "/value"])
        speed_out = run_command(["wmic", "memorychip", "get", "Speed", "/value"])

        model = UNKNOWN
        match = re.search(r"PartNumber=(.*)", model_out)
        if match and match.group(1).strip():
            model = match.group(1).strip()
        match = re.search(r"Speed=(\d+)", speed_out)
        return model, int(match.group(1)) if match else 0

    def list_disks(self) -> List[DiskInfo]:
        disks = parse_wmic_logical_disks(
            run_command(
                ["wmic", "logicaldisk", "get", "Name,Size,FreeSpace,Description", "/format:csv"]
            )
        )
        models = parse_wmic_disk_models(
            run_command(["wmic", "diskdrive", "get", "Model,DeviceID", "/format:csv"])
        )
        for disk in disks:
            disk.disk_model = self._drive_model(disk.name, models)
        return disks

    def _drive_model(self, volume: str, models: Dict[str, str]) -> Optional[str]:
        """Resolve the physical drive behind a logical volume such as 'C:'."""
        try:
            assoc = run_command(
                [
                    "wmic",
                    "logicaldisk",
                    "where",
                    f"DeviceID='{volume}'",
                    "assoc",
                    "/assocclass:Win32_LogicalDiskToPartition",
                ]
            )
            match = re.search(r"Disk #([0-9]+), Partition", assoc)
            if not match:
                return None
            device_out = run_command(
                ["wmic", "diskdrive", "where", f"Index={match.group(1)}", "get", "DeviceID", "/value"]
            )
        except RuntimeError as exc:
            logger.debug("Drive model lookup for %s failed: %s", volume, exc)
            return None
        match = re.search(r"DeviceID=(.*)", device_out)
        return models.get(match.group(1).strip()) if match else None


def detect_host_platform(system: Optional[str] = None) -> HostPlatform:
    """Pick the variant for system (defaults to platform.system())."""
    system = (system or platform.system()).lower()
    if system == "linux":
        return LinuxPlatform()
    if system == "darwin":
        return DarwinPlatform()
    if system == "windows":
        return WindowsPlatform()
    return HostPlatform()


@lru_cache(maxsize=1)
def get_host_platform() -> HostPlatform:
    host = detect_host_platform()
    logger.info("Using %r for host telemetry", host)
    return host
