"""
Host hardware snapshot for the dashboard: processor, memory and disks.
"""

import logging
import platform
import sys
from pathlib import Path
from typing import NamedTuple

import psutil

from kittynode.commands.constants import MIN_DISK_SIZE_BYTES
from kittynode.commands.errors import KittynodeError
from kittynode.commands.models import DiskInfo, MemoryInfo, ProcessorInfo, SystemInfo

logger = logging.getLogger(__name__)

UNKNOWN_CPU = "Unknown CPU"


class DiskSnapshot(NamedTuple):
    name: str
    mount_point: str
    total_bytes: int
    available_bytes: int
    file_system: str


def format_bytes_decimal(num_bytes: int) -> str:
    """Format with decimal units, the way file managers show disk sizes."""
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(num_bytes)
    unit = 0
    while value >= 1000.0 and unit < len(units) - 1:
        value /= 1000.0
        unit += 1
    return f"{value:.2f} {units[unit]}"


def format_memory_gb(num_bytes: int) -> str:
    return f"{round(num_bytes / 1024**3)} GB"


def _cpu_name() -> str:
    cpuinfo = Path("/proc/cpuinfo")
    if sys.platform.startswith("linux") and cpuinfo.exists():
        for line in cpuinfo.read_text(encoding="utf-8", errors="replace").splitlines():
            if line.startswith("model name"):
                return line.split(":", 1)[1].strip() or UNKNOWN_CPU
    return platform.processor() or UNKNOWN_CPU


def get_processor_info() -> ProcessorInfo:
    freq = psutil.cpu_freq()
    return ProcessorInfo(
        name=_cpu_name(),
        cores=psutil.cpu_count(logical=False) or 1,
        frequency_ghz=(freq.current / 1000.0) if freq else 0.0,
        architecture=platform.machine(),
    )


def get_memory_info() -> MemoryInfo:
    total = psutil.virtual_memory().total
    return MemoryInfo(total_bytes=total, total_display=format_memory_gb(total))


def _skip_mount(mount_point: str) -> bool:
    # APFS system volumes mirror the data volume on macOS
    return sys.platform == "darwin" and (
        mount_point.startswith("/System/Volumes") or mount_point == "/private/var/vm"
    )


def scan_disks() -> list[DiskSnapshot]:
    snapshots = []
    for partition in psutil.disk_partitions(all=False):
        if not partition.fstype or _skip_mount(partition.mountpoint):
            continue
        try:
            usage = psutil.disk_usage(partition.mountpoint)
        except OSError as e:
            logger.debug("Skipping %s: %s", partition.mountpoint, e)
            continue
        snapshots.append(
            DiskSnapshot(
                name=partition.device,
                mount_point=partition.mountpoint,
                total_bytes=usage.total,
                available_bytes=usage.free,
                file_system=partition.fstype,
            )
        )
    return snapshots


def build_disk_infos(snapshots: list[DiskSnapshot]) -> list[DiskInfo]:
    """Drop small disks and repeats of the same (total, available) pair."""
    seen = set()
    disks = []
    for disk in snapshots:
        if disk.total_bytes == 0 or disk.total_bytes < MIN_DISK_SIZE_BYTES:
            continue
        signature = (disk.total_bytes, disk.available_bytes)
        if signature in seen:
            continue
        seen.add(signature)
        disks.append(
            DiskInfo(
                name=disk.name,
                mount_point=disk.mount_point,
                total_bytes=disk.total_bytes,
                available_bytes=disk.available_bytes,
                total_display=format_bytes_decimal(disk.total_bytes),
                used_display=format_bytes_decimal(disk.total_bytes - disk.available_bytes),
                available_display=format_bytes_decimal(disk.available_bytes),
                disk_type=disk.file_system,
            )
        )

    if not disks:
        raise KittynodeError("No valid disks found")
    return disks


def get_system_info() -> SystemInfo:
    return SystemInfo(
        processor=get_processor_info(),
        memory=get_memory_info(),
        disks=build_disk_infos(scan_disks()),
    )
