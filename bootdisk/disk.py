"""Build a bootable disk image in memory and upload it."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bootdisk.block import (
    BlockDevice,
    FileBlockDevice,
    MemoryBlockDevice,
    PartitionView,
    image_file,
)
from bootdisk.constants import (
    DISK_SIZE,
    MENU_TITLE,
    PARTITION_START_SECTOR,
    SECTOR_SIZE,
    UPLOAD_TIMEOUT,
    VDI_NAME_LABEL,
)
from bootdisk.errors import FilesystemError, PartitionTableError
from bootdisk.filesystem import get_filesystem_info
from bootdisk.kernel import check_kernel_size, write_boot_filesystem
from bootdisk.partition import read_partition_table, write_partition_table
from bootdisk.upload import upload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiskGeometry:
    """Dataclass describing a disk with a single partition."""

    size: int = DISK_SIZE
    sector_size: int = SECTOR_SIZE
    start_sector: int = PARTITION_START_SECTOR

    @property
    def total_sectors(self) -> int:
        """Return number of sectors of disk."""
        return self.size // self.sector_size

    @property
    def length_sectors(self) -> int:
        """Return number of sectors of partition."""
        return self.total_sectors - self.start_sector


def build_boot_disk(
    kernel: str | os.PathLike,
    title: str = MENU_TITLE,
    geometry: DiskGeometry = DiskGeometry(),
) -> MemoryBlockDevice:
    """
    Return in-memory disk holding kernel in a bootable FAT16 partition.

    The disk has the following:
      - MBR with one active partition of type 0x06 at sector 2048
      - FAT16 filesystem with /boot/grub/menu.lst and /kernel
    """
    check_kernel_size(kernel)
    device = MemoryBlockDevice(geometry.total_sectors)
    write_partition_table(device, geometry.start_sector, geometry.length_sectors)
    partition = PartitionView(device, geometry.start_sector, geometry.length_sectors)
    write_boot_filesystem(
        partition, kernel, title=title, hidden_sectors=geometry.start_sector
    )
    logger.info(
        "Built %d sector boot disk, %d sectors allocated",
        device.size_sectors,
        len(device.allocated_sectors),
    )
    return device


def upload_boot_disk(
    url: str,
    username: str,
    password: str,
    kernel: str | os.PathLike,
    title: str = MENU_TITLE,
    name_label: str = VDI_NAME_LABEL,
    verify: bool = True,
    timeout: float | None = UPLOAD_TIMEOUT,
) -> str:
    """Build boot disk for kernel, upload it to a new VDI and return its UUID."""
    device = build_boot_disk(kernel, title=title)
    return upload(
        url,
        username,
        password,
        device,
        name_label=name_label,
        verify=verify,
        timeout=timeout,
    )


def upload_raw_device(
    url: str,
    username: str,
    password: str,
    path: str | os.PathLike,
    name_label: str = VDI_NAME_LABEL,
    verify: bool = True,
    timeout: float | None = UPLOAD_TIMEOUT,
) -> str:
    """Upload local raw device or image file to a new VDI and return its UUID."""
    with FileBlockDevice(path) as device:
        logger.info("Uploading %d sectors from %s", device.size_sectors, device.path)
        return upload(
            url,
            username,
            password,
            device,
            name_label=name_label,
            verify=verify,
            timeout=timeout,
        )


def get_disk_info(path: str | Path) -> dict[str, Any]:
    """Return information about partition table and FAT filesystems of image file."""
    with FileBlockDevice(path) as device:
        info: dict[str, Any] = {
            "size": device.size,
            "size_sectors": device.size_sectors,
        }
    try:
        info["partitions"] = read_partition_table(path)
    except PartitionTableError as exc:
        logger.debug("No partition table: %s", exc)
        info["mbr_valid"] = False
        info["partitions"] = []
        return info
    info["mbr_valid"] = True
    for entry in info["partitions"]:
        try:
            entry["filesystem"] = get_filesystem_info(
                path, offset=entry["start_sector"] * SECTOR_SIZE
            )
        except FilesystemError as exc:
            entry["filesystem"] = None
            entry["error"] = str(exc)
    return info


def inspect_disk(device: BlockDevice) -> dict[str, Any]:
    """Return information about partition table and FAT filesystems of device."""
    with image_file(device, write_back=False) as path:
        return get_disk_info(path)


def inspect_image(path: str | Path) -> dict[str, Any]:
    """Return information about local disk image at path."""
    path = Path(path).resolve()
    info = get_disk_info(path)
    info["path"] = path.as_posix()
    return info
