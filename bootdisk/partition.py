"""Module to write and read MBR partition tables with parted."""

import logging
import os
from typing import Any

import parted

from bootdisk.block import BlockDevice, image_file
from bootdisk.constants import DISK_LABEL_TYPE, PARTITION_FILESYSTEM_TYPE
from bootdisk.errors import PartitionTableError

logger = logging.getLogger(__name__)

PARTED_ERRORS = (
    parted.PartedException,
    parted.ConstraintException,
    parted.CreateException,
    parted.DeviceException,
    parted.DiskException,
    parted.DiskLabelException,
    parted.GeometryException,
    parted.IOException,
    parted.PartitionException,
    parted.UnknownDeviceException,
)


def write_partition_table(
    device: BlockDevice, start_sector: int, length_sectors: int
) -> None:
    """
    Create a partition table on the block device.

    The disk will have the following:
      - MBR (msdos) partition table
      - Primary partition from start_sector for length_sectors
          - Boot flag set
          - Type 0x06 (FAT16, CHS addressed)
    """
    try:
        with image_file(device) as path:
            disk_device = parted.getDevice(os.fspath(path))
            disk = parted.freshDisk(disk_device, DISK_LABEL_TYPE)
            geometry = parted.Geometry(
                device=disk_device, start=start_sector, length=length_sectors
            )
            filesystem = parted.FileSystem(
                type=PARTITION_FILESYSTEM_TYPE, geometry=geometry
            )
            partition = parted.Partition(
                disk=disk,
                type=parted.PARTITION_NORMAL,
                fs=filesystem,
                geometry=geometry,
            )
            partition.setFlag(parted.PARTITION_BOOT)
            partition.unsetFlag(parted.PARTITION_LBA)
            disk.addPartition(
                partition=partition, constraint=parted.Constraint(exactGeom=geometry)
            )
            disk.commit()
    except PARTED_ERRORS as exc:
        raise PartitionTableError(f"Writing partition table failed: {exc}") from exc
    logger.info(
        "Wrote partition table: sectors %d...%d",
        start_sector,
        start_sector + length_sectors - 1,
    )


def read_partition_table(path: str | os.PathLike) -> list[dict[str, Any]]:
    """Return list of partitions in MBR partition table of image file at path."""
    try:
        disk = parted.newDisk(parted.getDevice(os.fspath(path)))
    except PARTED_ERRORS as exc:
        raise PartitionTableError(f"Reading partition table failed: {exc}") from exc
    if disk.type != DISK_LABEL_TYPE:
        raise PartitionTableError(f"Unsupported partition table type '{disk.type}'")
    return [
        {
            "number": partition.number,
            "active": partition.getFlag(parted.PARTITION_BOOT),
            "filesystem_type": (
                partition.fileSystem.type if partition.fileSystem else None
            ),
            "start_sector": partition.geometry.start,
            "length_sectors": partition.geometry.length,
        }
        for partition in disk.partitions
    ]
