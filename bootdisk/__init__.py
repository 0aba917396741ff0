"""
Build bootable disks for a kernel and upload them to XenServer VDIs.

The boot disk is a 16 MiB image with the following layout:
- Sector 0
  - Master boot record
    - Partition #1: active, type 0x06 (FAT16), sectors 2048...32767
- Partition #1
  - FAT16 filesystem
    - /boot/grub/menu.lst
    - /kernel

The image is built in memory and streamed, sector by sector, into a new
VDI on the default storage repository of the pool.
"""

from bootdisk.block import FileBlockDevice, MemoryBlockDevice, PartitionView
from bootdisk.disk import (
    DiskGeometry,
    build_boot_disk,
    inspect_disk,
    inspect_image,
    upload_boot_disk,
    upload_raw_device,
)

__all__ = [
    "DiskGeometry",
    "FileBlockDevice",
    "MemoryBlockDevice",
    "PartitionView",
    "build_boot_disk",
    "inspect_disk",
    "inspect_image",
    "upload_boot_disk",
    "upload_raw_device",
]
