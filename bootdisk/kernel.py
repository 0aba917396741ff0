"""Populate a partition with a FAT filesystem holding a kernel and GRUB menu."""

import logging
import os
from pathlib import Path

from fs.path import recursepath

from bootdisk.block import BlockDevice, image_file
from bootdisk.constants import (
    GRUB_DIRECTORY,
    KERNEL_PATH,
    KERNEL_SIZE_LIMIT,
    MENU_LST_PATH,
    MENU_LST_TEMPLATE,
    MENU_TITLE,
    MIB,
)
from bootdisk.errors import KernelTooLargeError
from bootdisk.filesystem import format_fat16, open_filesystem

logger = logging.getLogger(__name__)


def get_menu_lst(title: str = MENU_TITLE, kernel: str = KERNEL_PATH) -> str:
    """Return GRUB legacy menu booting kernel from the first partition."""
    return MENU_LST_TEMPLATE.format(title=title, kernel=kernel)


def check_kernel_size(kernel: str | os.PathLike) -> int:
    """Return size of kernel file, raising KernelTooLargeError if it will not fit."""
    size = Path(kernel).stat().st_size
    if size >= KERNEL_SIZE_LIMIT:
        raise KernelTooLargeError(
            f"We only support kernels < {KERNEL_SIZE_LIMIT // MIB}MiB in size, "
            f"'{kernel}' is {size} bytes"
        )
    return size


def write_boot_filesystem(
    device: BlockDevice,
    kernel: str | os.PathLike,
    title: str = MENU_TITLE,
    hidden_sectors: int = 0,
) -> None:
    """
    Format device as FAT16 and install kernel with a GRUB menu.

    The filesystem will have the following:
      - /boot/grub/menu.lst
      - /kernel

    Any error aborts the whole sequence; nothing is retried.
    """
    size = check_kernel_size(kernel)
    data = Path(kernel).read_bytes()
    with image_file(device) as path:
        format_fat16(path, device.size, hidden_sectors=hidden_sectors)
        logger.info("Formatted %d byte FAT16 filesystem", device.size)
        with open_filesystem(path) as filesystem:
            for directory in recursepath(GRUB_DIRECTORY)[1:]:
                filesystem.makedir(directory)
            filesystem.writebytes(MENU_LST_PATH, get_menu_lst(title).encode())
            filesystem.writebytes(KERNEL_PATH, data)
    logger.info("Wrote %d byte kernel to %s", size, KERNEL_PATH)
