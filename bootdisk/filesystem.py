"""Module to format and access FAT16 filesystems in image files with pyfatfs."""

import contextlib
import logging
import os
from collections.abc import Generator
from typing import Any

from fs.errors import FSError
from pyfatfs.PyFat import PyFat
from pyfatfs.PyFatFS import PyFatFS
from pyfatfs._exceptions import PyFATException

from bootdisk.constants import CHS_HEADS, CHS_SECTORS_PER_TRACK, FAT_LABEL, SECTOR_SIZE
from bootdisk.errors import FilesystemError

logger = logging.getLogger(__name__)

FILESYSTEM_ERRORS = (PyFATException, FSError, OSError)


def format_fat16(
    path: str | os.PathLike,
    size: int,
    offset: int = 0,
    label: str = FAT_LABEL,
    hidden_sectors: int = 0,
) -> None:
    """
    Format size bytes from offset of image file at path as FAT16.

    The boot sector records hidden_sectors, the sectors preceding the
    filesystem on its disk, and a 255 head, 63 sector geometry.
    """
    fat = PyFat(offset=offset)
    try:
        fat.mkfs(
            os.fspath(path),
            fat_type=PyFat.FAT_TYPE_FAT16,
            size=size,
            sector_size=SECTOR_SIZE,
            label=label,
        )
        fat.bpb_header["BPB_HiddSec"] = hidden_sectors
        fat.bpb_header["BPB_SecPerTrk"] = CHS_SECTORS_PER_TRACK
        fat.bpb_header["BPB_NumHeads"] = CHS_HEADS
        # boot sector is rewritten on close
        fat.close()
    except FILESYSTEM_ERRORS as exc:
        raise FilesystemError(f"Formatting FAT16 filesystem failed: {exc}") from exc
    logger.debug("Formatted %d bytes at offset %d as FAT16", size, offset)


@contextlib.contextmanager
def open_filesystem(
    path: str | os.PathLike, offset: int = 0, read_only: bool = False
) -> Generator[PyFatFS]:
    """Context manager to open FAT filesystem at offset of image file."""
    try:
        filesystem = PyFatFS(os.fspath(path), offset=offset, read_only=read_only)
    except FILESYSTEM_ERRORS as exc:
        raise FilesystemError(f"Opening FAT filesystem failed: {exc}") from exc
    try:
        yield filesystem
    except FILESYSTEM_ERRORS as exc:
        raise FilesystemError(str(exc)) from exc
    finally:
        filesystem.close()


def get_filesystem_info(path: str | os.PathLike, offset: int = 0) -> dict[str, Any]:
    """Return information about FAT filesystem at offset of image file."""
    with open_filesystem(path, offset=offset, read_only=True) as filesystem:
        header = filesystem.fs.bpb_header
        return {
            "fat_type": filesystem.fs.fat_type,
            "label": header["BS_VolLab"].decode("ascii", "replace").rstrip(),
            "bytes_per_cluster": filesystem.fs.bytes_per_cluster,
            "hidden_sectors": header["BPB_HiddSec"],
            "total_sectors": header["BPB_TotSec16"] or header["BPB_TotSec32"],
            "directories": sorted(filesystem.walk.dirs()),
            "files": {
                file: filesystem.getsize(file)
                for file in sorted(filesystem.walk.files())
            },
        }
