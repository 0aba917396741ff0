"""
Block devices addressed in 512-byte sectors.

MemoryBlockDevice holds a disk image in memory, storing only sectors
which contain data. PartitionView exposes a window of another device as
a device of its own, and FileBlockDevice reads a local file or device.
image_file stages a device as a temporary file for parted and pyfatfs,
which only operate on files.
"""

import abc
import contextlib
import itertools
import os
import tempfile
from pathlib import Path
from types import TracebackType
from typing import BinaryIO, Iterator

from bootdisk.constants import SECTOR_SIZE
from bootdisk.errors import BlockDeviceError, BlockErrorKind
from bootdisk.utils import ceil_div, pad_sector


class BlockDevice(contextlib.AbstractContextManager):
    """Abstract base class for a device of fixed-size sectors."""

    sector_size: int = SECTOR_SIZE
    read_only: bool = False

    def __init__(self) -> None:
        """Initialise device as connected."""
        self.connected = True

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Disconnect device on leaving runtime context."""
        self.disconnect()

    @property
    @abc.abstractmethod
    def size_sectors(self) -> int:
        """Return total number of sectors of device."""
        ...

    @property
    def size(self) -> int:
        """Return size of device in bytes."""
        return self.size_sectors * self.sector_size

    def _check(self, sector: int, write: bool = False) -> None:
        """Raise BlockDeviceError if sector cannot be accessed."""
        if not self.connected:
            raise BlockDeviceError(BlockErrorKind.DISCONNECTED)
        if write and self.read_only:
            raise BlockDeviceError(BlockErrorKind.IS_READ_ONLY)
        if not 0 <= sector < self.size_sectors:
            raise BlockDeviceError(
                BlockErrorKind.UNKNOWN,
                f"Sector '{sector}' is outside of device with "
                f"'{self.size_sectors}' sectors",
            )

    def read(self, sector: int) -> bytes:
        """Return data of sector."""
        self._check(sector)
        return self._read(sector)

    def write(self, sector: int, data: bytes) -> None:
        """Write exactly one sector of data to sector."""
        self._check(sector, write=True)
        if len(data) != self.sector_size:
            raise BlockDeviceError(
                BlockErrorKind.UNKNOWN,
                f"Expected '{self.sector_size}' bytes, got '{len(data)}'",
            )
        self._write(sector, bytes(data))

    def _read(self, sector: int) -> bytes:
        raise BlockDeviceError(BlockErrorKind.UNIMPLEMENTED)

    def _write(self, sector: int, data: bytes) -> None:
        raise BlockDeviceError(BlockErrorKind.UNIMPLEMENTED)

    def read_sectors(self, sector: int, count: int) -> bytes:
        """Return data of count consecutive sectors starting at sector."""
        return b"".join(self.read(index) for index in range(sector, sector + count))

    def write_sectors(self, sector: int, data: bytes) -> int:
        """
        Write data to consecutive sectors starting at sector.

        The last sector is padded with zeros. Returns number of sectors written.
        """
        data = pad_sector(data)
        count = len(data) // self.sector_size
        for index in range(count):
            offset = index * self.sector_size
            self.write(sector + index, data[offset : offset + self.sector_size])
        return count

    def iter_sectors(self) -> Iterator[bytes]:
        """Return generator of all sectors in ascending order."""
        for sector in range(self.size_sectors):
            yield self.read(sector)

    def disconnect(self) -> None:
        """Disconnect device, failing any further access."""
        self.connected = False


class MemoryBlockDevice(BlockDevice):
    """
    Sparse in-memory block device.

    Sectors never written, or written with zeros, are not stored
    and read back as zeros.
    """

    def __init__(self, size_sectors: int) -> None:
        """Initialise empty device of specified size."""
        super().__init__()
        if size_sectors < 1:
            raise ValueError(f"Invalid device size '{size_sectors}'")
        self._size_sectors = size_sectors
        self._sectors: dict[int, bytes] = {}

    @property
    def size_sectors(self) -> int:
        """Return total number of sectors of device."""
        return self._size_sectors

    @property
    def allocated_sectors(self) -> list[int]:
        """Return sorted list of sectors holding data."""
        return sorted(self._sectors)

    def _read(self, sector: int) -> bytes:
        return self._sectors.get(sector, bytes(self.sector_size))

    def _write(self, sector: int, data: bytes) -> None:
        if any(data):
            self._sectors[sector] = data
        else:
            self._sectors.pop(sector, None)

    def iter_sectors(self) -> Iterator[bytes]:
        """
        Return generator of all sectors in ascending order.

        Gaps between stored sectors are filled with zero sectors,
        so exactly size_sectors blocks are produced.
        """
        if not self.connected:
            raise BlockDeviceError(BlockErrorKind.DISCONNECTED)
        zero = bytes(self.sector_size)
        position = 0
        for sector in self.allocated_sectors:
            yield from itertools.repeat(zero, sector - position)
            yield self._sectors[sector]
            position = sector + 1
        yield from itertools.repeat(zero, self.size_sectors - position)


class PartitionView(BlockDevice):
    """Block device for a range of sectors of another device."""

    def __init__(
        self, device: BlockDevice, start_sector: int, length_sectors: int
    ) -> None:
        """Initialise view of length_sectors from start_sector of device."""
        super().__init__()
        if start_sector < 0 or length_sectors < 1:
            raise ValueError(
                f"Invalid partition geometry: start '{start_sector}', "
                f"length '{length_sectors}'"
            )
        if start_sector + length_sectors > device.size_sectors:
            raise ValueError(
                f"Partition end '{start_sector + length_sectors}' exceeds "
                f"device size '{device.size_sectors}'"
            )
        self.device = device
        self.start_sector = start_sector
        self.length_sectors = length_sectors

    @property
    def size_sectors(self) -> int:
        """Return total number of sectors of partition."""
        return self.length_sectors

    @property
    def read_only(self) -> bool:
        """Return whether underlying device is read-only."""
        return self.device.read_only

    def _read(self, sector: int) -> bytes:
        return self.device.read(self.start_sector + sector)

    def _write(self, sector: int, data: bytes) -> None:
        self.device.write(self.start_sector + sector, data)


class FileBlockDevice(BlockDevice):
    """Read-only block device for a local file or block device."""

    read_only = True

    def __init__(self, path: str | Path) -> None:
        """Open path for reading."""
        super().__init__()
        self.path = Path(path).resolve()
        try:
            self._fd: BinaryIO = open(self.path, "rb")
        except OSError as exc:
            raise BlockDeviceError(BlockErrorKind.UNKNOWN, str(exc)) from exc
        try:
            self._size = self._fd.seek(0, os.SEEK_END)
        except OSError as exc:
            self._fd.close()
            raise BlockDeviceError(BlockErrorKind.UNKNOWN, str(exc)) from exc

    @property
    def size_sectors(self) -> int:
        """Return total number of sectors, counting a partial last sector."""
        return ceil_div(self._size, self.sector_size)

    def _read(self, sector: int) -> bytes:
        try:
            self._fd.seek(sector * self.sector_size)
            data = self._fd.read(self.sector_size)
        except OSError as exc:
            raise BlockDeviceError(BlockErrorKind.UNKNOWN, str(exc)) from exc
        return data.ljust(self.sector_size, b"\x00")

    def disconnect(self) -> None:
        """Close file and disconnect device."""
        self._fd.close()
        super().disconnect()


def dump(device: BlockDevice, path: str | Path) -> Path:
    """Write all sectors of device to path and return Path object."""
    path = Path(path).absolute()
    with open(path, "wb") as fd:
        for data in device.iter_sectors():
            fd.write(data)
    return path


@contextlib.contextmanager
def image_file(device: BlockDevice, write_back: bool = True) -> Iterator[Path]:
    """
    Context manager to expose device as a temporary image file.

    The file holds every sector of device. If write_back is set, the
    sectors of the file are written back to device on leaving the
    context without error.
    """
    with tempfile.TemporaryDirectory(prefix="bootdisk-") as directory:
        path = dump(device, Path(directory, "device.img"))
        yield path
        if write_back:
            with FileBlockDevice(path) as image:
                for sector, data in enumerate(image.iter_sectors()):
                    device.write(sector, data)
