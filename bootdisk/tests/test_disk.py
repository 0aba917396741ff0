"""Unit tests for building and uploading the boot disk."""

import random
from pathlib import Path

import pytest

from bootdisk.block import MemoryBlockDevice, PartitionView, dump
from bootdisk.constants import DISK_SECTORS, DISK_SIZE, KERNEL_SIZE_LIMIT, SECTOR_SIZE
from bootdisk.disk import (
    DiskGeometry,
    build_boot_disk,
    inspect_disk,
    inspect_image,
    upload_boot_disk,
    upload_raw_device,
)
from bootdisk.errors import KernelTooLargeError
from bootdisk.kernel import get_menu_lst
from bootdisk.tests.conftest import (
    PASSWORD,
    USERNAME,
    VDI_UUID,
    XAPI_URL,
    FakeUpload,
    FakeXenAPI,
    read_file,
)


def test_geometry() -> None:
    """Test default disk geometry."""
    geometry = DiskGeometry()
    assert geometry.total_sectors == DISK_SECTORS == 32768
    assert geometry.start_sector == 2048
    assert geometry.length_sectors == 30720


def test_build_boot_disk(kernel: Path) -> None:
    """Test layout of the boot disk."""
    device = build_boot_disk(kernel)
    assert device.size == DISK_SIZE
    mbr = device.read(0)
    assert mbr[510:] == b"\x55\xaa"
    entry = mbr[446:462]
    assert entry[0] == 0x80
    assert entry[4] == 0x06
    assert int.from_bytes(entry[8:12], "little") == 2048
    assert int.from_bytes(entry[12:16], "little") == 30720
    assert mbr[462:510] == bytes(48)
    # gap between MBR and partition is empty
    assert all(sector == 0 or sector >= 2048 for sector in device.allocated_sectors)
    partition = PartitionView(device, 2048, 30720)
    assert read_file(partition, "/kernel") == kernel.read_bytes()
    assert read_file(partition, "/boot/grub/menu.lst") == get_menu_lst().encode()


def test_build_boot_disk_title(kernel: Path) -> None:
    """Test title of GRUB menu entry."""
    device = build_boot_disk(kernel, title="Unikernel")
    partition = PartitionView(device, 2048, 30720)
    assert b"title Unikernel\n" in read_file(partition, "/boot/grub/menu.lst")


def test_build_largest_kernel(tmp_path: Path) -> None:
    """Test kernel one byte below the limit fits on the boot disk."""
    path = tmp_path / "limit.xen"
    data = random.Random(1).randbytes(KERNEL_SIZE_LIMIT - 1)
    path.write_bytes(data)
    device = build_boot_disk(path)
    assert read_file(PartitionView(device, 2048, 30720), "/kernel") == data


def test_build_kernel_too_large(tmp_path: Path) -> None:
    """Test oversized kernel is rejected before building."""
    path = tmp_path / "large.xen"
    with open(path, "wb") as fd:
        fd.truncate(KERNEL_SIZE_LIMIT)
    with pytest.raises(KernelTooLargeError):
        build_boot_disk(path)


def test_upload_boot_disk(
    xapi_server: FakeXenAPI, upload_server: FakeUpload, kernel: Path
) -> None:
    """Test uploading the boot disk of a kernel."""
    assert upload_boot_disk(XAPI_URL, USERNAME, PASSWORD, kernel) == VDI_UUID
    assert upload_server.blocks == DISK_SECTORS
    assert upload_server.size == DISK_SIZE
    assert xapi_server.records[0]["virtual_size"] == str(DISK_SIZE)
    uploaded = upload_server.to_device(DISK_SECTORS)
    assert read_file(PartitionView(uploaded, 2048, 30720), "/kernel") == (
        kernel.read_bytes()
    )


def test_upload_kernel_too_large(
    xapi_server: FakeXenAPI, upload_server: FakeUpload, tmp_path: Path
) -> None:
    """Test oversized kernel is rejected before contacting the pool master."""
    path = tmp_path / "large.xen"
    with open(path, "wb") as fd:
        fd.truncate(KERNEL_SIZE_LIMIT)
    with pytest.raises(KernelTooLargeError):
        upload_boot_disk(XAPI_URL, USERNAME, PASSWORD, path)
    assert xapi_server.calls == []
    assert upload_server.requests == []


def test_upload_raw_device(
    xapi_server: FakeXenAPI, upload_server: FakeUpload, tmp_path: Path
) -> None:
    """Test uploading a local image unchanged."""
    path = tmp_path / "raw.img"
    data = bytes(SECTOR_SIZE) * 3 + b"\x5a" * SECTOR_SIZE + b"\xa5" * 100
    path.write_bytes(data)
    assert upload_raw_device(XAPI_URL, USERNAME, PASSWORD, path) == VDI_UUID
    assert upload_server.blocks == 5
    assert upload_server.requests[0]["content_length"] == 5 * SECTOR_SIZE
    assert xapi_server.records[0]["virtual_size"] == str(5 * SECTOR_SIZE)
    assert upload_server.sectors == {
        3: b"\x5a" * SECTOR_SIZE,
        4: b"\xa5" * 100 + bytes(SECTOR_SIZE - 100),
    }


def test_inspect_image(tmp_path: Path, kernel: Path) -> None:
    """Test information about a dumped boot disk."""
    path = dump(build_boot_disk(kernel), tmp_path / "disk.img")
    info = inspect_image(path)
    assert info["path"] == path.resolve().as_posix()
    assert info["size"] == DISK_SIZE
    assert info["mbr_valid"]
    (partition,) = info["partitions"]
    assert partition["active"]
    assert partition["start_sector"] == 2048
    filesystem = partition["filesystem"]
    assert filesystem["hidden_sectors"] == 2048
    assert filesystem["total_sectors"] == 30720
    assert filesystem["files"] == {
        "/boot/grub/menu.lst": len(get_menu_lst()),
        "/kernel": kernel.stat().st_size,
    }
    assert filesystem["directories"] == ["/boot", "/boot/grub"]


def test_inspect_blank_disk() -> None:
    """Test information about a disk without partition table."""
    info = inspect_disk(MemoryBlockDevice(DISK_SECTORS))
    assert not info["mbr_valid"]
    assert info["partitions"] == []


def test_inspect_unformatted_partition(kernel: Path) -> None:
    """Test partition without filesystem is reported with an error."""
    device = build_boot_disk(kernel)
    device.write(2048, bytes(SECTOR_SIZE))
    (partition,) = inspect_disk(device)["partitions"]
    assert partition["filesystem"] is None
    assert "Opening FAT filesystem failed" in partition["error"]
