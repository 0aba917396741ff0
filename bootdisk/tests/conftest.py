"""Testing configuration."""

import random
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest
import requests
import XenAPI

from bootdisk import transport, xapi
from bootdisk.block import BlockDevice, MemoryBlockDevice, image_file
from bootdisk.constants import MIB, SECTOR_SIZE
from bootdisk.filesystem import open_filesystem

XAPI_URL = "https://xenserver.example.com"
USERNAME = "root"
PASSWORD = "secret"
VDI_REF = "OpaqueRef:4b1e7a52-vdi"
VDI_UUID = "0f3a9c4e-5d1b-4c2a-9e8f-7a6b5c4d3e2f"


class FakeXenAPI:
    """XenAPI session double recording every call."""

    def __init__(self) -> None:
        """Initialise a pool with one default SR."""
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.failures: dict[str, Exception] = {}
        self.pools = ["OpaqueRef:pool"]
        self.default_sr = "OpaqueRef:sr"
        self.records: list[dict[str, Any]] = []
        self.url: str | None = None
        self.ignore_ssl: bool | None = None
        self.xenapi = SimpleNamespace(
            login_with_password=self._method("login_with_password", "OpaqueRef:session"),
            pool=SimpleNamespace(
                get_all=self._method("pool.get_all", lambda: self.pools),
                get_default_SR=self._method("pool.get_default_SR", lambda: self.default_sr),
            ),
            VDI=SimpleNamespace(
                create=self._method("VDI.create", VDI_REF),
                get_uuid=self._method("VDI.get_uuid", VDI_UUID),
                destroy=self._method("VDI.destroy", None),
            ),
            session=SimpleNamespace(logout=self._method("session.logout", None)),
        )

    def _method(self, name: str, result: Any):
        def method(*args):
            self.calls.append((name, args))
            if name == "VDI.create":
                self.records.append(args[0])
            if name in self.failures:
                raise self.failures[name]
            return result() if callable(result) else result

        return method

    def session(self, url: str, ignore_ssl: bool = False) -> "FakeXenAPI":
        """Stand in for XenAPI.Session."""
        self.url = url
        self.ignore_ssl = ignore_ssl
        return self

    def fail(self, name: str, exc: Exception | None = None) -> None:
        """Make method raise exc, a XenAPI.Failure by default."""
        self.failures[name] = exc or XenAPI.Failure(["INTERNAL_ERROR", name])

    @property
    def names(self) -> list[str]:
        """Return names of called methods in order."""
        return [name for name, _ in self.calls]

    def count(self, name: str) -> int:
        """Return number of calls of method."""
        return self.names.count(name)


class FakeUpload:
    """Stand in for requests.put recording the streamed body."""

    def __init__(self) -> None:
        """Initialise empty upload."""
        self.requests: list[dict[str, Any]] = []
        self.blocks = 0
        self.size = 0
        self.sectors: dict[int, bytes] = {}
        self.block_sizes: set[int] = set()
        self.fail_after: int | None = None
        self.status_code = 200

    def put(self, url: str, params=None, data=None, auth=None, verify=True, timeout=None):
        """Consume body as a non-chunked upload."""
        self.requests.append(
            {
                "url": url,
                "params": params,
                "auth": auth,
                "verify": verify,
                "content_length": len(data),
            }
        )
        for block in data:
            if self.fail_after is not None and self.blocks >= self.fail_after:
                raise requests.ConnectionError("Connection reset by peer")
            self.block_sizes.add(len(block))
            if any(block):
                self.sectors[self.blocks] = block
            self.blocks += 1
            self.size += len(block)
        response = requests.Response()
        response.status_code = self.status_code
        response.url = url
        return response

    def to_device(self, size_sectors: int) -> MemoryBlockDevice:
        """Return device holding the uploaded sectors."""
        device = MemoryBlockDevice(size_sectors)
        for sector, block in self.sectors.items():
            device.write(sector, block)
        return device


def read_file(device: BlockDevice, path: str) -> bytes:
    """Return contents of file at path of FAT filesystem on device."""
    with image_file(device, write_back=False) as image:
        with open_filesystem(image, read_only=True) as filesystem:
            return filesystem.readbytes(path)


@pytest.fixture()
def xapi_server(monkeypatch) -> FakeXenAPI:
    """Replace XenAPI sessions with a recording double."""
    fake = FakeXenAPI()
    monkeypatch.setattr(xapi.XenAPI, "Session", fake.session)
    return fake


@pytest.fixture()
def upload_server(monkeypatch) -> FakeUpload:
    """Replace HTTP uploads with a recording double."""
    fake = FakeUpload()
    monkeypatch.setattr(transport.requests, "put", fake.put)
    return fake


@pytest.fixture()
def kernel(tmp_path: Path) -> Path:
    """Return path to a 1 MiB kernel of random bytes."""
    path = tmp_path / "mirage.xen"
    path.write_bytes(random.Random(0).randbytes(MIB))
    return path


@pytest.fixture()
def device() -> MemoryBlockDevice:
    """Return small device with a few sectors of data."""
    device = MemoryBlockDevice(64)
    device.write(0, b"\x01" * SECTOR_SIZE)
    device.write(7, b"\x07" * SECTOR_SIZE)
    device.write(63, b"\x3f" * SECTOR_SIZE)
    return device
