"""Stream the sectors of a block device into a VDI over HTTP."""

import logging
from typing import Iterator
from urllib.parse import urljoin

import requests

from bootdisk.block import BlockDevice
from bootdisk.constants import IMPORT_RAW_VDI_PATH, UPLOAD_TIMEOUT
from bootdisk.errors import BlockDeviceError, BlockErrorKind, TransportError

logger = logging.getLogger(__name__)


class SectorStream:
    """
    Request body producing every sector of a device in ascending order.

    Defining __len__ makes requests declare a Content-Length, so the
    upload is sent without chunked transfer encoding.
    """

    def __init__(self, device: BlockDevice) -> None:
        """Initialise stream for device."""
        self.device = device
        self.sectors_sent = 0

    def __len__(self) -> int:
        """Return number of bytes in body."""
        return self.device.size

    def __iter__(self) -> Iterator[bytes]:
        """Yield one sector at a time, read as it is sent."""
        self.sectors_sent = 0
        for data in self.device.iter_sectors():
            self.sectors_sent += 1
            yield data
        if self.sectors_sent != self.device.size_sectors:
            raise BlockDeviceError(
                BlockErrorKind.UNKNOWN,
                f"Device produced '{self.sectors_sent}' of "
                f"'{self.device.size_sectors}' sectors",
            )


def get_import_url(url: str) -> str:
    """Return URL of raw VDI import handler on pool master at url."""
    return urljoin(url, IMPORT_RAW_VDI_PATH)


def put_raw_vdi(
    url: str,
    vdi: str,
    device: BlockDevice,
    auth: tuple[str, str],
    verify: bool = True,
    timeout: float | None = UPLOAD_TIMEOUT,
) -> int:
    """
    Upload all sectors of device as raw contents of vdi.

    Returns number of sectors sent. Raises TransportError if the
    request fails or the server rejects the upload.
    """
    stream = SectorStream(device)
    try:
        response = requests.put(
            get_import_url(url),
            params={"vdi": vdi, "format": "raw"},
            data=stream,
            auth=auth,
            verify=verify,
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.RequestException as exc:
        raise TransportError(f"Upload to VDI '{vdi}' failed: {exc}") from exc
    logger.info("Uploaded %d sectors (%d bytes) to %s", stream.sectors_sent, len(stream), vdi)
    return stream.sectors_sent
