"""Upload a block device into a new VDI."""

import logging

from bootdisk.block import BlockDevice
from bootdisk.constants import UPLOAD_TIMEOUT, VDI_NAME_LABEL
from bootdisk.errors import BlockDeviceError, BlockErrorKind
from bootdisk.transport import put_raw_vdi
from bootdisk.xapi import logged_in, scratch_vdi

logger = logging.getLogger(__name__)


def upload(
    url: str,
    username: str,
    password: str,
    device: BlockDevice,
    name_label: str = VDI_NAME_LABEL,
    verify: bool = True,
    timeout: float | None = UPLOAD_TIMEOUT,
) -> str:
    """
    Create a VDI on the default SR and fill it with the sectors of device.

    The VDI has the size of device. If anything fails after the VDI
    has been created, it is destroyed before the error is re-raised.
    The session is logged out in every case. Returns UUID of the VDI.

    An empty device is rejected before logging in, as its body could
    not be sent with a Content-Length.
    """
    if not device.size_sectors:
        raise BlockDeviceError(BlockErrorKind.UNKNOWN, "Cannot upload empty device")
    with logged_in(url, username, password, verify=verify) as session:
        sr = session.get_default_sr()
        with scratch_vdi(session, sr, device.size, name_label=name_label) as vdi:
            vdi_uuid = session.get_vdi_uuid(vdi)
            put_raw_vdi(
                url,
                vdi,
                device,
                auth=(username, password),
                verify=verify,
                timeout=timeout,
            )
    logger.info("Upload to VDI %s complete", vdi_uuid)
    return vdi_uuid
