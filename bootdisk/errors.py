"""Exceptions raised while building or uploading a disk."""

from enum import Enum


class BlockErrorKind(Enum):
    """Enumeration for failures of a block device."""

    UNIMPLEMENTED = "Unimplemented"
    IS_READ_ONLY = "Is_read_only"
    DISCONNECTED = "Disconnected"
    UNKNOWN = "Unknown"


class BootDiskError(Exception):
    """Base class for all errors raised by bootdisk."""


class BlockDeviceError(BootDiskError):
    """Error raised by a block device operation."""

    def __init__(self, kind: BlockErrorKind, message: str | None = None) -> None:
        """Initialise error with kind and optional message."""
        self.kind = kind
        self.message = message
        super().__init__(message or kind.value)


class PartitionTableError(BootDiskError):
    """Error raised while writing or reading a partition table."""


class FilesystemError(BootDiskError):
    """Error raised by a filesystem operation."""


class KernelTooLargeError(BootDiskError):
    """Kernel does not fit on the boot disk."""


class AuthenticationError(BootDiskError):
    """Login to the management API failed."""


class StorageLookupError(BootDiskError):
    """Pool or default storage repository could not be found."""


class VdiCreateError(BootDiskError):
    """Virtual disk image could not be created."""


class TransportError(BootDiskError):
    """Upload of disk contents failed."""
