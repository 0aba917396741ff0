"""Collection of functions to assist other modules."""

from bootdisk.constants import SECTOR_SIZE


def ceil_div(a: int, b: int) -> int:
    """Return a divided by b, rounded up."""
    return -(-a // b)


def pad_sector(data: bytes) -> bytes:
    """Return data padded with zeros to a whole number of sectors."""
    remainder = len(data) % SECTOR_SIZE
    if not remainder:
        return data
    return data + bytes(SECTOR_SIZE - remainder)
