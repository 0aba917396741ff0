"""Constants for disk, partition table and filesystem layout."""

MIB = 1024 * 1024

SECTOR_SIZE = 512
DISK_SIZE = 16 * MIB
DISK_SECTORS = DISK_SIZE // SECTOR_SIZE
PARTITION_START_SECTOR = 2048
KERNEL_SIZE_LIMIT = 14 * MIB

# Partition table
DISK_LABEL_TYPE = "msdos"
PARTITION_FILESYSTEM_TYPE = "fat16"
CHS_HEADS = 255
CHS_SECTORS_PER_TRACK = 63

# FAT16
FAT_LABEL = "BOOTDISK"

# Boot files
KERNEL_PATH = "/kernel"
GRUB_DIRECTORY = "/boot/grub"
MENU_LST_PATH = f"{GRUB_DIRECTORY}/menu.lst"
MENU_TITLE = "Mirage"
MENU_LST_TEMPLATE = (
    "default 0\n"
    "timeout 1\n"
    "title {title}\n"
    "root (hd0,0)\n"
    "kernel {kernel}\n"
)

# XenAPI
XAPI_VERSION = "1.0"
XAPI_ORIGINATOR = "bootdisk"
XAPI_NULL_REF = "OpaqueRef:NULL"
VDI_NAME_LABEL = "upload_disk"
VDI_TYPE = "user"
IMPORT_RAW_VDI_PATH = "/import_raw_vdi"
UPLOAD_TIMEOUT = 300
