"""Command-line interface for building and uploading boot disks."""

import json
import logging
import sys
from argparse import ArgumentParser, Namespace
from pprint import pprint

from bootdisk.block import dump
from bootdisk.config import DEFAULT_CONFIG_PATH, ConfigParser, ConnectionSettings
from bootdisk.constants import MENU_TITLE, VDI_NAME_LABEL
from bootdisk.disk import (
    build_boot_disk,
    inspect_image,
    upload_boot_disk,
    upload_raw_device,
)

logger = logging.getLogger(__name__)


def get_parser() -> ArgumentParser:
    """Return argument parser instance."""
    parser = ArgumentParser(
        prog="bootdisk",
        description="Build a bootable disk for a kernel and upload it to a XenServer VDI",
    )
    subparsers = parser.add_subparsers(
        dest="command", help="action to perform", required=True
    )

    parser_kernel = subparsers.add_parser(
        "kernel", help="build boot disk for kernel and upload it"
    )
    parser_kernel.add_argument("kernel", help="path to kernel image")
    parser_kernel.add_argument(
        "--title", default=MENU_TITLE, help="title of GRUB menu entry"
    )
    parser_raw = subparsers.add_parser(
        "raw", help="upload raw device or disk image unchanged"
    )
    parser_raw.add_argument("device", help="path to device or image file")
    parser_build = subparsers.add_parser(
        "build", help="build boot disk for kernel and write it locally"
    )
    parser_build.add_argument("kernel", help="path to kernel image")
    parser_build.add_argument("output", help="path to write disk image")
    parser_build.add_argument(
        "--title", default=MENU_TITLE, help="title of GRUB menu entry"
    )
    parser_info = subparsers.add_parser(
        "info", help="display partitions and files of a disk image"
    )
    parser_info.add_argument("image", help="path to disk image")
    parser_info.add_argument(
        "--json", action="store_true", help="format result as JSON"
    )

    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--url", help="URL of pool master")
    parser.add_argument("--username", help="user to log in as")
    parser.add_argument("--password", help="password of user")
    parser.add_argument(
        "--name-label", default=VDI_NAME_LABEL, help="name label of created VDI"
    )
    parser.add_argument(
        "--no-verify",
        dest="verify",
        action="store_const",
        const=False,
        help="do not verify TLS certificate of pool master",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log progress of each stage"
    )
    return parser


def get_settings(args: Namespace) -> ConnectionSettings:
    """Return connection settings from configuration file and arguments."""
    config = ConfigParser(args.config)
    return config.get_settings(
        url=args.url,
        username=args.username,
        password=args.password,
        verify=args.verify,
    )


def run(args: Namespace) -> None:
    """Perform command for parsed arguments."""
    match args.command:
        case "kernel":
            settings = get_settings(args)
            print(
                upload_boot_disk(
                    settings.url,
                    settings.username,
                    settings.password,
                    args.kernel,
                    title=args.title,
                    name_label=args.name_label,
                    verify=settings.verify,
                    timeout=settings.timeout,
                )
            )
        case "raw":
            settings = get_settings(args)
            print(
                upload_raw_device(
                    settings.url,
                    settings.username,
                    settings.password,
                    args.device,
                    name_label=args.name_label,
                    verify=settings.verify,
                    timeout=settings.timeout,
                )
            )
        case "build":
            device = build_boot_disk(args.kernel, title=args.title)
            print(dump(device, args.output))
        case "info":
            info = inspect_image(args.image)
            if args.json:
                print(json.dumps(info))
            else:
                pprint(info)
        case _:
            # argparse should catch this, so do not handle gracefully
            raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and run command, exiting non-zero on failure."""
    parser = get_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    try:
        run(args)
    except Exception as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
