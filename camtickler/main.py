# camtickler/main.py

from __future__ import annotations
import argparse
import sys
from typing import List, Optional, TextIO

from . import config
from .devices.base import Device
from .devices.registry import list_types, open_device
from .errors import CamTicklerError
from .net.progress import console_progress
from .net.transport import Endpoint
from .scanner.identify import IdentifyResult, Identifier
from .utils.logger import EventLog

PROGNAME = "camtickler"

RET_OK = 0           # all is good
RET_BADARGS = 1      # bad/missing arguments
RET_SHOWSTOPPER = 2  # a requested action failed

EXAMPLES = f"""
Example:
  {PROGNAME} --host 1.2.3.4 --identify  # Get value to use in --type
  {PROGNAME} --host 1.2.3.4 --type device-type --query
"""


def run_identify(endpoint: Endpoint, log: EventLog, out: TextIO, err: TextIO) -> IdentifyResult:
    identifier = Identifier(endpoint, log, on_progress=console_progress("Retrieving config", err))
    result = identifier.identify()

    if result.http_port:
        out.write(f"http_port={result.http_port}\n")
    creds = result.credentials
    if creds.username and creds.password:
        out.write(f"admin_username={creds.username}\nadmin_password={creds.password}\n")
    out.write(f"device_type={result.device_type}\n")
    if not result.identified:
        err.write("Unable to identify device!\n")
    return result


def run_query(device: Device, out: TextIO, err: TextIO) -> bool:
    try:
        flash_len = device.get_flash_info()
        out.write(f"flash_size={flash_len}\n")

        info = device.get_camera_info()
        out.write(
            f"camera_usb_vendor={info.vendor_id:04x}\n"
            f"camera_usb_product={info.product_id:04x}\n"
            f"camera_usb_class={info.interface_class:02x}\n"
        )

        model = device.describe(flash_len, info)
        out.write(f"model={model.model}\nfwid={model.fwid}\n")
        if not model.known:
            err.write("\n\n >>> This camera is an unknown model!  Please get in touch!\n"
                      "http://www.openipcam.com/forum/\n\n")
    except CamTicklerError as e:
        err.write(f"Device query failed: {e.message}\n")
        return False
    return True


def run_dump(device: Device, filename: str, out: TextIO, err: TextIO) -> bool:
    try:
        with open(filename, "wb") as fh:
            device.get_firmware(fh, console_progress("Downloading firmware", err))
    except CamTicklerError as e:
        err.write(f"Download failed: {e.message}\n")
        return False
    except OSError as e:
        err.write(f"Unable to write {filename}: {e}\n")
        return False
    out.write(f"Saved to {filename}\n")
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROGNAME,
        description="Utility to identify network attached cameras and manipulate firmware.",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    actions = parser.add_argument_group("Actions")
    actions.add_argument("-i", "--identify", action="store_true", help="identify device")
    actions.add_argument("-q", "--query", action="store_true",
                         help="query details about a known device")
    actions.add_argument("-d", "--dump-firmware", metavar="FILE",
                         help="copy firmware from device's flash into this file")
    actions.add_argument("--list-types", action="store_true",
                         help="list the supported device types")

    options = parser.add_argument_group("Options")
    options.add_argument("-t", "--type", dest="device_type",
                         help="specify the device type (required unless using --identify)")
    options.add_argument("-H", "--host", help="hostname or IP address of device")
    options.add_argument("-v", "--verbose", action="count", default=0,
                         help="show more detail (can specify twice for even more detail)")
    options.add_argument("--log-file", nargs="?", const=str(config.DEFAULT_LOGFILE),
                         help=f"append a JSON event log (default {config.DEFAULT_LOGFILE})")
    return parser


def main(argv: Optional[List[str]] = None,
         out: TextIO = sys.stdout,
         err: TextIO = sys.stderr) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 0 for --help and 2 for bad syntax
        return RET_OK if e.code == 0 else RET_BADARGS

    if args.list_types:
        for type_id, description in list_types():
            out.write(f"{type_id}\t{description}\n")
        return RET_OK

    if not args.host:
        err.write(f"{PROGNAME}: a hostname must be specified.\n")
        return RET_BADARGS

    if not (args.identify or args.query or args.dump_firmware):
        parser.print_help(err)
        return RET_BADARGS

    log = EventLog(verbosity=args.verbose, logfile=args.log_file, stream=err)
    endpoint = Endpoint(args.host)
    device_type = args.device_type
    failed = False

    if args.identify:
        result = run_identify(endpoint, log, out, err)
        if result.identified and not device_type:
            device_type = result.device_type

    if args.query or args.dump_firmware:
        try:
            device = open_device(device_type or "", endpoint, log)
        except KeyError:
            err.write(f"{PROGNAME}: --type missing or invalid.\n")
            return RET_BADARGS

        if args.query and not run_query(device, out, err):
            failed = True
        if args.dump_firmware and not run_dump(device, args.dump_firmware, out, err):
            failed = True

    return RET_SHOWSTOPPER if failed else RET_OK


if __name__ == "__main__":
    sys.exit(main())
