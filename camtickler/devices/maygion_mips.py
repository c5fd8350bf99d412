# camtickler/devices/maygion_mips.py
from __future__ import annotations

from typing import BinaryIO, Dict

from ..errors import ProtocolError
from ..net.ftp_client import FtpClient
from ..net.progress import ProgressCallback, fixed_total
from ..net.telnet import TelnetScraper, tokens
from ..utils.helpers import parse_hex
from .base import CameraInfo, Device, DeviceFamily

FTP_USER = "MayGion"
FTP_PASS = "maygion.com"

FIRMWARE_DIR = "/dev"
FIRMWARE_FILE = "mtdblock0"

MTD_COMMAND = "cat /proc/mtd"
_USB_DIR = "/sys/class/video4linux/video0/device"
USB_COMMAND = (
    f"cat {_USB_DIR}/../idVendor ; "
    f"cat {_USB_DIR}/../idProduct ; "
    f"cat {_USB_DIR}/bInterfaceClass"
)


def parse_mtd_table(text: str) -> Dict[str, int]:
    """Map partition name ("mtd0") to size from /proc/mtd output."""
    rows = [line.split() for line in text.splitlines() if line.strip()]
    if not rows or rows[0][0] != "dev:":
        raise ProtocolError("Unable to get MTD info.")
    table: Dict[str, int] = {}
    for row in rows[1:]:
        if len(row) < 2 or not row[0].endswith(":"):
            continue
        try:
            table[row[0][:-1]] = parse_hex(row[1])
        except ValueError:
            continue
    return table


class MaygionMips(Device):
    """MayGion IP cameras on MIPS boards (busybox shell, vsftpd style FTP)."""

    family = DeviceFamily.MAYGION_MIPS
    KNOWN_MODELS = {
        (0x400000, 0x0C45, 0x6360): "1.0",
    }

    def get_firmware(self, target: BinaryIO, on_progress: ProgressCallback) -> None:
        ftp = FtpClient(self.endpoint, self._log)
        try:
            if not ftp.login(FTP_USER, FTP_PASS):
                raise ProtocolError("Unable to log in to device via FTP.")
            flash_len = self.get_flash_info()
            ok = ftp.get(target, FIRMWARE_DIR, FIRMWARE_FILE, fixed_total(flash_len, on_progress))
            if not ok:
                raise ProtocolError(f"Unable to download {FIRMWARE_DIR}/{FIRMWARE_FILE}.")
        finally:
            ftp.close()

    def get_flash_info(self) -> int:
        output = TelnetScraper(self.endpoint, self._log).run(
            MTD_COMMAND, echo_marker=b"/proc/mtd\r\n", failure="Unable to get MTD info.")
        table = parse_mtd_table(output)
        if "mtd0" not in table:
            raise ProtocolError("mtdblock0 doesn't exist!")
        length = table["mtd0"]
        self.log.log({"event": "flash_size", "partition": "mtd0", "bytes": length})
        return length

    def get_camera_info(self) -> CameraInfo:
        output = TelnetScraper(self.endpoint, self._log).run(
            USB_COMMAND, echo_marker=b"Class\r\n", failure="Unable to get camera info.")
        fields = tokens(output)
        try:
            vendor, product, iclass = (parse_hex(t) for t in fields[:3])
        except ValueError:
            raise ProtocolError(f"Unable to get camera info: unexpected output {output!r}")
        info = CameraInfo(vendor, product, iclass)
        self.log.log({"event": "camera_info", "vendor": f"{vendor:04x}",
                      "product": f"{product:04x}", "class": f"{iclass:02x}"})
        return info
