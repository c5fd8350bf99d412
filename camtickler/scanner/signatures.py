# camtickler/scanner/signatures.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..devices import maygion_mips
from ..devices.base import DeviceFamily


@dataclass(frozen=True)
class FamilySignature:
    """What each probe looks for when testing one device family."""

    family: DeviceFamily
    server_header: Optional[str] = None
    # format string taking user= and password= query values
    status_path: Optional[str] = None
    # <ErrorCode> values meaning "alive, but our credentials were refused"
    unauthorized_codes: Tuple[str, ...] = ()
    board_id: Optional[str] = None
    ftp_user: Optional[str] = None
    ftp_pass: Optional[str] = None
    config_dir: Optional[str] = None
    config_file: Optional[str] = None

    @property
    def type_id(self) -> str:
        return self.family.value


MAYGION_MIPS = FamilySignature(
    family=DeviceFamily.MAYGION_MIPS,
    server_header="WebServer(IPCamera_Logo)",
    status_path="/sysinfo.xml?user={user}&password={password}",
    unauthorized_codes=(
        "eHttpError_No_Auth",  # newer firmware
        "5",                   # older firmware
    ),
    board_id="MIPS",
    ftp_user=maygion_mips.FTP_USER,
    ftp_pass=maygion_mips.FTP_PASS,
    config_dir="/tmp/eye/app",
    config_file="cs.ini",
)

KNOWN_SIGNATURES: List[FamilySignature] = [MAYGION_MIPS]
