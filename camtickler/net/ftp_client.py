# camtickler/net/ftp_client.py
from __future__ import annotations

import re
import socket
from enum import Enum
from typing import BinaryIO, List, Optional, Tuple

from ..errors import ProtocolError, TransportError
from ..utils.logger import EventLog, component_log
from .progress import PROGRESS_COMPLETE, ProgressCallback, no_progress
from .transport import Endpoint, SocketReader, _safe_close

_PASV_RE = re.compile(r"(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)")


class FtpState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    PASSIVE = "passive"
    TRANSFERRING = "transferring"


def is_final_line(line: str) -> bool:
    # "226 Done" ends a reply, "226-..." or a bare continuation line does not
    return len(line) >= 3 and line[:3].isdigit() and (len(line) == 3 or line[3] == " ")


def parse_pasv(reply: str) -> int:
    """Return the data port from a 227 reply.

    The four address octets are ignored: cameras behind NAT report an
    internal address, so the data channel goes to the control host.
    """
    text = reply.split("(", 1)[1] if "(" in reply else reply[3:]
    m = _PASV_RE.search(text)
    if not m:
        raise ProtocolError(f"Unable to parse passive mode reply: {reply!r}")
    octets = [int(g) for g in m.groups()]
    if any(o > 255 for o in octets):
        raise ProtocolError(f"Invalid passive mode address: {reply!r}")
    port = octets[4] * 256 + octets[5]
    if port == 0:
        raise ProtocolError(f"Passive mode reply has no port: {reply!r}")
    return port


class FtpClient:
    """FTP client for one control connection and one transfer at a time.

    ``login`` reports a refused login as False instead of raising, since a
    rejected account is an ordinary answer while identifying a device.
    """

    def __init__(self, endpoint: Endpoint, log: Optional[EventLog] = None):
        self.endpoint = endpoint
        self._log = log
        self.log = component_log(log, "ftp")
        self.sock: Optional[socket.socket] = None
        self.reader: Optional[SocketReader] = None
        self.state = FtpState.DISCONNECTED

    @property
    def authenticated(self) -> bool:
        return self.state is not FtpState.DISCONNECTED and self.state is not FtpState.CONNECTED

    def __enter__(self) -> "FtpClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _connect(self) -> None:
        self.sock = self.endpoint.connect("ftp", log=self._log)
        self.reader = SocketReader(self.sock)
        self.state = FtpState.CONNECTED

    def _drop(self) -> None:
        _safe_close(self.sock)
        self.sock = None
        self.reader = None
        self.state = FtpState.DISCONNECTED

    def _command(self, line: str) -> None:
        if self.reader is None:
            raise ProtocolError("FTP control connection is not open")
        self.reader.send(line.encode("latin-1") + b"\r\n")

    def read_response(self) -> Tuple[int, List[str]]:
        """Read one, possibly multi-line, reply and return (code, lines)."""
        if self.reader is None:
            raise ProtocolError("FTP control connection is not open")
        lines: List[str] = []
        while True:
            line = self.reader.read_line()
            self.log.log({"event": "reply", "line": line}, level=2)
            lines.append(line)
            if is_final_line(line):
                return int(line[:3]), lines

    def _check(self, expected: int) -> bool:
        code, lines = self.read_response()
        if code != expected:
            self.log.log({"event": "unexpected_status", "status": code, "expected": expected,
                          "reply": lines[-1]})
            return False
        return True

    def login(self, user: str, password: str) -> bool:
        if self.authenticated:
            return True

        if self.sock is None:
            self._connect()

        try:
            self.log.log({"event": "waiting_for_greeting"})
            ok = self._check(220)
            if ok:
                self.log.log({"event": "greeting_received", "user": user})
                self._command(f"USER {user}")
                ok = self._check(331)
            if ok:
                self._command(f"PASS {password}")
                ok = self._check(230)
            if ok:
                self.log.log({"event": "login_ok", "user": user})
                self._command("TYPE I")
                ok = self._check(200)
        except ProtocolError as e:
            self.log.log({"event": "login_aborted", "error": e.message})
            ok = False
        except TransportError:
            self._drop()
            raise

        if not ok:
            self._drop()
            return False

        self.log.log({"event": "binary_mode_ok"}, level=2)
        self.state = FtpState.AUTHENTICATED
        return True

    def get(self,
            target: BinaryIO,
            remote_dir: str,
            remote_file: str,
            on_progress: ProgressCallback = no_progress,
            total: int = 0) -> bool:
        """Stream ``remote_dir/remote_file`` into ``target``.

        ``on_progress`` sees (bytes so far, total) after every chunk and a
        last (bytes so far, PROGRESS_COMPLETE) once the data channel closes.
        """
        if not self.authenticated:
            raise ProtocolError("FTP session is not logged in")

        self.log.log({"event": "set_passive"})
        self._command("PASV")
        code, lines = self.read_response()
        if code != 227:
            self.log.log({"event": "passive_refused", "reply": lines[-1]})
            return False
        port = parse_pasv(lines[-1])
        self.state = FtpState.PASSIVE
        self.log.log({"event": "passive_ok", "data_port": port})

        data_sock = self.endpoint.connect("ftp", port=port, log=self._log)
        try:
            self._command(f"CWD {remote_dir}")
            if not self._check(250):
                self.state = FtpState.AUTHENTICATED
                return False

            self._command(f"RETR {remote_file}")
            if not self._check(150):
                self.state = FtpState.AUTHENTICATED
                return False

            self.state = FtpState.TRANSFERRING
            self.log.log({"event": "receiving", "file": f"{remote_dir}/{remote_file}"})
            amount = 0
            for chunk in SocketReader(data_sock).chunks():
                target.write(chunk)
                amount += len(chunk)
                on_progress(amount, total)
            on_progress(amount, PROGRESS_COMPLETE)
        finally:
            _safe_close(data_sock)

        ok = self._check(226)
        self.state = FtpState.AUTHENTICATED
        if ok:
            self.log.log({"event": "download_complete", "bytes": amount})
        return ok

    def close(self) -> None:
        if self.reader is None:
            self.state = FtpState.DISCONNECTED
            return
        try:
            self._command("QUIT")
        except TransportError as e:
            self.log.log({"event": "quit_failed", "error": e.message})
        finally:
            self._drop()
