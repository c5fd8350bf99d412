# camtickler/net/telnet.py
from __future__ import annotations

import socket
from typing import List, Optional, Tuple

from .. import config
from ..errors import ProtocolError, TransportError
from ..utils.logger import EventLog, component_log
from .transport import Endpoint, SocketReader, _safe_close

PROMPT = b"# "
# ETX then SUB: interrupts and ends the shell so sessions don't pile up
LOGOUT = b"\x03\x1a"

IAC = 0xFF
SB = 0xFA
SE = 0xF0
_OPTION_VERBS = (0xFB, 0xFC, 0xFD, 0xFE)  # WILL WONT DO DONT


def split_iac(data: bytes) -> Tuple[bytes, bytes]:
    # (text with option negotiation dropped, trailing command still missing bytes)
    out = bytearray()
    i = 0
    n = len(data)
    while i < n:
        b = data[i]
        if b != IAC:
            out.append(b)
            i += 1
            continue
        if i + 1 >= n:
            return bytes(out), data[i:]
        cmd = data[i + 1]
        if cmd == IAC:
            out.append(IAC)
            i += 2
        elif cmd in _OPTION_VERBS:
            if i + 2 >= n:
                return bytes(out), data[i:]
            i += 3
        elif cmd == SB:
            end = data.find(bytes([IAC, SE]), i + 2)
            if end < 0:
                return bytes(out), data[i:]
            i = end + 2
        else:
            i += 2
    return bytes(out), b""


class TelnetReader(SocketReader):
    """SocketReader that removes Telnet negotiation as bytes arrive.

    Prompts and echoes are matched on clean text, even when the server
    slips a negotiation sequence into the middle of one.
    """

    def __init__(self, sock: socket.socket, chunk_size: int = config.RECV_CHUNK):
        super().__init__(sock, chunk_size)
        self._pending = b""

    def _recv(self) -> bytes:
        while True:
            data = super()._recv()
            if not data:
                return b""
            text, self._pending = split_iac(self._pending + data)
            if text:
                return text


def tokens(text: str) -> List[str]:
    return text.split()


def default_echo_marker(command: str) -> bytes:
    # the shell echoes what was typed; its last word ends the echo
    last = command.split()[-1] if command.split() else command
    return last.encode("latin-1") + b"\r\n"


class TelnetScraper:
    """Runs one command on a device shell reached over the Telnet port."""

    def __init__(self, endpoint: Endpoint, log: Optional[EventLog] = None):
        self.endpoint = endpoint
        self._log = log
        self.log = component_log(log, "telnet")

    def _expect(self, reader: SocketReader, marker: bytes, what: str) -> bytes:
        try:
            return reader.read_until(marker)
        except ProtocolError:
            raise ProtocolError(f"{what}: never saw {marker.decode('latin-1')!r}")

    def run(self, command: str, echo_marker: Optional[bytes] = None,
            failure: str = "Unexpected shell output") -> str:
        """Return the output of ``command``, without its echo or the next prompt."""
        marker = echo_marker or default_echo_marker(command)
        sock = self.endpoint.connect("telnet", log=self._log)
        reader = TelnetReader(sock)
        try:
            self.log.log({"event": "waiting_for_prompt"}, level=2)
            self._expect(reader, PROMPT, failure)

            self.log.log({"event": "sending", "command": command}, level=2)
            reader.send(command.encode("latin-1") + b"\r\n")

            self._expect(reader, marker, failure)
            raw = self._expect(reader, PROMPT, failure)
            output = raw[:-len(PROMPT)].decode("latin-1")
            self.log.log({"event": "output", "text": output}, level=2)
            return output
        finally:
            self._logout(reader)
            _safe_close(sock)

    def _logout(self, reader: SocketReader) -> None:
        try:
            reader.send(LOGOUT)
        except TransportError as e:
            self.log.log({"event": "logout_failed", "error": e.message})
