# camtickler/net/http_client.py
from __future__ import annotations

import socket
from typing import List, Optional, Tuple

from ..errors import ProbeUnavailable, ProtocolError, TransportError
from ..utils.logger import EventLog, component_log
from .transport import Endpoint, SocketReader, _safe_close


def build_request(host: str, path: str) -> bytes:
    # Connection: close lets everything up to EOF be treated as the body
    return (
        f"GET {path} HTTP/1.0\r\n"
        f"Host: {host}\r\n"
        f"Accept: */*\r\n"
        f"Connection: close\r\n\r\n"
    ).encode("latin-1")


def parse_status_line(line: str) -> Tuple[str, int, str]:
    parts = line.split(None, 2)
    if not parts or not parts[0].startswith("HTTP/"):
        raise ProtocolError(f"Invalid HTTP response: {line[:60]!r}")
    try:
        code = int(parts[1])
    except (IndexError, ValueError):
        raise ProtocolError(f"Invalid HTTP status line: {line[:60]!r}")
    reason = parts[2] if len(parts) > 2 else ""
    return parts[0], code, reason


def _read_head(reader: SocketReader) -> Tuple[int, List[str], bool]:
    # status line plus header lines up to the blank separator;
    # the flag is False when the peer closed before the blank line
    _, code, _ = parse_status_line(reader.read_line())
    headers: List[str] = []
    while True:
        try:
            line = reader.read_line()
        except ProtocolError:
            return code, headers, False
        if line == "":
            return code, headers, True
        headers.append(line)


class HttpClient:
    """Minimal HTTP/1.0 client for embedded web servers.

    No keep-alive and no chunked decoding: every request opens a fresh
    connection and the response ends when the server closes it.
    """

    def __init__(self, endpoint: Endpoint, log: Optional[EventLog] = None):
        self.endpoint = endpoint
        self._log = log
        self.log = component_log(log, "http")

    def _open(self, path: str) -> Tuple[socket.socket, SocketReader]:
        sock = self.endpoint.connect("http", log=self._log)
        reader = SocketReader(sock)
        try:
            reader.send(build_request(self.endpoint.host, path))
        except TransportError:
            _safe_close(sock)
            raise
        return sock, reader

    def headers(self, path: str = "/") -> List[str]:
        """Return the response header lines for ``path``.

        Raises ProbeUnavailable when nothing accepts the connection. Once a
        peer has answered the result is a list, empty when the reply had no
        headers or was not HTTP at all.
        """
        port = self.endpoint.http_port_in_use
        self.log.log({"event": "get_headers", "port": port})
        try:
            sock, reader = self._open(path)
        except TransportError as e:
            self.log.log({"event": "connect_failed", "port": port, "error": e.to_dict()})
            raise ProbeUnavailable(f"No HTTP service on port {port}: {e.message}")

        try:
            _, headers, complete = _read_head(reader)
        except ProtocolError as e:
            self.log.log({"event": "not_http", "port": port, "error": e.to_dict()})
            return []
        except TransportError as e:
            self.log.log({"event": "read_failed", "port": port, "error": e.to_dict()})
            return []
        finally:
            _safe_close(sock)

        if not complete:
            self.log.log({"event": "truncated_head", "port": port, "headers": len(headers)})
        for h in headers:
            self.log.log({"event": "header", "value": h}, level=2)
        return headers

    def get(self, path: str) -> bytes:
        """Download ``path`` and return the body; b"" unless the status is 200."""
        self.log.log({"event": "download", "path": path})
        sock, reader = self._open(path)
        try:
            code, headers, _ = _read_head(reader)
            if code != 200:
                self.log.log({"event": "unexpected_status", "status": code})
                return b""
            for h in headers:
                self.log.log({"event": "header", "value": h}, level=2)
            content = reader.read_to_eof()
        finally:
            _safe_close(sock)

        self.log.log({"event": "download_ok", "bytes": len(content)})
        self.log.log({"event": "content", "body": content.decode("latin-1")}, level=2)
        return content
