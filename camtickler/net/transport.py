# camtickler/net/transport.py

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Iterator, Optional

from .. import config
from ..errors import ProtocolError, ResolutionError, TransportError
from ..utils.helpers import validate_port
from ..utils.logger import EventLog, component_log


def resolve_port(service: str, port: int = 0) -> int:
    # 0 means the registered default for the service
    if port:
        return validate_port(port)
    try:
        return config.SERVICE_PORTS[service]
    except KeyError:
        raise ResolutionError(f"No default port known for service {service!r}")


def _safe_close(sock: Optional[socket.socket]) -> None:
    if sock:
        try:
            sock.close()
        except OSError:
            pass


def tcp_connect(host: str,
                service: str,
                port: int = 0,
                timeout: float = config.DEFAULT_TIMEOUT,
                log: Optional[EventLog] = None) -> socket.socket:
    """Resolve ``host`` and return a connected socket for ``service``.

    Each resolved address is tried in order and the first one that accepts
    wins. Nothing is retried; the caller decides whether another port is
    worth a try. The returned socket belongs to the caller.
    """
    clog = component_log(log, "tcp")
    real_port = resolve_port(service, port)

    try:
        infos = socket.getaddrinfo(host, real_port, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ResolutionError(f"Unable to resolve {host}: {e}")

    clog.log({"event": "connecting", "host": host, "port": real_port, "service": service})

    last_error: Optional[OSError] = None
    for family, socktype, proto, _, sockaddr in infos:
        sock = None
        try:
            sock = socket.socket(family, socktype, proto)
            sock.settimeout(timeout)
            sock.connect(sockaddr)
            return sock
        except OSError as e:
            last_error = e
            _safe_close(sock)

    raise ResolutionError(
        f"Unable to connect to {host} port {real_port} ({service}): {last_error}"
    )


@dataclass
class Endpoint:
    """A target host and the ports used to reach each of its services."""

    host: str
    http_port: int = 0
    ftp_port: int = 0
    telnet_port: int = 0
    timeout: float = config.DEFAULT_TIMEOUT

    def __post_init__(self):
        self.http_port = validate_port(self.http_port)
        self.ftp_port = validate_port(self.ftp_port)
        self.telnet_port = validate_port(self.telnet_port)

    def set_http_port(self, port: int) -> None:
        self.http_port = validate_port(port)

    @property
    def http_port_in_use(self) -> int:
        return resolve_port("http", self.http_port)

    def port_for(self, service: str) -> int:
        ports = {"http": self.http_port, "ftp": self.ftp_port, "telnet": self.telnet_port}
        return resolve_port(service, ports.get(service, 0))

    def connect(self, service: str, port: int = 0,
                log: Optional[EventLog] = None) -> socket.socket:
        # explicit port overrides the endpoint's own, e.g. an FTP data channel
        return tcp_connect(self.host, service, port or self.port_for(service),
                           timeout=self.timeout, log=log)


class SocketReader:
    """Buffered reads over a socket the caller owns.

    Bytes read past a marker stay in ``buffer`` for the next call, so one
    reader must be used for the whole conversation on a socket.
    """

    def __init__(self, sock: socket.socket, chunk_size: int = config.RECV_CHUNK):
        self.sock = sock
        self.chunk_size = chunk_size
        self.buffer = bytearray()

    def _recv(self) -> bytes:
        try:
            return self.sock.recv(self.chunk_size)
        except OSError as e:
            raise TransportError(f"Socket read failed: {e}")

    def _fill(self) -> bool:
        data = self._recv()
        if not data:
            return False
        self.buffer += data
        return True

    def send(self, data: bytes) -> None:
        try:
            self.sock.sendall(data)
        except OSError as e:
            raise TransportError(f"Socket write failed: {e}")

    def read_until(self, marker: bytes) -> bytes:
        start = 0
        while True:
            idx = self.buffer.find(marker, start)
            if idx >= 0:
                end = idx + len(marker)
                out = bytes(self.buffer[:end])
                del self.buffer[:end]
                return out
            # marker may straddle two reads
            start = max(0, len(self.buffer) - len(marker) + 1)
            if not self._fill():
                raise ProtocolError(
                    f"Connection closed while waiting for {marker.decode('latin-1')!r}"
                )

    def read_line(self) -> str:
        line = self.read_until(b"\n")
        return line.rstrip(b"\r\n").decode("latin-1")

    def chunks(self) -> Iterator[bytes]:
        # buffered leftovers first, then raw reads until the peer closes
        if self.buffer:
            data = bytes(self.buffer)
            self.buffer.clear()
            yield data
        while True:
            data = self._recv()
            if not data:
                return
            yield data

    def read_to_eof(self) -> bytes:
        return b"".join(self.chunks())
