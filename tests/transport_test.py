# tests/transport_test.py

import socket
from unittest.mock import patch, MagicMock

import pytest

from camtickler.errors import ErrorKind, ProtocolError, ResolutionError, TransportError
from camtickler.net.transport import Endpoint, SocketReader, resolve_port, tcp_connect
from fakes import closed_port


def reader_over(*chunks: bytes) -> SocketReader:
    # recv hands back the chunks in order, then EOF
    sock = MagicMock()
    sock.recv.side_effect = list(chunks) + [b""]
    return SocketReader(sock)


def test_zero_port_resolves_to_registered_default():
    assert resolve_port("http") == 80
    assert resolve_port("ftp", 0) == 21
    assert resolve_port("telnet") == 23
    assert resolve_port("http", 8080) == 8080


def test_unknown_service_without_port_fails():
    with pytest.raises(ResolutionError):
        resolve_port("gopher")


def test_endpoint_http_port_is_mutable_and_reports_default():
    ep = Endpoint("cam.local")
    assert ep.http_port_in_use == 80
    ep.set_http_port(81)
    assert ep.http_port_in_use == 81
    assert ep.port_for("ftp") == 21
    assert ep.port_for("telnet") == 23


def test_endpoint_rejects_bad_port():
    with pytest.raises(ValueError):
        Endpoint("cam.local", http_port=70000)


@patch("socket.getaddrinfo")
def test_unresolvable_host_raises_resolution_error(mock_getaddrinfo):
    mock_getaddrinfo.side_effect = socket.gaierror(-2, "Name or service not known")
    with pytest.raises(ResolutionError) as exc:
        tcp_connect("no-such-camera.invalid", "http")
    assert exc.value.kind is ErrorKind.TRANSPORT
    assert isinstance(exc.value, TransportError)


def test_refused_connection_raises_resolution_error():
    with pytest.raises(ResolutionError):
        tcp_connect("127.0.0.1", "http", closed_port(), timeout=2)


def test_read_until_handles_marker_split_across_reads():
    r = reader_over(b"BusyBox\r\n#", b" rest")
    assert r.read_until(b"# ") == b"BusyBox\r\n# "
    assert r.read_to_eof() == b"rest"


def test_read_line_strips_line_endings():
    r = reader_over(b"220-first\r\n220 last\n")
    assert r.read_line() == "220-first"
    assert r.read_line() == "220 last"


def test_eof_before_marker_names_marker():
    r = reader_over(b"no prompt here")
    with pytest.raises(ProtocolError) as exc:
        r.read_until(b"# ")
    assert "'# '" in str(exc.value)


def test_socket_error_becomes_transport_error():
    sock = MagicMock()
    sock.recv.side_effect = ConnectionResetError("reset by peer")
    with pytest.raises(TransportError):
        SocketReader(sock).read_line()
