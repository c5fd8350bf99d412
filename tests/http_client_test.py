# tests/http_client_test.py

import io

import pytest

from camtickler.errors import ProbeUnavailable, ProtocolError
from camtickler.net.http_client import HttpClient, build_request, parse_status_line
from fakes import FakeHttp, closed_port, http_response
from camtickler.net.transport import Endpoint
from camtickler.utils.logger import EventLog


def test_request_is_http10_with_close():
    req = build_request("10.0.0.5", "/sysinfo.xml")
    assert req == (b"GET /sysinfo.xml HTTP/1.0\r\n"
                   b"Host: 10.0.0.5\r\n"
                   b"Accept: */*\r\n"
                   b"Connection: close\r\n\r\n")


def test_parse_status_line():
    assert parse_status_line("HTTP/1.0 200 OK") == ("HTTP/1.0", 200, "OK")
    with pytest.raises(ProtocolError):
        parse_status_line("SSH-2.0-dropbear")


def test_headers_are_trimmed_and_ordered(serve):
    fake = FakeHttp({"/": http_response(200, ["Server: WebServer(IPCamera_Logo)",
                                              "Content-Type: text/html"], b"<html></html>")})
    server = serve(fake)
    client = HttpClient(Endpoint("127.0.0.1", http_port=server.port, timeout=5))

    headers = client.headers()

    assert headers == ["Server: WebServer(IPCamera_Logo)", "Content-Type: text/html"]
    assert fake.paths == ["/"]
    assert "Connection: close" in fake.requests[0]


def test_headers_unavailable_when_port_closed():
    client = HttpClient(Endpoint("127.0.0.1", http_port=closed_port(), timeout=2))
    with pytest.raises(ProbeUnavailable):
        client.headers()


def test_headerless_reply_is_an_empty_list(serve):
    server = serve(FakeHttp({"/": b"HTTP/1.0 200 OK\r\n\r\n"}))
    client = HttpClient(Endpoint("127.0.0.1", http_port=server.port, timeout=5))
    assert client.headers() == []


def test_truncated_head_keeps_what_arrived(serve):
    server = serve(FakeHttp({"/": b"HTTP/1.0 200 OK\r\nServer: x\r\n"}))
    stream = io.StringIO()
    log = EventLog(verbosity=1, stream=stream)
    client = HttpClient(Endpoint("127.0.0.1", http_port=server.port, timeout=5), log)

    assert client.headers() == ["Server: x"]
    assert "[http] truncated_head" in stream.getvalue()


def test_headers_empty_for_non_http_service(serve):
    server = serve(lambda conn: (conn.recv(1024), conn.sendall(b"SSH-2.0-dropbear_0.52\r\n")))
    stream = io.StringIO()
    log = EventLog(verbosity=1, stream=stream)
    client = HttpClient(Endpoint("127.0.0.1", http_port=server.port, timeout=5), log)

    assert client.headers() == []
    assert "[http] not_http" in stream.getvalue()
    assert "truncated_head" not in stream.getvalue()


def test_get_returns_body_up_to_close(serve):
    body = b"<Result><Success>1</Success>\n<Board>MIPS</Board></Result>" * 200
    server = serve(FakeHttp({"/sysinfo.xml": http_response(200, ["Server: x"], body)}))
    client = HttpClient(Endpoint("127.0.0.1", http_port=server.port, timeout=5))
    assert client.get("/sysinfo.xml") == body


def test_get_non_200_is_empty(serve):
    server = serve(FakeHttp({}))
    client = HttpClient(Endpoint("127.0.0.1", http_port=server.port, timeout=5))
    assert client.get("/missing") == b""


def test_get_rejects_non_http_reply(serve):
    server = serve(lambda conn: (conn.recv(1024), conn.sendall(b"220 FTP ready\r\n")))
    client = HttpClient(Endpoint("127.0.0.1", http_port=server.port, timeout=5))
    with pytest.raises(ProtocolError):
        client.get("/")
