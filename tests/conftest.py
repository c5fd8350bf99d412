# tests/conftest.py
import pytest

from camtickler.net.transport import Endpoint
from fakes import FakeServer, closed_port


@pytest.fixture
def serve():
    # Start handlers on fresh local ports; everything is closed afterwards
    servers = []

    def _start(handler):
        server = FakeServer(handler)
        servers.append(server)
        return server

    yield _start

    for s in servers:
        s.close()


@pytest.fixture
def endpoint_for():
    def _make(http=None, ftp=None, telnet=None) -> Endpoint:
        return Endpoint(
            "127.0.0.1",
            http_port=http.port if http else closed_port(),
            ftp_port=ftp.port if ftp else closed_port(),
            telnet_port=telnet.port if telnet else closed_port(),
            timeout=5,
        )

    return _make
