# tests/main_test.py

import io

import pytest

from camtickler import main as cli
from camtickler.devices.base import CameraInfo
from camtickler.devices.maygion_mips import MaygionMips
from camtickler.errors import ProtocolError
from camtickler.scanner.config_blob import Credentials
from camtickler.scanner.identify import IdentifyResult


class StubCamera(MaygionMips):
    # answers from memory instead of the network

    flash_len = 0x400000
    info = CameraInfo(0x0C45, 0x6360, 0x0E)
    fail = False

    def get_flash_info(self):
        if self.fail:
            raise ProtocolError("Unable to get MTD info.")
        return self.flash_len

    def get_camera_info(self):
        return self.info

    def get_firmware(self, target, on_progress):
        if self.fail:
            raise ProtocolError("Unable to log in to device via FTP.")
        target.write(b"\x27\x05\x19\x56firmware")
        on_progress(12, self.flash_len)
        on_progress(12, -1)


class StubIdentifier:
    result = IdentifyResult("maygion-mips", {"maygion-mips": 100}, Credentials("root", "toor"), 8081)

    def __init__(self, endpoint, log=None, **kwargs):
        self.endpoint = endpoint

    def identify(self):
        return self.result


def run(argv):
    out, err = io.StringIO(), io.StringIO()
    code = cli.main(argv, out=out, err=err)
    return code, out.getvalue(), err.getvalue()


@pytest.fixture
def stub_device(monkeypatch):
    created = []

    def _open(type_id, endpoint, log=None):
        if type_id != "maygion-mips":
            raise KeyError(type_id)
        dev = StubCamera(endpoint, log)
        created.append(dev)
        return dev

    monkeypatch.setattr(cli, "open_device", _open)
    return created


def test_list_types():
    code, out, _ = run(["--list-types"])
    assert code == cli.RET_OK
    assert out == "maygion-mips\tMayGion MIPS camera\n"


def test_host_is_required():
    code, _, err = run(["--identify"])
    assert code == cli.RET_BADARGS
    assert "hostname" in err


def test_unknown_option_is_bad_args():
    code, _, _ = run(["--frobnicate"])
    assert code == cli.RET_BADARGS


def test_query_needs_type(stub_device):
    code, _, err = run(["-H", "10.0.0.5", "--query"])
    assert code == cli.RET_BADARGS
    assert "--type missing or invalid" in err


def test_query_prints_device_details(stub_device):
    code, out, err = run(["-H", "10.0.0.5", "-t", "maygion-mips", "-q"])
    assert code == cli.RET_OK
    assert out.splitlines() == [
        "flash_size=4194304",
        "camera_usb_vendor=0c45",
        "camera_usb_product=6360",
        "camera_usb_class=0e",
        "model=maygion-mips-1.0",
        "fwid=maygion-mips-4mb-uvc",
    ]
    assert "unknown model" not in err


def test_query_failure_is_reported(stub_device, monkeypatch):
    monkeypatch.setattr(StubCamera, "fail", True)
    code, _, err = run(["-H", "10.0.0.5", "-t", "maygion-mips", "-q"])
    assert code == cli.RET_SHOWSTOPPER
    assert "Device query failed: Unable to get MTD info." in err


def test_identify_feeds_type_to_dump(stub_device, monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "Identifier", StubIdentifier)
    target = tmp_path / "fw.bin"

    code, out, err = run(["-H", "10.0.0.5", "-i", "-d", str(target)])

    assert code == cli.RET_OK
    assert "http_port=8081" in out
    assert "admin_username=root\nadmin_password=toor\n" in out
    assert "device_type=maygion-mips" in out
    assert f"Saved to {target}" in out
    assert target.read_bytes() == b"\x27\x05\x19\x56firmware"
    assert "Downloading firmware: 12 bytes read (0%)" in err


def test_dump_failure_is_reported(stub_device, monkeypatch, tmp_path):
    monkeypatch.setattr(StubCamera, "fail", True)
    code, out, err = run(["-H", "10.0.0.5", "-t", "maygion-mips", "-d", str(tmp_path / "fw.bin")])
    assert code == cli.RET_SHOWSTOPPER
    assert "Download failed: Unable to log in to device via FTP." in err
    assert "Saved to" not in out
