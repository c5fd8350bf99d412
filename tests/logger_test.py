# tests/logger_test.py

import io
import json

import pytest

from camtickler.utils.logger import EventLog, component_log


def test_entries_are_appended_as_json_lines(tmp_path):
    logfile = tmp_path / "logs" / "run_log.ndjson"
    log = EventLog(logfile=logfile)

    log.log({"event": "probe", "port": 80})
    log.child("ftp").log({"event": "login_ok"}, level=2)

    lines = [json.loads(l) for l in logfile.read_text(encoding="utf-8").splitlines()]
    assert lines[0]["event"] == "probe" and lines[0]["port"] == 80
    assert "ts" in lines[0] and "ts_iso" in lines[0]
    assert lines[1]["component"] == "ftp" and lines[1]["level"] == 2


def test_echo_respects_verbosity():
    stream = io.StringIO()
    log = EventLog(verbosity=1, stream=stream)

    log.child("http").log({"event": "http_attempt", "port": 81}, level=0)
    log.child("http").log({"event": "header", "value": "Server: x"}, level=2)

    assert stream.getvalue() == "[http] http_attempt port=81\n"


def test_silent_log_when_none_given():
    component_log(None, "telnet").log({"event": "anything"}, level=0)


def test_rejects_non_dict():
    with pytest.raises(TypeError):
        EventLog().log("not a dict")
