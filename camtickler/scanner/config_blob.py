# camtickler/scanner/config_blob.py
"""Parsing of the camera's own config file (cs.ini) as fetched over FTP.

The file is line oriented with bracketed sections. Two keys matter:
``[http] port=`` (the web interface port) and ``[usr] ui=``, an encoded blob
holding the admin account as ``usr=...\\r\\npwd=...\\r\\n``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional

from ..utils.helpers import leading_int

# Lookup table of the camera's encoder, indexed by (char - 43); '$' marks
# characters outside the alphabet. Entries are value + 62.
_DECODE_TABLE = "|$$$}rstuvwxyz{$$$$$$$>?@ABCDEFGHIJKLMNOPQRSTUVW$$$$$$XYZ[\\]^_`abcdefghijklmnopq"
_TABLE_BASE = 43


def _build_encode_table() -> Dict[int, str]:
    table = {}
    for i, entry in enumerate(_DECODE_TABLE):
        if entry != "$":
            table[ord(entry) - 62] = chr(_TABLE_BASE + i)
    return table


_ENCODE_TABLE = _build_encode_table()


class Credentials(NamedTuple):
    username: str = ""
    password: str = ""

    @property
    def empty(self) -> bool:
        return not self.username and not self.password


@dataclass
class DeviceConfig:
    http_port: Optional[int] = None
    credential_blob: Optional[str] = None


def _sextet(ch: str) -> int:
    c = ord(ch)
    v = 0 if c < _TABLE_BASE or c > 122 else ord(_DECODE_TABLE[c - _TABLE_BASE])
    if v:
        v = 0 if v == ord("$") else v - 61
    # one-off adjustment; invalid characters (and '=') end up as 0xFF
    return (v - 1) & 0xFF


def decode_blob(value: str) -> bytes:
    sextets = [_sextet(ch) for ch in value]
    out = bytearray()
    for i in range(0, len(sextets), 4):
        group = sextets[i:i + 4]
        if len(group) < 2:
            break
        a, b = group[0], group[1]
        out.append((a << 2 | b >> 4) & 0xFF)
        if len(group) < 3:
            break
        c = group[2]
        out.append((b << 4 | c >> 2) & 0xFF)
        if len(group) < 4:
            break
        d = group[3]
        out.append(((c << 6) & 0xC0) | d)
    return bytes(out)


def encode_blob(data: bytes) -> str:
    # unpadded, so decode_blob gives back exactly the input
    out = []
    for i in range(0, len(data), 3):
        chunk = data[i:i + 3]
        bits = int.from_bytes(chunk.ljust(3, b"\0"), "big")
        count = len(chunk) + 1
        for shift in (18, 12, 6, 0)[:count]:
            out.append(_ENCODE_TABLE[(bits >> shift) & 0x3F])
    return "".join(out)


def _field(text: str, key: str) -> str:
    start = text.find(key)
    if start < 0:
        return ""
    start += len(key)
    end = text.find("\r\n", start)
    return text[start:] if end < 0 else text[start:end]


def parse_credentials(plain: str) -> Credentials:
    return Credentials(_field(plain, "usr="), _field(plain, "pwd="))


def decode_credentials(blob: str) -> Credentials:
    return parse_credentials(decode_blob(blob).decode("latin-1"))


def parse_device_config(text: str) -> DeviceConfig:
    cfg = DeviceConfig()
    section = None
    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("["):
            if line.startswith("[http]"):
                section = "http"
            elif line.startswith("[usr]"):
                section = "usr"
            else:
                section = None
            continue

        if section == "usr" and line.startswith("ui="):
            cfg.credential_blob = line[3:]
        elif section == "http" and line.startswith("port="):
            port = leading_int(line[5:])
            # 80 and 0 both mean the default port is in use
            if port not in (0, 80) and port <= 65535:
                cfg.http_port = port
    return cfg
