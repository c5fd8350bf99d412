# camtickler/utils/helpers.py

from __future__ import annotations
from typing import Any


def validate_port(value: Any, *, allow_zero: bool = True) -> int:
    # accept ints and numeric strings; 0 means "protocol default"
    if isinstance(value, int):
        candidate = value
    else:
        try:
            candidate = int(str(value).strip())
        except Exception:
            raise ValueError(f"Invalid port value: {value!r}")
    low = 0 if allow_zero else 1
    if not low <= candidate <= 65535:
        raise ValueError(f"Port out of range: {candidate}")
    return candidate


def parse_hex(token: str) -> int:
    # device shells print sizes and IDs as bare hex, sometimes with 0x
    t = token.strip()
    if t.lower().startswith("0x"):
        t = t[2:]
    return int(t, 16)


def leading_int(text: str) -> int:
    # digits at the start of text, 0 when there are none
    digits = ""
    for ch in text.strip():
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else 0
