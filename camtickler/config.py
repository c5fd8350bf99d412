# camtickler/config.py

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Tuple


def _env_float(name: str, default: float) -> float:
    # ignore unparsable overrides rather than refusing to start
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Socket connect/read timeout in seconds; a hung peer fails after this long
DEFAULT_TIMEOUT = _env_float("CAMTICKLER_TIMEOUT", 10.0)
RECV_CHUNK = 4096

# Registered defaults used whenever a port of 0 is given
SERVICE_PORTS: Dict[str, int] = {
    "http": 80,
    "ftp": 21,
    "telnet": 23,
}

# Tried in this order when the HTTP port is unknown and 80 did not answer
HTTP_FALLBACK_PORTS: Tuple[int, ...] = (81, 8080)

# A type must score strictly above this to be reported
MIN_CONFIDENCE = 50
# Reaching this score confirms a type
MAX_CONFIDENCE = 100

DEFAULT_HTTP_USER = "admin"
DEFAULT_HTTP_PASS = "admin"

ARTIFACTS_DIR = Path(
    os.environ.get("CAMTICKLER_ARTIFACTS_DIR")
    or Path(__file__).resolve().parents[1] / "artifacts"
)
DEFAULT_LOGFILE = ARTIFACTS_DIR / "run_log.ndjson"
