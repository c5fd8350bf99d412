# camtickler/utils/logger.py

from __future__ import annotations
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, TextIO, Union


class EventLog:
    """Structured run log shared by every component of one run.

    Each entry is appended as one JSON line to ``logfile`` (when given) and,
    if its level is within ``verbosity``, echoed to ``stream`` as a short
    human readable line. Level 0 entries are always echoed.
    """

    def __init__(self,
                 verbosity: int = 0,
                 logfile: Optional[Union[str, Path]] = None,
                 stream: Optional[TextIO] = None):
        self.verbosity = verbosity
        self.logfile = Path(logfile) if logfile else None
        self.stream = stream
        self._lock = Lock()

    def log(self, entry: Dict[str, Any], level: int = 1) -> None:
        if not isinstance(entry, dict):
            raise TypeError("log() expects a dict")

        now_ts = int(time.time())
        payload = dict(entry)  # copy to avoid modifying caller
        payload.setdefault("ts", now_ts)
        payload.setdefault("ts_iso", datetime.fromtimestamp(now_ts, tz=timezone.utc).isoformat())
        payload.setdefault("level", level)

        if self.logfile is not None:
            line = json.dumps(payload, separators=(",", ":"), default=str)
            with self._lock:
                self.logfile.parent.mkdir(parents=True, exist_ok=True)
                with self.logfile.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")

        if self.stream is not None and level <= self.verbosity:
            self.stream.write(_format_line(entry) + "\n")
            self.stream.flush()

    def child(self, component: str) -> "ComponentLog":
        return ComponentLog(self, component)


class ComponentLog:
    # tags every entry with the component that produced it

    def __init__(self, parent: EventLog, component: str):
        self.parent = parent
        self.component = component

    def log(self, entry: Dict[str, Any], level: int = 1) -> None:
        payload = {"component": self.component}
        payload.update(entry)
        self.parent.log(payload, level)


def _format_line(entry: Dict[str, Any]) -> str:
    component = entry.get("component")
    event = entry.get("event", "")
    extras = " ".join(
        f"{k}={v}" for k, v in entry.items() if k not in ("component", "event")
    )
    prefix = f"[{component}] " if component else ""
    return f"{prefix}{event} {extras}".rstrip()


def component_log(log: Optional[EventLog], component: str) -> ComponentLog:
    # components accept an optional log; a silent one stands in when omitted
    return (log or EventLog()).child(component)
