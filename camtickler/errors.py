# camtickler/errors.py

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    PROBE_UNAVAILABLE = "probe_unavailable"


class CamTicklerError(Exception):
    """Base error carrying a kind tag and a human readable message."""

    kind = ErrorKind.PROTOCOL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}


class TransportError(CamTicklerError):
    # DNS, connect or socket I/O failure below the protocol layer
    kind = ErrorKind.TRANSPORT


class ResolutionError(TransportError):
    pass


class ProtocolError(CamTicklerError):
    # peer answered, but not in the expected grammar
    kind = ErrorKind.PROTOCOL


class ProbeUnavailable(CamTicklerError):
    # expected negative outcome of a probe, drives fallbacks only
    kind = ErrorKind.PROBE_UNAVAILABLE
