# camtickler/scanner/identify.py
"""Work out which known device family a host is, by accumulating evidence.

No single probe decides: a Server header can be faked, FTP can be off and
the status page path can exist on unrelated servers. Each probe nudges a
per-family score up or down and the best score above the threshold wins.
"""
from __future__ import annotations

import io
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence
from urllib.parse import quote

from .. import config
from ..errors import CamTicklerError, ProbeUnavailable, ProtocolError, TransportError
from ..net.ftp_client import FtpClient
from ..net.http_client import HttpClient
from ..net.progress import ProgressCallback, no_progress
from ..net.transport import Endpoint
from ..utils.logger import EventLog, component_log
from .config_blob import Credentials, decode_credentials, parse_device_config
from .signatures import KNOWN_SIGNATURES, FamilySignature

UNKNOWN = "unknown"

# Score changes per piece of evidence
_SERVER_HEADER_BONUS = 10
_UNAUTHORIZED_BONUS = 20
_STATUS_OK_BONUS = 10
_UNKNOWN_RESPONSE_PENALTY = -10


def select_best(scores: Dict[str, int], threshold: int = config.MIN_CONFIDENCE) -> str:
    # strictly greater, so the earliest entry keeps a tie
    best, best_score = UNKNOWN, threshold
    for type_id, score in scores.items():
        if score > best_score:
            best, best_score = type_id, score
    return best


class ConfidenceTable:
    """Insertion ordered scores per device type; never reset during a run."""

    def __init__(self, type_ids: Iterable[str] = ()):
        self.scores: Dict[str, int] = {t: 0 for t in type_ids}

    def add(self, type_id: str, delta: int) -> int:
        self.scores[type_id] = self.scores.get(type_id, 0) + delta
        return self.scores[type_id]

    def set(self, type_id: str, score: int) -> None:
        self.scores[type_id] = score

    def score(self, type_id: str) -> int:
        return self.scores.get(type_id, 0)

    def confirmed(self, type_id: Optional[str] = None) -> bool:
        if type_id is not None:
            return self.score(type_id) >= config.MAX_CONFIDENCE
        return any(s >= config.MAX_CONFIDENCE for s in self.scores.values())

    def best(self, threshold: int = config.MIN_CONFIDENCE) -> str:
        return select_best(self.scores, threshold)

    def snapshot(self) -> Dict[str, int]:
        return dict(self.scores)


@dataclass
class IdentifyResult:
    device_type: str
    confidence: Dict[str, int]
    credentials: Credentials = Credentials()
    http_port: Optional[int] = None
    http_ports_tried: List[int] = field(default_factory=list)

    @property
    def identified(self) -> bool:
        return self.device_type != UNKNOWN

    def to_dict(self) -> Dict:
        return {
            "device_type": self.device_type,
            "confidence": dict(self.confidence),
            "username": self.credentials.username,
            "password": self.credentials.password,
            "http_port": self.http_port,
            "http_ports_tried": list(self.http_ports_tried),
        }


def _xml_field(body: str, tag: str) -> str:
    m = re.search(rf"<{tag}>(.*?)</{tag}>", body, flags=re.DOTALL)
    return m.group(1) if m else ""


class Identifier:
    """One identification run against one endpoint.

    Holds the confidence table and whatever credentials or HTTP port the
    probes turn up; build a new one for every run.
    """

    def __init__(self,
                 endpoint: Endpoint,
                 log: Optional[EventLog] = None,
                 signatures: Optional[Sequence[FamilySignature]] = None,
                 fallback_ports: Sequence[int] = config.HTTP_FALLBACK_PORTS,
                 on_progress: Optional[ProgressCallback] = None):
        self.endpoint = endpoint
        self._log = log
        self.log = component_log(log, "identify")
        self.signatures = list(signatures if signatures is not None else KNOWN_SIGNATURES)
        self.fallback_ports = tuple(fallback_ports)
        self.on_progress = on_progress or no_progress
        self.http = HttpClient(endpoint, log)

        self.confidence = ConfidenceTable(s.type_id for s in self.signatures)
        self.credentials = Credentials()
        self.http_port_override: Optional[int] = None
        self.http_ports_tried: List[int] = []

    def _adjust(self, sig: FamilySignature, delta: int, reason: str) -> None:
        score = self.confidence.add(sig.type_id, delta)
        self.log.log({"event": "evidence", "type": sig.type_id, "delta": delta,
                      "score": score, "reason": reason})

    def _http_credentials(self) -> Credentials:
        # discovered credentials when there are any, otherwise the defaults
        return Credentials(
            self.credentials.username or config.DEFAULT_HTTP_USER,
            self.credentials.password or config.DEFAULT_HTTP_PASS,
        )

    # HTTP

    def _try_http(self, port: int) -> bool:
        self.endpoint.set_http_port(port)
        in_use = self.endpoint.http_port_in_use
        self.http_ports_tried.append(in_use)
        self.log.log({"event": "http_attempt", "host": self.endpoint.host, "port": in_use}, level=0)

        try:
            headers = self.http.headers()
        except ProbeUnavailable as e:
            self.log.log({"event": "http_unavailable", "port": in_use, "error": e.to_dict()}, level=0)
            return False
        # a peer answered; a missing or odd head still gets the status page
        self._score_server_header(headers)

        ok = False
        for sig in self.signatures:
            if sig.status_path is None:
                continue
            if self._try_status_page(sig):
                ok = True
            if self.confidence.confirmed():
                break
        return ok

    def _score_server_header(self, headers: List[str]) -> None:
        for h in headers:
            if not h.lower().startswith("server:"):
                continue
            server = h[7:].strip()
            self.log.log({"event": "server", "value": server})
            for sig in self.signatures:
                if sig.server_header and server == sig.server_header:
                    self._adjust(sig, _SERVER_HEADER_BONUS, "server header")

    def _try_status_page(self, sig: FamilySignature) -> bool:
        creds = self._http_credentials()
        path = sig.status_path.format(user=quote(creds.username, safe=""),
                                      password=quote(creds.password, safe=""))
        try:
            body = self.http.get(path).decode("latin-1")
        except ProtocolError as e:
            # something answered, just not with HTTP
            self.log.log({"event": "status_page_invalid", "error": e.message})
            body = ""
        except TransportError as e:
            self.log.log({"event": "status_page_failed", "error": e.message})
            return False

        result = _xml_field(body, "Success")
        if result == "0":
            self._adjust(sig, _UNAUTHORIZED_BONUS, "alive, credentials refused")
            code = _xml_field(body, "ErrorCode")
            if code in sig.unauthorized_codes:
                self._adjust(sig, _UNAUTHORIZED_BONUS, f"error code {code}")
            else:
                self.log.log({"event": "unknown_error_code", "type": sig.type_id, "code": code})
            return False
        if result != "1":
            self._adjust(sig, _UNKNOWN_RESPONSE_PENALTY, "unknown status response")
            return False

        self._adjust(sig, _STATUS_OK_BONUS, "status page accepted")
        if self.credentials.empty:
            self.log.log({"event": "default_credentials_work", "type": sig.type_id})
            self.credentials = creds

        board = _xml_field(body, "Board")
        self.log.log({"event": "board_id", "type": sig.type_id, "board": board})
        if sig.board_id and board == sig.board_id:
            self.confidence.set(sig.type_id, config.MAX_CONFIDENCE)
        return True

    # FTP

    def _try_ftp(self) -> bool:
        for sig in self.signatures:
            if not sig.ftp_user:
                continue
            if self._ftp_probe(sig):
                return True
        return False

    def _ftp_probe(self, sig: FamilySignature) -> bool:
        ftp = FtpClient(self.endpoint, self._log)
        try:
            try:
                if not ftp.login(sig.ftp_user, sig.ftp_pass or ""):
                    self.log.log({"event": "ftp_login_refused", "type": sig.type_id})
                    return False
            except TransportError as e:
                self.log.log({"event": "ftp_unavailable", "error": e.to_dict()})
                return False

            # a family specific account name is conclusive on its own
            self.confidence.set(sig.type_id, config.MAX_CONFIDENCE)
            self.log.log({"event": "ftp_login_ok", "type": sig.type_id})
            if sig.config_file:
                self._read_device_config(ftp, sig)
            return True
        finally:
            ftp.close()

    def _read_device_config(self, ftp: FtpClient, sig: FamilySignature) -> None:
        buf = io.BytesIO()
        try:
            ok = ftp.get(buf, sig.config_dir or "/", sig.config_file, self.on_progress)
        except CamTicklerError as e:
            self.log.log({"event": "config_download_failed", "error": e.to_dict()})
            ok = False
        if not ok:
            buf = io.BytesIO()

        cfg = parse_device_config(buf.getvalue().decode("latin-1"))
        if cfg.http_port:
            self.http_port_override = cfg.http_port
            self.log.log({"event": "http_port_found", "port": cfg.http_port}, level=0)

        if cfg.credential_blob:
            self.credentials = decode_credentials(cfg.credential_blob)
            self.log.log({"event": "credentials_found", "user": self.credentials.username})
        else:
            self.credentials = Credentials()

    def identify(self) -> IdentifyResult:
        start_port = self.endpoint.http_port

        ok_http = self._try_http(start_port)

        if not ok_http and not self.confidence.confirmed():
            ok_ftp = self._try_ftp()
            if ok_ftp and (not self.credentials.empty or self.http_port_override):
                # try again now we have credentials or the real port
                ok_http = self._try_http(self.http_port_override or start_port)

        if not ok_http and self.http_port_override is None:
            for port in self.fallback_ports:
                if self._try_http(port):
                    ok_http = True
                    break

        if not ok_http:
            self.endpoint.set_http_port(self.http_port_override or start_port)

        scores = self.confidence.snapshot()
        for type_id, score in scores.items():
            self.log.log({"event": "confidence", "type": type_id, "score": score})
        best = select_best(scores)
        self.log.log({"event": "result", "device_type": best}, level=0)

        result = IdentifyResult(
            device_type=best,
            confidence=scores,
            credentials=self.credentials,
            http_port=self.http_port_override,
            http_ports_tried=list(self.http_ports_tried),
        )
        self.log.log({"event": "summary", **result.to_dict()}, level=2)
        return result
