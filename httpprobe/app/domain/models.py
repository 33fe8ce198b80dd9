"""Domain models: request descriptor and response record."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from httpprobe.app.constants import (
    DEFAULT_TIMEOUT_SECONDS,
    MAX_TIMEOUT_SECONDS,
    EngineError,
    Method,
)
from httpprobe.app.core.clock import Clock, now_ms
from httpprobe.app.ports.transport_engine import ContractViolationError


def normalize_timeout(timeout: int) -> int:
    """Negative means no timeout (0); anything too large clamps to MAX_TIMEOUT_SECONDS."""
    if timeout < 0:
        return 0
    return min(int(timeout), MAX_TIMEOUT_SECONDS)


def _require(value: Any, name: str) -> Any:
    if value is None:
        raise ContractViolationError(f"{name} must not be None")
    return value


@dataclass(frozen=True)
class FrozenRequest:
    """Immutable snapshot of a request; the only shape a transaction ever sees."""

    url: str = ""
    method: Method = Method.GET
    headers: tuple[str, ...] = ()
    body: bytes = b""
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    ca_bundle_path: str | None = None
    proxy_url: str | None = None
    enable_http2: bool = False
    follow_redirects: bool = False
    enable_tcp_fastopen: bool = False
    connect_override: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.url, str):
            raise TypeError("request.url must be a str")
        if not isinstance(self.method, Method):
            object.__setattr__(self, "method", Method(self.method))
        if not isinstance(self.headers, tuple):
            object.__setattr__(self, "headers", tuple(self.headers))
        if not isinstance(self.body, bytes):
            object.__setattr__(self, "body", bytes(self.body))
        object.__setattr__(self, "timeout", normalize_timeout(self.timeout))

    @property
    def is_upload(self) -> bool:
        return self.method in (Method.POST, Method.PUT)


class RequestDescriptor:
    """Mutable request builder with one setter per field.

    Setters accept any non-None value; None is a caller bug and raises
    ContractViolationError. Call freeze() (or hand the descriptor to a
    performer, which freezes it) to get the immutable FrozenRequest.
    """

    def __init__(self) -> None:
        self._url = ""
        self._method = Method.GET
        self._headers: list[str] = []
        self._body = b""
        self._timeout = DEFAULT_TIMEOUT_SECONDS
        self._ca_bundle_path: str | None = None
        self._proxy_url: str | None = None
        self._enable_http2 = False
        self._follow_redirects = False
        self._enable_tcp_fastopen = False
        self._connect_override: str | None = None

    def set_url(self, url: str) -> None:
        self._url = str(_require(url, "url"))

    def set_method(self, method: Method | str) -> None:
        self._method = Method(_require(method, "method"))

    def add_header(self, header: str) -> None:
        self._headers.append(str(_require(header, "header")))

    def set_body(self, body: bytes | bytearray | memoryview | str) -> None:
        _require(body, "body")
        self._body = body.encode() if isinstance(body, str) else bytes(body)

    def set_timeout(self, timeout: int) -> None:
        self._timeout = normalize_timeout(int(_require(timeout, "timeout")))

    def set_ca_bundle_path(self, path: str) -> None:
        self._ca_bundle_path = str(_require(path, "ca_bundle_path"))

    def set_proxy_url(self, url: str) -> None:
        self._proxy_url = str(_require(url, "proxy_url"))

    def enable_http2(self) -> None:
        self._enable_http2 = True

    def enable_follow_redirect(self) -> None:
        self._follow_redirects = True

    def enable_tcp_fastopen(self) -> None:
        self._enable_tcp_fastopen = True

    def set_connect_to(self, address: str) -> None:
        self._connect_override = str(_require(address, "connect_override"))

    def freeze(self) -> FrozenRequest:
        return FrozenRequest(
            url=self._url,
            method=self._method,
            headers=tuple(self._headers),
            body=self._body,
            timeout=self._timeout,
            ca_bundle_path=self._ca_bundle_path,
            proxy_url=self._proxy_url,
            enable_http2=self._enable_http2,
            follow_redirects=self._follow_redirects,
            enable_tcp_fastopen=self._enable_tcp_fastopen,
            connect_override=self._connect_override,
        )


@dataclass(frozen=True)
class Response:
    """Result of one transaction. Byte totals are estimates, not link-level counts."""

    error: int = EngineError.OK
    status_code: int = 0
    redirect_url: str = ""
    body: bytes = b""
    bytes_sent: float = 0.0
    bytes_received: float = 0.0
    logs: bytes = b""
    request_headers: bytes = b""
    response_headers: bytes = b""
    certificate_chain: bytes = b""
    content_type: str = ""
    http_version: str = ""

    @property
    def ok(self) -> bool:
        return self.error == EngineError.OK

    @property
    def error_name(self) -> str:
        return EngineError.describe(self.error)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of every field (bytes kept as bytes)."""
        return {
            "error": int(self.error),
            "status_code": self.status_code,
            "redirect_url": self.redirect_url,
            "body": self.body,
            "bytes_sent": self.bytes_sent,
            "bytes_received": self.bytes_received,
            "logs": self.logs,
            "request_headers": self.request_headers,
            "response_headers": self.response_headers,
            "certificate_chain": self.certificate_chain,
            "content_type": self.content_type,
            "http_version": self.http_version,
        }


@dataclass
class ResponseRecord:
    """Accumulator written by the collectors and result extraction during one transaction."""

    clock: Clock = now_ms
    error: int = EngineError.OK
    status_code: int = 0
    redirect_url: str = ""
    body: bytearray = field(default_factory=bytearray)
    bytes_sent: float = 0.0
    bytes_received: float = 0.0
    logs: bytearray = field(default_factory=bytearray)
    request_headers: bytearray = field(default_factory=bytearray)
    response_headers: bytearray = field(default_factory=bytearray)
    certificate_chain: bytearray = field(default_factory=bytearray)
    content_type: str = ""
    http_version: str = ""

    def log(self, line: bytes | str) -> None:
        """Append one timestamped transcript line."""
        if isinstance(line, str):
            line = line.encode()
        self.logs += b"[%d] " % self.clock()
        self.logs += line
        self.logs += b"\n"

    def fail(self, code: int, line: str) -> None:
        self.error = int(code)
        self.log(line)

    def freeze(self) -> Response:
        return Response(
            error=self.error,
            status_code=self.status_code,
            redirect_url=self.redirect_url,
            body=bytes(self.body),
            bytes_sent=self.bytes_sent,
            bytes_received=self.bytes_received,
            logs=bytes(self.logs),
            request_headers=bytes(self.request_headers),
            response_headers=bytes(self.response_headers),
            certificate_chain=bytes(self.certificate_chain),
            content_type=self.content_type,
            http_version=self.http_version,
        )
