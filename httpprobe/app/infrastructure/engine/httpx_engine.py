"""Transport engine implementation using httpx.

httpx has no debug callback, so the handle synthesises the engine event stream:
request/response event hooks produce header events (one per line, as libcurl
does), body chunks produce data events, and httpcore ``trace`` events produce
text events. Timeouts map to httpx's per-operation timeouts.
"""
from __future__ import annotations

import importlib.util
import re
import ssl
from typing import Any, Callable, Iterable

import httpx
from loguru import logger

from httpprobe.app.constants import (
    DebugEvent,
    EngineError,
    EngineInfo,
    EngineOption,
    HttpVersion,
    Method,
)

_UNSUPPORTED_OPTIONS = frozenset({EngineOption.TCP_FASTOPEN})

_HTTP_VERSIONS: dict[str, HttpVersion] = {
    "HTTP/1.0": HttpVersion.V1_0,
    "HTTP/1.1": HttpVersion.V1_1,
    "HTTP/2": HttpVersion.V2_0,
}

# Most specific first.
_EXCEPTION_CODES: tuple[tuple[type[Exception], EngineError], ...] = (
    (httpx.TimeoutException, EngineError.OPERATION_TIMEDOUT),
    (httpx.ProxyError, EngineError.COULDNT_RESOLVE_PROXY),
    (httpx.UnsupportedProtocol, EngineError.UNSUPPORTED_PROTOCOL),
    (httpx.ConnectError, EngineError.COULDNT_CONNECT),
    (httpx.TooManyRedirects, EngineError.TOO_MANY_REDIRECTS),
    (httpx.WriteError, EngineError.SEND_ERROR),
    (httpx.LocalProtocolError, EngineError.SEND_ERROR),
    (httpx.ReadError, EngineError.RECV_ERROR),
    (httpx.RemoteProtocolError, EngineError.RECV_ERROR),
    (httpx.InvalidURL, EngineError.URL_MALFORMAT),
    (httpx.HTTPError, EngineError.RECV_ERROR),
)

_DEFAULT_PORTS = {"http": 80, "https": 443}

# HOST:PORT:CONNECT-TO-HOST:CONNECT-TO-PORT, empty parts match anything / keep the original.
_CONNECT_TO_RE = re.compile(
    r"^(?P<host>\[[^\]]*\]|[^:]*):(?P<port>\d*):(?P<to_host>\[[^\]]*\]|[^:]*):(?P<to_port>\d*)$"
)


def _exception_code(exc: Exception) -> int:
    if isinstance(exc, httpx.ConnectError):
        cause: BaseException | None = exc
        while cause is not None:
            if isinstance(cause, ssl.SSLCertVerificationError):
                return EngineError.PEER_FAILED_VERIFICATION
            if isinstance(cause, ssl.SSLError):
                return EngineError.SSL_CONNECT_ERROR
            cause = cause.__cause__ or cause.__context__
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(exc, exc_type):
            return code
    return EngineError.RECV_ERROR


def _unbracket(host: str) -> str:
    return host[1:-1] if host.startswith("[") and host.endswith("]") else host


def _parse_header_lines(lines: list[str]) -> tuple[list[tuple[str, str]], list[str]]:
    """Split "Name: Value" lines into headers to send and default headers to drop.

    "Name:" with no value drops the header; "Name;" sends it with an empty value.
    """
    send: list[tuple[str, str]] = []
    drop: list[str] = []
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep:
            if line.endswith(";"):
                send.append((line[:-1].strip(), ""))
            continue
        value = value.strip()
        if value:
            send.append((name.strip(), value))
        else:
            drop.append(name.strip())
    return send, drop


def _certificate_slots(response: httpx.Response) -> list[list[str]]:
    stream = response.extensions.get("network_stream")
    if stream is None:
        return []
    ssl_object = stream.get_extra_info("ssl_object")
    if ssl_object is None:
        return []
    get_chain = getattr(ssl_object, "get_verified_chain", None)
    if get_chain is not None:
        certs = list(get_chain() or ())
    else:
        der = ssl_object.getpeercert(binary_form=True)
        certs = [der] if der else []
    return [[f"Cert:{_to_pem(cert)}"] for cert in certs]


def _to_pem(cert: Any) -> str:
    # Python 3.13+ yields DER bytes; older private chain APIs yield objects with public_bytes().
    if isinstance(cert, (bytes, bytearray)):
        return ssl.DER_cert_to_PEM_cert(bytes(cert))
    pem = cert.public_bytes()
    return pem.decode("ascii") if isinstance(pem, bytes) else str(pem)


class HttpxHandle:
    """TransportHandle that drives one request through an httpx.Client."""

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport
        self._options: dict[EngineOption, Any] = {}
        self._response: httpx.Response | None = None
        self._certificates: list[list[str]] = []

    def setopt(self, option: EngineOption, value: Any) -> int:
        if not isinstance(option, EngineOption):
            return EngineError.UNKNOWN_OPTION
        if option in _UNSUPPORTED_OPTIONS:
            return EngineError.NOT_BUILT_IN
        if option == EngineOption.HTTP_VERSION and value == HttpVersion.V2_0:
            if importlib.util.find_spec("h2") is None:
                return EngineError.NOT_BUILT_IN
        if option == EngineOption.CONNECT_TO:
            if any(_CONNECT_TO_RE.match(entry) is None for entry in value or ()):
                return EngineError.BAD_FUNCTION_ARGUMENT
        self._options[option] = value
        return EngineError.OK

    def perform(self) -> int:
        url = self._options.get(EngineOption.URL) or ""
        if not url:
            return EngineError.URL_MALFORMAT
        try:
            client = httpx.Client(**self._client_kwargs())
        except (OSError, ssl.SSLError) as exc:
            self._emit(DebugEvent.TEXT, f"error setting certificate verify locations: {exc}")
            return EngineError.SSL_CACERT_BADFILE

        with client:
            try:
                request = self._build_request(client, url)
                response = client.send(
                    request,
                    stream=True,
                    follow_redirects=bool(self._options.get(EngineOption.FOLLOWLOCATION)),
                )
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                self._emit(DebugEvent.TEXT, f"{type(exc).__name__}: {exc}")
                return _exception_code(exc)

            self._response = response
            try:
                return self._read_body(response)
            except httpx.HTTPError as exc:
                self._emit(DebugEvent.TEXT, f"{type(exc).__name__}: {exc}")
                return _exception_code(exc)
            finally:
                response.close()

    def getinfo(self, info: EngineInfo) -> tuple[int, Any]:
        response = self._response
        if info == EngineInfo.CERTINFO:
            return EngineError.OK, list(self._certificates)
        if response is None:
            return EngineError.OK, None
        if info == EngineInfo.RESPONSE_CODE:
            return EngineError.OK, response.status_code
        if info == EngineInfo.REDIRECT_URL:
            next_request = response.next_request
            return EngineError.OK, str(next_request.url) if next_request is not None else None
        if info == EngineInfo.CONTENT_TYPE:
            return EngineError.OK, response.headers.get("content-type")
        if info == EngineInfo.HTTP_VERSION:
            return EngineError.OK, _HTTP_VERSIONS.get(response.http_version, HttpVersion.NONE)
        return EngineError.UNKNOWN_OPTION, None

    def close(self) -> None:
        self._response = None

    def _client_kwargs(self) -> dict[str, Any]:
        timeout = int(self._options.get(EngineOption.TIMEOUT) or 0)
        kwargs: dict[str, Any] = {
            "timeout": httpx.Timeout(float(timeout) if timeout > 0 else None),
            "event_hooks": {"request": [self._on_request], "response": [self._on_response]},
        }
        if self._options.get(EngineOption.HTTP_VERSION) == HttpVersion.V2_0:
            kwargs["http2"] = True
        ca_path = self._options.get(EngineOption.CAINFO)
        if ca_path:
            kwargs["verify"] = ssl.create_default_context(cafile=ca_path)
        if self._transport is not None:
            kwargs["transport"] = self._transport
        elif self._options.get(EngineOption.PROXY):
            kwargs["proxy"] = self._options[EngineOption.PROXY]
        return kwargs

    def _build_request(self, client: httpx.Client, url: str) -> httpx.Request:
        method = self._options.get(EngineOption.CUSTOMREQUEST)
        if not method:
            method = Method.POST.value if self._options.get(EngineOption.POST) else Method.GET.value
        content = None
        if self._options.get(EngineOption.POST):
            content = bytes(self._options.get(EngineOption.POSTFIELDS) or b"")
            size = self._options.get(EngineOption.POSTFIELDSIZE)
            if size is not None:
                content = content[: int(size)]

        send, drop = _parse_header_lines(list(self._options.get(EngineOption.HTTPHEADER) or ()))
        request = client.build_request(
            method,
            url,
            headers=send,
            content=content,
            extensions={"trace": self._on_trace},
        )
        for name in drop:
            if name in request.headers:
                del request.headers[name]
        self._apply_connect_to(request)
        return request

    def _apply_connect_to(self, request: httpx.Request) -> None:
        """Point the connection at the override address; Host and SNI keep the URL host."""
        for entry in self._options.get(EngineOption.CONNECT_TO) or ():
            match = _CONNECT_TO_RE.match(entry)
            if match is None:
                continue
            host = _unbracket(match["host"])
            if host and host != request.url.host:
                continue
            port = request.url.port or _DEFAULT_PORTS.get(request.url.scheme)
            if match["port"] and int(match["port"]) != port:
                continue
            target: dict[str, Any] = {}
            if match["to_host"]:
                target["host"] = _unbracket(match["to_host"])
            if match["to_port"]:
                target["port"] = int(match["to_port"])
            request.extensions["sni_hostname"] = request.url.host
            request.url = request.url.copy_with(**target)
            self._emit(DebugEvent.TEXT, f"Connecting to hostname: {target.get('host', request.url.host)}")
            return

    def _read_body(self, response: httpx.Response) -> int:
        write: Callable[[bytes], int] | None = self._options.get(EngineOption.WRITEFUNCTION)
        # Transports that hand back an already-read response deliver it as one chunk.
        chunks: Iterable[bytes] = [response.content] if response.is_stream_consumed else response.iter_raw()
        for chunk in chunks:
            if not chunk:
                continue
            self._emit(DebugEvent.DATA_IN, chunk)
            if write is not None and write(chunk) != len(chunk):
                self._emit(DebugEvent.TEXT, "Failure writing output to destination")
                return EngineError.WRITE_ERROR
        return EngineError.OK

    def _emit(self, kind: DebugEvent, payload: bytes | str) -> None:
        debug = self._options.get(EngineOption.DEBUGFUNCTION)
        if debug is None or not self._options.get(EngineOption.VERBOSE):
            return
        if isinstance(payload, str):
            payload = payload.encode() + b"\n"
        debug(int(kind), payload)

    def _on_trace(self, event_name: str, info: dict[str, Any]) -> None:
        if event_name.startswith("connection.") or event_name.endswith(".failed"):
            self._emit(DebugEvent.TEXT, event_name)

    def _on_request(self, request: httpx.Request) -> None:
        target = request.url.raw_path.decode("ascii", errors="replace")
        self._emit(DebugEvent.HEADER_OUT, f"{request.method} {target} HTTP/1.1\r\n".encode())
        for name, value in request.headers.raw:
            self._emit(DebugEvent.HEADER_OUT, name + b": " + value + b"\r\n")
        self._emit(DebugEvent.HEADER_OUT, b"\r\n")
        try:
            content = request.content
        except httpx.RequestNotRead:
            # redirect hops carry a stream rather than buffered content
            content = b""
        if content:
            self._emit(DebugEvent.DATA_OUT, content)

    def _on_response(self, response: httpx.Response) -> None:
        status_line = f"{response.http_version} {response.status_code} {response.reason_phrase}\r\n"
        self._emit(DebugEvent.HEADER_IN, status_line.encode())
        for name, value in response.headers.raw:
            self._emit(DebugEvent.HEADER_IN, name + b": " + value + b"\r\n")
        self._emit(DebugEvent.HEADER_IN, b"\r\n")
        try:
            self._certificates = _certificate_slots(response)
        except (ssl.SSLError, ValueError, TypeError, AttributeError) as exc:
            logger.warning("peer certificate capture failed: {}", exc)


class HttpxTransportEngine:
    """TransportEngine implementation using httpx.

    transport is handed to every client (tests pass httpx.MockTransport).
    """

    def __init__(self, transport: httpx.BaseTransport | None = None) -> None:
        self._transport = transport

    def create_handle(self) -> HttpxHandle | None:
        return HttpxHandle(self._transport)

    def append_header(self, headers: list[str] | None, line: str) -> list[str] | None:
        return [*(headers or ()), line]
