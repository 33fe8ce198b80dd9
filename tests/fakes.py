"""Scripted TransportEngine for unit tests: records every call and fails on demand."""
from __future__ import annotations

from typing import Any

from httpprobe.app.constants import DebugEvent, EngineError, EngineInfo, EngineOption, HttpVersion

BODY = "body"

FIXED_MS = 1700000000123


def fixed_clock() -> int:
    return FIXED_MS


class FakeHandle:
    def __init__(self, engine: "FakeTransportEngine") -> None:
        self._engine = engine
        self.options: dict[EngineOption, Any] = {}
        self.setopt_calls: list[EngineOption] = []
        self.getinfo_calls: list[EngineInfo] = []
        self.performed = False
        self.closed = False

    def setopt(self, option: EngineOption, value: Any) -> int:
        self.setopt_calls.append(option)
        if option == self._engine.fail_option:
            return self._engine.failure_code
        self.options[option] = value
        return EngineError.OK

    def perform(self) -> int:
        self.performed = True
        if self._engine.perform_code != EngineError.OK:
            return self._engine.perform_code
        write = self.options.get(EngineOption.WRITEFUNCTION)
        debug = self.options.get(EngineOption.DEBUGFUNCTION) if self.options.get(EngineOption.VERBOSE) else None
        for kind, payload in self._engine.script:
            if kind == BODY:
                if write is not None and write(payload) != len(payload):
                    return EngineError.WRITE_ERROR
            elif debug is not None:
                debug(int(kind), payload)
        return EngineError.OK

    def getinfo(self, info: EngineInfo) -> tuple[int, Any]:
        self.getinfo_calls.append(info)
        if info == self._engine.fail_info:
            return self._engine.failure_code, None
        return EngineError.OK, self._engine.info.get(info)

    def close(self) -> None:
        self.closed = True


class FakeTransportEngine:
    """
    script: sequence of (DebugEvent | BODY, bytes) replayed during perform().
    fail_append_at: index of the append_header call that returns None.
    """

    def __init__(
        self,
        *,
        fail_create: bool = False,
        fail_append_at: int | None = None,
        fail_option: EngineOption | None = None,
        fail_info: EngineInfo | None = None,
        failure_code: int = EngineError.NOT_BUILT_IN,
        perform_code: int = EngineError.OK,
        script: tuple[tuple[DebugEvent | str, bytes], ...] = (),
        info: dict[EngineInfo, Any] | None = None,
    ) -> None:
        self.fail_create = fail_create
        self.fail_append_at = fail_append_at
        self.fail_option = fail_option
        self.fail_info = fail_info
        self.failure_code = failure_code
        self.perform_code = perform_code
        self.script = script
        self.info = info or {}
        self.handles: list[FakeHandle] = []
        self.appended: list[str] = []

    @property
    def handle(self) -> FakeHandle:
        return self.handles[-1]

    def create_handle(self) -> FakeHandle | None:
        if self.fail_create:
            return None
        handle = FakeHandle(self)
        self.handles.append(handle)
        return handle

    def append_header(self, headers: list[str] | None, line: str) -> list[str] | None:
        index = len(self.appended)
        self.appended.append(line)
        if self.fail_append_at is not None and index == self.fail_append_at:
            return None
        return [*(headers or ()), line]


PEM_A = "-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n"
PEM_B = "-----BEGIN CERTIFICATE-----\nBBBB\n-----END CERTIFICATE-----\n"

OK_INFO: dict[EngineInfo, Any] = {
    EngineInfo.RESPONSE_CODE: 200,
    EngineInfo.REDIRECT_URL: None,
    EngineInfo.CERTINFO: [
        ["Subject:CN=example.com", "Issuer:CN=Example CA", f"Cert:{PEM_A}"],
        ["Subject:CN=Example CA", f"Cert:{PEM_B}"],
    ],
    EngineInfo.CONTENT_TYPE: "text/plain; charset=utf-8",
    EngineInfo.HTTP_VERSION: HttpVersion.V2_0,
}

OK_SCRIPT: tuple[tuple[DebugEvent | str, bytes], ...] = (
    (DebugEvent.TEXT, b"Connected to example.com (93.184.216.34) port 443\n"),
    (DebugEvent.SSL_DATA_OUT, b"\x16\x03\x01" + b"\x00" * 5),
    (DebugEvent.SSL_DATA_IN, b"\x16\x03\x03" + b"\x00" * 9),
    (DebugEvent.HEADER_OUT, b"GET / HTTP/1.1\r\nHost: example.com\r\nAccept: */*\r\n\r\n"),
    (DebugEvent.HEADER_IN, b"HTTP/1.1 200 OK\r\n"),
    (DebugEvent.HEADER_IN, b"Content-Type: text/plain; charset=utf-8\r\n"),
    (DebugEvent.HEADER_IN, b"\r\n"),
    (DebugEvent.DATA_IN, b"hello world"),
    (BODY, b"hello world"),
    (DebugEvent.END, b""),
)
