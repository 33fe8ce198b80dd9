"""Transport engine implementation using pycurl (libcurl)."""
from __future__ import annotations

from typing import Any

import pycurl
from loguru import logger

from httpprobe.app.constants import EngineError, EngineInfo, EngineOption

# pycurl attribute for each engine option. Attributes missing from the
# installed pycurl/libcurl build are reported as NOT_BUILT_IN.
_OPTION_NAMES: dict[EngineOption, str] = {
    EngineOption.CONNECT_TO: "CONNECT_TO",
    EngineOption.TCP_FASTOPEN: "TCP_FASTOPEN",
    EngineOption.CAINFO: "CAINFO",
    EngineOption.HTTP_VERSION: "HTTP_VERSION",
    EngineOption.POST: "POST",
    EngineOption.POSTFIELDSIZE: "POSTFIELDSIZE_LARGE",
    EngineOption.POSTFIELDS: "POSTFIELDS",
    EngineOption.CUSTOMREQUEST: "CUSTOMREQUEST",
    EngineOption.HTTPHEADER: "HTTPHEADER",
    EngineOption.URL: "URL",
    EngineOption.WRITEFUNCTION: "WRITEFUNCTION",
    EngineOption.NOSIGNAL: "NOSIGNAL",
    EngineOption.TIMEOUT: "TIMEOUT",
    EngineOption.DEBUGFUNCTION: "DEBUGFUNCTION",
    EngineOption.VERBOSE: "VERBOSE",
    EngineOption.PROXY: "PROXY",
    EngineOption.FOLLOWLOCATION: "FOLLOWLOCATION",
    EngineOption.CERTINFO: "OPT_CERTINFO",
}

_INFO_NAMES: dict[EngineInfo, str] = {
    EngineInfo.RESPONSE_CODE: "RESPONSE_CODE",
    EngineInfo.REDIRECT_URL: "REDIRECT_URL",
    EngineInfo.CERTINFO: "INFO_CERTINFO",
    EngineInfo.CONTENT_TYPE: "CONTENT_TYPE",
    EngineInfo.HTTP_VERSION: "INFO_HTTP_VERSION",
}


def _error_code(exc: pycurl.error) -> int:
    if exc.args and isinstance(exc.args[0], int):
        return exc.args[0]
    return EngineError.FAILED_INIT


class PycurlHandle:
    """TransportHandle over one pycurl.Curl easy handle."""

    def __init__(self, curl: pycurl.Curl) -> None:
        self._curl = curl

    def setopt(self, option: EngineOption, value: Any) -> int:
        name = _OPTION_NAMES.get(option)
        if name is None:
            return EngineError.UNKNOWN_OPTION
        constant = getattr(pycurl, name, None)
        if constant is None:
            return EngineError.NOT_BUILT_IN
        try:
            self._curl.setopt(constant, value)
        except pycurl.error as exc:
            return _error_code(exc)
        except (TypeError, ValueError) as exc:
            logger.warning("pycurl rejected {}: {}", option.value, exc)
            return EngineError.BAD_FUNCTION_ARGUMENT
        return EngineError.OK

    def perform(self) -> int:
        try:
            self._curl.perform()
        except pycurl.error as exc:
            return _error_code(exc)
        return EngineError.OK

    def getinfo(self, info: EngineInfo) -> tuple[int, Any]:
        constant = getattr(pycurl, _INFO_NAMES[info], None)
        if constant is None:
            return EngineError.NOT_BUILT_IN, None
        try:
            value = self._curl.getinfo(constant)
        except pycurl.error as exc:
            return _error_code(exc), None
        except ValueError:
            return EngineError.NOT_BUILT_IN, None
        if info == EngineInfo.CERTINFO:
            # pycurl reports each certificate as a list of (key, value) tuples.
            value = [[f"{key}:{data}" for key, data in cert] for cert in value or ()]
        return EngineError.OK, value

    def close(self) -> None:
        self._curl.close()


class PycurlTransportEngine:
    """TransportEngine implementation using pycurl."""

    def create_handle(self) -> PycurlHandle | None:
        try:
            return PycurlHandle(pycurl.Curl())
        except pycurl.error as exc:
            logger.warning("pycurl handle creation failed: {}", exc)
            return None

    def append_header(self, headers: list[str] | None, line: str) -> list[str] | None:
        return [*(headers or ()), line]
