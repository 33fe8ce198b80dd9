"""Engine-level constants shared across modules.

Error codes, debug event kinds and HTTP version numbers follow libcurl's
numbering so the pycurl adapter can pass them through unchanged.
"""
from __future__ import annotations

import sys
from enum import Enum, IntEnum


class EngineError(IntEnum):
    OK = 0
    UNSUPPORTED_PROTOCOL = 1
    FAILED_INIT = 2
    URL_MALFORMAT = 3
    NOT_BUILT_IN = 4
    COULDNT_RESOLVE_PROXY = 5
    COULDNT_RESOLVE_HOST = 6
    COULDNT_CONNECT = 7
    HTTP2 = 16
    WRITE_ERROR = 23
    OUT_OF_MEMORY = 27
    OPERATION_TIMEDOUT = 28
    SSL_CONNECT_ERROR = 35
    ABORTED_BY_CALLBACK = 42
    BAD_FUNCTION_ARGUMENT = 43
    TOO_MANY_REDIRECTS = 47
    UNKNOWN_OPTION = 48
    GOT_NOTHING = 52
    SEND_ERROR = 55
    RECV_ERROR = 56
    PEER_FAILED_VERIFICATION = 60
    SSL_CACERT_BADFILE = 77

    @staticmethod
    def describe(code: int) -> str:
        try:
            return EngineError(code).name
        except ValueError:
            return str(code)


class Method(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"


class DebugEvent(IntEnum):
    TEXT = 0
    HEADER_IN = 1
    HEADER_OUT = 2
    DATA_IN = 3
    DATA_OUT = 4
    SSL_DATA_IN = 5
    SSL_DATA_OUT = 6
    END = 7


class HttpVersion(IntEnum):
    NONE = 0
    V1_0 = 1
    V1_1 = 2
    V2_0 = 3


HTTP_VERSION_NAMES: dict[int, str] = {
    HttpVersion.V1_0: "HTTP/1.0",
    HttpVersion.V1_1: "HTTP/1.1",
    HttpVersion.V2_0: "HTTP/2",
}


class EngineOption(str, Enum):
    CONNECT_TO = "CONNECT_TO"
    TCP_FASTOPEN = "TCP_FASTOPEN"
    CAINFO = "CAINFO"
    HTTP_VERSION = "HTTP_VERSION"
    POST = "POST"
    POSTFIELDSIZE = "POSTFIELDSIZE"
    POSTFIELDS = "POSTFIELDS"
    CUSTOMREQUEST = "CUSTOMREQUEST"
    HTTPHEADER = "HTTPHEADER"
    URL = "URL"
    WRITEFUNCTION = "WRITEFUNCTION"
    NOSIGNAL = "NOSIGNAL"
    TIMEOUT = "TIMEOUT"
    DEBUGFUNCTION = "DEBUGFUNCTION"
    VERBOSE = "VERBOSE"
    PROXY = "PROXY"
    FOLLOWLOCATION = "FOLLOWLOCATION"
    CERTINFO = "CERTINFO"


class EngineInfo(str, Enum):
    RESPONSE_CODE = "RESPONSE_CODE"
    REDIRECT_URL = "REDIRECT_URL"
    CERTINFO = "CERTINFO"
    CONTENT_TYPE = "CONTENT_TYPE"
    HTTP_VERSION = "HTTP_VERSION"


DEFAULT_TIMEOUT_SECONDS = 30

# libcurl converts CURLOPT_TIMEOUT to milliseconds in a C long; this is the
# largest value that survives the conversion where long is 32 bits.
MAX_TIMEOUT_SECONDS = (2**31 - 1) // 1000

INT32_MAX = 2**31 - 1

SIZE_MAX = sys.maxsize * 2 + 1

# Key under which the engine reports the PEM block of a peer certificate.
CERT_DATA_KEY = "Cert"

# Empty Expect header disables the "Expect: 100-continue" handshake on uploads.
EXPECT_SUPPRESS_HEADER = "Expect:"
