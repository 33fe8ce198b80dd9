"""Result extraction: post-transaction metadata readback into the response record."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from httpprobe.app.constants import (
    CERT_DATA_KEY,
    HTTP_VERSION_NAMES,
    INT32_MAX,
    EngineError,
    EngineInfo,
)
from httpprobe.app.domain.models import ResponseRecord
from httpprobe.app.ports.transport_engine import TransportHandle


def _store_status_code(record: ResponseRecord, value: Any) -> None:
    status_code = int(value or 0)
    if status_code < 0 or status_code > INT32_MAX:
        status_code = INT32_MAX
    record.status_code = status_code


def _store_redirect_url(record: ResponseRecord, value: Any) -> None:
    record.redirect_url = str(value) if value else ""


def _store_certificate_chain(record: ResponseRecord, value: Any) -> None:
    # Each slot is a list of "key:value" lines; only the PEM block is kept.
    for slot in value or ():
        for line in slot:
            if line is None:
                continue
            key, sep, data = line.partition(":")
            if sep and key == CERT_DATA_KEY:
                record.certificate_chain += data.encode()
                record.certificate_chain += b"\n"


def _store_content_type(record: ResponseRecord, value: Any) -> None:
    record.content_type = str(value) if value else ""


def _store_http_version(record: ResponseRecord, value: Any) -> None:
    record.http_version = HTTP_VERSION_NAMES.get(int(value or 0), "")


@dataclass(frozen=True)
class ReadbackStep:
    info: EngineInfo
    store: Callable[[ResponseRecord, Any], None]


READBACK_STEPS: tuple[ReadbackStep, ...] = (
    ReadbackStep(EngineInfo.RESPONSE_CODE, _store_status_code),
    ReadbackStep(EngineInfo.REDIRECT_URL, _store_redirect_url),
    ReadbackStep(EngineInfo.CERTINFO, _store_certificate_chain),
    ReadbackStep(EngineInfo.CONTENT_TYPE, _store_content_type),
    ReadbackStep(EngineInfo.HTTP_VERSION, _store_http_version),
)


def extract_result(
    handle: TransportHandle,
    record: ResponseRecord,
    steps: tuple[ReadbackStep, ...] = READBACK_STEPS,
) -> bool:
    """Read metadata in order; on the first engine error record it and return False."""
    for step in steps:
        code, value = handle.getinfo(step.info)
        if code != EngineError.OK:
            record.fail(code, f"getinfo({step.info.value}) failed")
            return False
        step.store(record, value)
    return True
