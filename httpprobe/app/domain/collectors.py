"""Instrumentation callbacks registered with the transport engine.

Both collectors write only into the ResponseRecord of the transaction that owns
them and run on the thread driving that transaction, so they take no locks.
"""
from __future__ import annotations

from httpprobe.app.constants import SIZE_MAX, DebugEvent
from httpprobe.app.domain.models import ResponseRecord
from httpprobe.app.ports.transport_engine import ContractViolationError

_HEADER_MARKERS: dict[DebugEvent, bytes] = {
    DebugEvent.HEADER_IN: b"<",
    DebugEvent.HEADER_OUT: b">",
}

_DATA_LABELS: dict[DebugEvent, bytes] = {
    DebugEvent.DATA_IN: b"<data:",
    DebugEvent.DATA_OUT: b">data:",
    DebugEvent.SSL_DATA_IN: b"<tls_data:",
    DebugEvent.SSL_DATA_OUT: b">tls_data:",
}

_INBOUND = frozenset({DebugEvent.HEADER_IN, DebugEvent.DATA_IN, DebugEvent.SSL_DATA_IN})
_OUTBOUND = frozenset({DebugEvent.HEADER_OUT, DebugEvent.DATA_OUT, DebugEvent.SSL_DATA_OUT})


def split_lines(payload: bytes) -> list[bytes]:
    """Split on LF. A trailing partial line is kept; a trailing LF adds no empty line."""
    if not payload:
        return []
    lines = payload.split(b"\n")
    if lines[-1] == b"":
        lines.pop()
    return [line[:-1] if line.endswith(b"\r") else line for line in lines]


class BodyCollector:
    """Data-arrival sink: appends response payload to the record body."""

    def __init__(self, record: ResponseRecord) -> None:
        if record is None:
            raise ContractViolationError("body collector needs a response record")
        self._record = record

    def on_data(self, chunk: bytes, element_size: int = 1, element_count: int | None = None) -> int:
        """Return the number of elements accepted; anything short of element_count aborts the transfer."""
        if element_count is None:
            element_count = len(chunk)
        if element_count <= 0:
            return 0
        if element_size > SIZE_MAX // element_count:
            return 0
        nbytes = element_size * element_count
        if len(chunk) < nbytes:
            return 0
        self._record.body += memoryview(chunk)[:nbytes]
        return element_count


class TranscriptCollector:
    """Debug-event sink: builds the transcript, raw header blocks and byte estimates.

    Byte totals count what the engine reports. For TLS that is the size of
    handshake/protocol messages as seen by the TLS library, not ciphertext on
    the wire, so the totals are an estimate.
    """

    def __init__(self, record: ResponseRecord) -> None:
        if record is None:
            raise ContractViolationError("transcript collector needs a response record")
        self._record = record

    def on_event(self, kind: int, payload: bytes) -> int:
        if payload is None:
            raise ContractViolationError("debug event payload must not be None")
        try:
            kind = DebugEvent(kind)
        except ValueError:
            return 0
        if kind == DebugEvent.END:
            return 0

        payload = bytes(payload)
        record = self._record
        if kind == DebugEvent.TEXT:
            for line in split_lines(payload):
                record.log(line)
        elif kind in _HEADER_MARKERS:
            marker = _HEADER_MARKERS[kind]
            for line in split_lines(payload):
                record.log(marker + b" " + line)
            if kind == DebugEvent.HEADER_IN:
                record.response_headers += payload
            else:
                record.request_headers += payload
        else:
            record.log(_DATA_LABELS[kind] + str(len(payload)).encode())

        if kind in _INBOUND:
            record.bytes_received += float(len(payload))
        elif kind in _OUTBOUND:
            record.bytes_sent += float(len(payload))
        return 0
