from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from httpprobe.app.application.extraction import extract_result
from httpprobe.app.application.pipeline import TransactionContext, apply_config_steps
from httpprobe.app.constants import EngineError
from httpprobe.app.core import SERVICE_NAME
from httpprobe.app.core.clock import Clock, now_ms
from httpprobe.app.domain.collectors import BodyCollector, TranscriptCollector
from httpprobe.app.domain.models import (
    FrozenRequest,
    RequestDescriptor,
    Response,
    ResponseRecord,
)
from httpprobe.app.ports.transport_engine import (
    ContractViolationError,
    TransportEngine,
    TransportHandle,
)


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class RequestPerformer:
    """
    Runs one HTTP transaction per call against a transport engine.

    Each call gets a fresh handle, header list, collectors and record; nothing
    mutable is shared between calls, so performers are safe to use from several
    threads. Failures never raise: they are recorded on the returned Response as
    an engine code plus one transcript line. Passing None as the request is a
    contract violation and raises ContractViolationError.
    """

    def __init__(self, engine: TransportEngine, *, clock: Clock = now_ms) -> None:
        self._engine = engine
        self._clock = clock

    def perform(self, request: RequestDescriptor | FrozenRequest) -> Response:
        if request is None:
            raise ContractViolationError("request must not be None")
        frozen = request.freeze() if isinstance(request, RequestDescriptor) else request
        record = ResponseRecord(clock=self._clock)
        _log("transaction_started", url=frozen.url, method=frozen.method.value)

        handle = self._engine.create_handle()
        if handle is None:
            record.fail(EngineError.OUT_OF_MEMORY, "create_handle() failed")
            _log("transaction_failed", url=frozen.url, error=record.error)
            return record.freeze()

        try:
            self._run(frozen, handle, record)
        finally:
            try:
                handle.close()
            except Exception as exc:
                logger.warning("transport handle close failed: {}", exc)
        return record.freeze()

    async def aperform(self, request: RequestDescriptor | FrozenRequest) -> Response:
        """perform() on a worker thread; the request is frozen before the hand-off."""
        if request is None:
            raise ContractViolationError("request must not be None")
        frozen = request.freeze() if isinstance(request, RequestDescriptor) else request
        return await asyncio.to_thread(self.perform, frozen)

    def _run(self, request: FrozenRequest, handle: TransportHandle, record: ResponseRecord) -> None:
        ctx = TransactionContext(
            request=request,
            engine=self._engine,
            handle=handle,
            record=record,
            body_collector=BodyCollector(record),
            transcript=TranscriptCollector(record),
        )
        if not apply_config_steps(ctx):
            return

        code = handle.perform()
        if code != EngineError.OK:
            record.fail(code, "perform() failed")
            _log("transaction_failed", url=request.url, error=EngineError.describe(code))
            return

        if not extract_result(handle, record):
            _log("transaction_readback_failed", url=request.url, error=EngineError.describe(record.error))
            return

        record.log("perform() success")
        _log(
            "transaction_completed",
            url=request.url,
            status_code=record.status_code,
            http_version=record.http_version,
            bytes_sent=record.bytes_sent,
            bytes_received=record.bytes_received,
        )
