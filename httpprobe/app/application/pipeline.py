"""Option-application pipeline: turns a frozen request into engine configuration.

Steps run in the order of CONFIG_STEPS and the first failure stops the fold.
Later steps rely on earlier ones (the Expect header must land in the header
list before the list is attached; callbacks are registered after the URL).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger

from httpprobe.app.constants import (
    EXPECT_SUPPRESS_HEADER,
    EngineError,
    EngineOption,
    HttpVersion,
    Method,
)
from httpprobe.app.core import SERVICE_NAME
from httpprobe.app.domain.collectors import BodyCollector, TranscriptCollector
from httpprobe.app.domain.models import FrozenRequest, ResponseRecord
from httpprobe.app.ports.transport_engine import TransportEngine, TransportHandle


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


@dataclass
class TransactionContext:
    """Everything one in-flight transaction owns."""

    request: FrozenRequest
    engine: TransportEngine
    handle: TransportHandle
    record: ResponseRecord
    body_collector: BodyCollector
    transcript: TranscriptCollector
    headers: list[str] | None = None
    connect_to: list[str] | None = None


@dataclass(frozen=True)
class ConfigStep:
    """One pipeline step.

    apply returns an engine code. When failure_code is set, any failure is
    reported with it instead of the code apply returned.
    """

    label: str
    apply: Callable[[TransactionContext], int]
    when: Callable[[TransactionContext], bool] = lambda ctx: True
    failure_code: int | None = None


def connect_to_entry(address: str) -> str:
    """Mapping entry that sends any host:port to address, keeping the port."""
    if ":" in address and not address.startswith("["):
        address = f"[{address}]"
    return f"::{address}:"


def _setopt(option: EngineOption, value: Callable[[TransactionContext], Any]) -> Callable[[TransactionContext], int]:
    def apply(ctx: TransactionContext) -> int:
        return ctx.handle.setopt(option, value(ctx))

    return apply


def _build_header_list(ctx: TransactionContext) -> int:
    for line in ctx.request.headers:
        ctx.headers = ctx.engine.append_header(ctx.headers, line)
        if ctx.headers is None:
            return EngineError.OUT_OF_MEMORY
    return EngineError.OK


def _build_connect_to_list(ctx: TransactionContext) -> int:
    entry = connect_to_entry(ctx.request.connect_override or "")
    ctx.connect_to = ctx.engine.append_header(None, entry)
    return EngineError.OK if ctx.connect_to is not None else EngineError.OUT_OF_MEMORY


def _append_expect_header(ctx: TransactionContext) -> int:
    ctx.headers = ctx.engine.append_header(ctx.headers, EXPECT_SUPPRESS_HEADER)
    return EngineError.OK if ctx.headers is not None else EngineError.OUT_OF_MEMORY


def _is_upload(ctx: TransactionContext) -> bool:
    return ctx.request.is_upload


CONFIG_STEPS: tuple[ConfigStep, ...] = (
    ConfigStep(
        "append_header()",
        _build_header_list,
        when=lambda ctx: bool(ctx.request.headers),
        failure_code=EngineError.OUT_OF_MEMORY,
    ),
    ConfigStep(
        "append_header(connect_to)",
        _build_connect_to_list,
        when=lambda ctx: ctx.request.connect_override is not None,
        failure_code=EngineError.OUT_OF_MEMORY,
    ),
    ConfigStep(
        "setopt(CONNECT_TO)",
        _setopt(EngineOption.CONNECT_TO, lambda ctx: ctx.connect_to),
        when=lambda ctx: ctx.request.connect_override is not None,
    ),
    ConfigStep(
        "setopt(TCP_FASTOPEN)",
        _setopt(EngineOption.TCP_FASTOPEN, lambda ctx: 1),
        when=lambda ctx: ctx.request.enable_tcp_fastopen,
    ),
    ConfigStep(
        "setopt(CAINFO)",
        _setopt(EngineOption.CAINFO, lambda ctx: ctx.request.ca_bundle_path),
        when=lambda ctx: bool(ctx.request.ca_bundle_path),
    ),
    ConfigStep(
        "setopt(HTTP_VERSION)",
        _setopt(EngineOption.HTTP_VERSION, lambda ctx: HttpVersion.V2_0),
        when=lambda ctx: ctx.request.enable_http2,
    ),
    # uploads
    ConfigStep(
        "append_header(expect)",
        _append_expect_header,
        when=_is_upload,
        failure_code=EngineError.OUT_OF_MEMORY,
    ),
    ConfigStep("setopt(POST)", _setopt(EngineOption.POST, lambda ctx: 1), when=_is_upload),
    ConfigStep(
        "setopt(POSTFIELDSIZE)",
        _setopt(EngineOption.POSTFIELDSIZE, lambda ctx: len(ctx.request.body)),
        when=_is_upload,
    ),
    ConfigStep(
        "setopt(POSTFIELDS)",
        _setopt(EngineOption.POSTFIELDS, lambda ctx: ctx.request.body),
        when=_is_upload,
    ),
    ConfigStep(
        "setopt(CUSTOMREQUEST)",
        _setopt(EngineOption.CUSTOMREQUEST, lambda ctx: Method.PUT.value),
        when=lambda ctx: ctx.request.method == Method.PUT,
    ),
    ConfigStep(
        "setopt(HTTPHEADER)",
        _setopt(EngineOption.HTTPHEADER, lambda ctx: ctx.headers),
        when=lambda ctx: bool(ctx.headers),
    ),
    ConfigStep("setopt(URL)", _setopt(EngineOption.URL, lambda ctx: ctx.request.url)),
    ConfigStep(
        "setopt(WRITEFUNCTION)",
        _setopt(EngineOption.WRITEFUNCTION, lambda ctx: ctx.body_collector.on_data),
    ),
    ConfigStep("setopt(NOSIGNAL)", _setopt(EngineOption.NOSIGNAL, lambda ctx: 1)),
    ConfigStep(
        "setopt(TIMEOUT)",
        _setopt(EngineOption.TIMEOUT, lambda ctx: ctx.request.timeout),
        when=lambda ctx: ctx.request.timeout >= 0,
    ),
    ConfigStep(
        "setopt(DEBUGFUNCTION)",
        _setopt(EngineOption.DEBUGFUNCTION, lambda ctx: ctx.transcript.on_event),
    ),
    ConfigStep("setopt(VERBOSE)", _setopt(EngineOption.VERBOSE, lambda ctx: 1)),
    ConfigStep(
        "setopt(PROXY)",
        _setopt(EngineOption.PROXY, lambda ctx: ctx.request.proxy_url),
        when=lambda ctx: bool(ctx.request.proxy_url),
    ),
    ConfigStep(
        "setopt(FOLLOWLOCATION)",
        _setopt(EngineOption.FOLLOWLOCATION, lambda ctx: 1),
        when=lambda ctx: ctx.request.follow_redirects,
    ),
    ConfigStep("setopt(CERTINFO)", _setopt(EngineOption.CERTINFO, lambda ctx: 1)),
)


def apply_config_steps(ctx: TransactionContext, steps: tuple[ConfigStep, ...] = CONFIG_STEPS) -> bool:
    """Apply steps in order. On the first failure record it and return False."""
    for step in steps:
        if not step.when(ctx):
            continue
        code = step.apply(ctx)
        if code == EngineError.OK:
            continue
        if step.failure_code is not None:
            code = step.failure_code
        ctx.record.fail(code, f"{step.label} failed")
        _log(
            "transaction_config_failed",
            url=ctx.request.url,
            step=step.label,
            error=EngineError.describe(code),
        )
        return False
    return True
