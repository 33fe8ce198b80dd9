from __future__ import annotations

import pytest

from httpprobe.app.application.performer import RequestPerformer
from httpprobe.app.domain.models import RequestDescriptor, ResponseRecord
from tests.fakes import OK_INFO, OK_SCRIPT, FakeTransportEngine, fixed_clock


@pytest.fixture
def record() -> ResponseRecord:
    return ResponseRecord(clock=fixed_clock)


@pytest.fixture
def ok_engine() -> FakeTransportEngine:
    return FakeTransportEngine(script=OK_SCRIPT, info=dict(OK_INFO))


@pytest.fixture
def make_performer():
    """Build a RequestPerformer over an engine with a fixed clock."""

    def _make(engine) -> RequestPerformer:
        return RequestPerformer(engine, clock=fixed_clock)

    return _make


@pytest.fixture
def request_descriptor() -> RequestDescriptor:
    req = RequestDescriptor()
    req.set_url("https://example.com/")
    return req
