"""
Integration tests for both transport engines against real endpoints.

Requires network. Run with:
  pytest tests/integration -m integration -v
"""
from __future__ import annotations

import json

import pytest

from httpprobe.app.application.performer import RequestPerformer
from httpprobe.app.config.settings import Settings
from httpprobe.app.constants import EngineError, Method
from httpprobe.app.domain.models import RequestDescriptor
from httpprobe.app.infrastructure.engine.factory import create_transport_engine
from tests.test_data import (
    TEST_URL_POST,
    TEST_URL_PUT,
    TEST_URL_REDIRECT,
    TEST_URL_UNRESOLVABLE,
    TEST_URLS_ERROR_STATUS,
    TEST_URLS_SUCCESS,
)

BACKENDS = ["pycurl", "httpx"]


@pytest.fixture(params=BACKENDS)
def performer(request):
    if request.param == "pycurl":
        pytest.importorskip("pycurl")
    return RequestPerformer(create_transport_engine(Settings(ENGINE_BACKEND=request.param)))


def _request(url: str) -> RequestDescriptor:
    req = RequestDescriptor()
    req.set_url(url)
    req.set_timeout(20)
    # Some sites (e.g. Wikipedia) reject requests without a User-Agent
    req.add_header("User-Agent: httpprobe-test/0.1 (integration tests)")
    return req


@pytest.mark.integration
@pytest.mark.parametrize("url", TEST_URLS_SUCCESS, ids=lambda u: u.replace("https://", "")[:40])
def test_success_urls(performer, url):
    response = performer.perform(_request(url))

    assert response.error == EngineError.OK, response.logs.decode(errors="replace")
    assert 200 <= response.status_code < 300
    assert response.http_version.startswith("HTTP/")
    assert response.response_headers.startswith(b"HTTP/")
    assert response.request_headers.startswith(b"GET ")
    assert response.bytes_received >= len(response.body)
    assert response.logs.endswith(b"perform() success\n")


@pytest.mark.integration
@pytest.mark.parametrize("url,status", TEST_URLS_ERROR_STATUS, ids=lambda v: str(v)[-12:])
def test_error_status_is_not_an_engine_error(performer, url, status):
    response = performer.perform(_request(url))

    assert response.error == EngineError.OK
    assert response.status_code == status


@pytest.mark.integration
def test_redirect_reported_then_followed(performer):
    reported = performer.perform(_request(TEST_URL_REDIRECT))
    assert reported.status_code == 302
    assert reported.redirect_url.startswith("https://httpbin.org/")

    req = _request(TEST_URL_REDIRECT)
    req.enable_follow_redirect()
    followed = performer.perform(req)
    assert followed.status_code == 200
    assert followed.response_headers.count(b"HTTP/") >= 3


@pytest.mark.integration
@pytest.mark.parametrize("method,url", [(Method.POST, TEST_URL_POST), (Method.PUT, TEST_URL_PUT)])
def test_upload_echoes_body(performer, method, url):
    req = _request(url)
    req.set_method(method)
    req.add_header("Content-Type: application/octet-stream")
    req.set_body(b"net-test-payload")

    response = performer.perform(req)

    assert response.status_code == 200
    echoed = json.loads(response.body)
    assert echoed["data"] == "net-test-payload"
    assert "Expect" not in echoed["headers"]


@pytest.mark.integration
def test_unresolvable_host(performer):
    response = performer.perform(_request(TEST_URL_UNRESOLVABLE))

    assert response.error in (EngineError.COULDNT_RESOLVE_HOST, EngineError.COULDNT_CONNECT)
    assert response.logs.endswith(b"perform() failed\n")


@pytest.mark.integration
def test_pycurl_captures_certificate_chain():
    pytest.importorskip("pycurl")
    performer = RequestPerformer(create_transport_engine(Settings(ENGINE_BACKEND="pycurl")))

    response = performer.perform(_request("https://www.python.org/"))

    assert response.error == EngineError.OK
    assert response.certificate_chain.count(b"-----BEGIN CERTIFICATE-----") >= 1
