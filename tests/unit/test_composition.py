"""Unit tests for settings-driven composition: engine selection and request defaults."""
from __future__ import annotations

import pytest

from httpprobe.app.composition import create_performer, create_request
from httpprobe.app.config.settings import Settings
from httpprobe.app.constants import DEFAULT_TIMEOUT_SECONDS
from httpprobe.app.infrastructure.engine.factory import create_transport_engine
from httpprobe.app.infrastructure.engine.httpx_engine import HttpxTransportEngine
from tests.fakes import FakeTransportEngine


def test_factory_builds_httpx_engine():
    engine = create_transport_engine(Settings(ENGINE_BACKEND=" HTTPX "))

    assert isinstance(engine, HttpxTransportEngine)


def test_factory_builds_pycurl_engine():
    pytest.importorskip("pycurl")
    from httpprobe.app.infrastructure.engine.pycurl_engine import PycurlTransportEngine

    assert isinstance(create_transport_engine(Settings(ENGINE_BACKEND="pycurl")), PycurlTransportEngine)


def test_factory_rejects_unknown_backend():
    with pytest.raises(ValueError, match="Unsupported engine backend: requests"):
        create_transport_engine(Settings(ENGINE_BACKEND="requests"))


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("ENGINE_BACKEND", "httpx")
    monkeypatch.setenv("DEFAULT_TIMEOUT_SECONDS", "7")
    monkeypatch.setenv("FOLLOW_REDIRECTS", "true")

    settings = Settings()

    assert settings.engine_backend == "httpx"
    assert settings.default_timeout_seconds == 7
    assert settings.follow_redirects is True


def test_create_performer_prefers_explicit_engine():
    engine = FakeTransportEngine()

    performer = create_performer(Settings(ENGINE_BACKEND="requests"), engine=engine)
    performer.perform(create_request("https://example.com/", Settings()))

    assert len(engine.handles) == 1


def test_create_request_defaults():
    frozen = create_request("https://example.com/", Settings()).freeze()

    assert frozen.url == "https://example.com/"
    assert frozen.timeout == DEFAULT_TIMEOUT_SECONDS
    assert frozen.headers == ()
    assert frozen.ca_bundle_path is None
    assert frozen.proxy_url is None
    assert frozen.follow_redirects is False
    assert frozen.enable_http2 is False


def test_create_request_applies_configured_defaults():
    settings = Settings(
        DEFAULT_TIMEOUT_SECONDS=5,
        USER_AGENT="httpprobe/0.1",
        CA_BUNDLE_PATH="/etc/ssl/cert.pem",
        PROXY_URL="http://proxy.local:3128",
        FOLLOW_REDIRECTS=True,
        ENABLE_HTTP2=True,
    )

    frozen = create_request("https://example.com/", settings).freeze()

    assert frozen.timeout == 5
    assert frozen.headers == ("User-Agent: httpprobe/0.1",)
    assert frozen.ca_bundle_path == "/etc/ssl/cert.pem"
    assert frozen.proxy_url == "http://proxy.local:3128"
    assert frozen.follow_redirects is True
    assert frozen.enable_http2 is True
